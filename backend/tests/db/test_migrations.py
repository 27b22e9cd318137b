from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parents[3]


def test_catalog_migration_creates_schema(test_db_dir):
    url = f"sqlite:///{test_db_dir / 'migrations.db'}"
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", url)

    command.upgrade(cfg, "head")

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        assert {"makes", "models", "trims", "listings"} <= set(inspector.get_table_names())
        trim_columns = {column["name"] for column in inspector.get_columns("trims")}
        assert {"zero_to_sixty", "mpg_city", "mpg_hwy", "msrp"} <= trim_columns
        assert "idx_listings_trim_price" in {index["name"] for index in inspector.get_indexes("listings")}
    finally:
        engine.dispose()

    command.downgrade(cfg, "base")
    engine = create_engine(url)
    try:
        assert "trims" not in inspect(engine).get_table_names()
    finally:
        engine.dispose()
