import os
import tempfile
from pathlib import Path

# Must run before backend.app.core.settings is imported anywhere.
_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="sportscars-tests-"))
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", f"sqlite:///{_TEST_DB_DIR / 'test.db'}")

import pytest  # noqa: E402

from backend.app.db.models import Base  # noqa: E402
from backend.app.db.session import ENGINE  # noqa: E402


@pytest.fixture(autouse=True)
def reset_tables():
    Base.metadata.drop_all(bind=ENGINE)
    Base.metadata.create_all(bind=ENGINE)
    yield


@pytest.fixture
def test_db_dir() -> Path:
    return _TEST_DB_DIR
