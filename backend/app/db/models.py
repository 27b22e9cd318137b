from sqlalchemy import (
    Column, Integer, Float, Text, DateTime, ForeignKey, UniqueConstraint, Index, func
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

class Make(Base):
    __tablename__ = "makes"
    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    models = relationship("Model", back_populates="make")

class Model(Base):
    __tablename__ = "models"
    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    make_id = Column(Integer, ForeignKey("makes.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (UniqueConstraint("name", "make_id", name="uq_models_name_make"),)

    make = relationship("Make", back_populates="models")
    trims = relationship("Trim", back_populates="model")

class Trim(Base):
    __tablename__ = "trims"
    id = Column(Integer, primary_key=True)
    year = Column(Integer, nullable=False)
    name = Column(Text, nullable=False)
    model_id = Column(Integer, ForeignKey("models.id", ondelete="CASCADE"), nullable=False)
    body = Column(Text)
    engine = Column(Text)
    horsepower = Column(Integer)
    torque = Column(Integer)         # lb-ft
    zero_to_sixty = Column(Float)    # seconds
    mpg_city = Column(Integer)
    mpg_hwy = Column(Integer)
    msrp = Column(Integer)           # whole USD
    image_url = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    __table_args__ = (UniqueConstraint("year", "name", "model_id", name="uq_trims_year_name_model"),)

    model = relationship("Model", back_populates="trims")
    listings = relationship("Listing", back_populates="trim")

class Listing(Base):
    __tablename__ = "listings"
    id = Column(Text, primary_key=True)   # "<source>:<native item id>"
    source = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    price = Column(Integer, nullable=False)  # whole USD after conversion
    url = Column(Text, nullable=False)
    image = Column(Text)
    location = Column(Text)
    posted_at = Column(DateTime(timezone=True))
    trim_id = Column(Integer, ForeignKey("trims.id", ondelete="SET NULL"))
    confidence = Column(Float)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    trim = relationship("Trim", back_populates="listings")

Index("idx_listings_trim_price", Listing.trim_id, Listing.price)
Index("idx_trims_year", Trim.year)
