from sqlalchemy import Column, String, Numeric, DateTime
from sqlalchemy.sql import func
from satsgame.database import Base

class Asset(Base):
    __tablename__ = "assets"

    symbol = Column(String(10), primary_key=True)
    current_price_usd = Column(Numeric(15, 8), nullable=True)
    last_updated = Column(DateTime, server_default=func.now(), onupdate=func.now())
