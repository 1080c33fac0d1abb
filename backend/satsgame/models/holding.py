from sqlalchemy import Column, Integer, String, BigInteger, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from satsgame.database import Base

class Holding(Base):
    """Aggregate balance of one asset, in smallest units (sats or 1e8-scaled shares)."""
    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("user_id", "asset_symbol", name="uq_holding_user_asset"),
        CheckConstraint("amount >= 0", name="ck_holding_amount_non_negative"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    asset_symbol = Column(String(10), nullable=False)
    amount = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="holdings")
