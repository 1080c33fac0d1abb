from sqlalchemy import Column, Integer, String, BigInteger, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from satsgame.database import Base

class Purchase(Base):
    """One non-base acquisition (a lot). Rows are never updated after insert."""
    __tablename__ = "purchases"
    __table_args__ = (
        Index("idx_purchases_user_asset_locked", "user_id", "asset_symbol", "locked_until"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    asset_symbol = Column(String(10), nullable=False)
    amount = Column(BigInteger, nullable=False)
    btc_spent = Column(BigInteger, nullable=False)
    purchase_price_usd = Column(Numeric(15, 8))
    btc_price_usd = Column(Numeric(15, 8))
    locked_until = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="purchases")
