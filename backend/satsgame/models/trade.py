from sqlalchemy import Column, Integer, String, BigInteger, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from satsgame.database import Base

class Trade(Base):
    __tablename__ = "trades"
    __table_args__ = (
        Index("idx_trades_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    from_asset = Column(String(10), nullable=False)
    to_asset = Column(String(10), nullable=False)
    from_amount = Column(BigInteger, nullable=False)
    to_amount = Column(BigInteger, nullable=False)
    btc_price_usd = Column(Numeric(15, 8))
    asset_price_usd = Column(Numeric(15, 8))
    created_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="trades")
