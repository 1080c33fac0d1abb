from sqlalchemy import Column, Integer, String, BigInteger, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from satsgame.database import Base

class SetForgetPortfolio(Base):
    """A hypothetical allocation of sats, tracked at current prices. Holds no balance."""
    __tablename__ = "set_forget_portfolios"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    initial_sats = Column(BigInteger, nullable=False)
    share_token = Column(String(64), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="set_forget_portfolios")
    allocations = relationship(
        "SetForgetAllocation",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

class SetForgetAllocation(Base):
    __tablename__ = "set_forget_allocations"

    id = Column(Integer, primary_key=True)
    portfolio_id = Column(Integer, ForeignKey("set_forget_portfolios.id", ondelete="CASCADE"), nullable=False, index=True)
    asset_symbol = Column(String(10), nullable=False)
    allocation_percentage = Column(Numeric(5, 2), nullable=False)
    btc_amount = Column(BigInteger, nullable=False)
    asset_amount = Column(BigInteger, nullable=False)
    purchase_price_usd = Column(Numeric(15, 8), nullable=False)
    btc_price_usd = Column(Numeric(15, 8), nullable=False)

    portfolio = relationship("SetForgetPortfolio", back_populates="allocations")
