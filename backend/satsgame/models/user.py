from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from satsgame.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    is_public = Column(Boolean, default=False)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())

    holdings = relationship("Holding", back_populates="user")
    purchases = relationship("Purchase", back_populates="user")
    trades = relationship("Trade", back_populates="user")
    set_forget_portfolios = relationship("SetForgetPortfolio", back_populates="user")
