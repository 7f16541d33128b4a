from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from payout_relay.database import Base

MONEY = Numeric(18, 4)


class User(Base):
    __tablename__ = "users"
    uid = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    paid = Column(Boolean, nullable=False, default=False)
    balance = Column(MONEY, nullable=False, default=0)
    referrer_uid = Column(String, ForeignKey("users.uid"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    referrals = relationship(
        "Referral",
        foreign_keys="Referral.referrer_uid",
        order_by="Referral.id",
        lazy="selectin",
    )


class Payment(Base):
    __tablename__ = "payments"
    id = Column(Integer, primary_key=True)
    user_uid = Column(String, ForeignKey("users.uid"), index=True, nullable=False)
    transaction_ref = Column(String, unique=True, index=True, nullable=False)
    amount = Column(MONEY, nullable=False)
    admin_share = Column(MONEY, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Referral(Base):
    __tablename__ = "referrals"
    id = Column(Integer, primary_key=True)
    referrer_uid = Column(String, ForeignKey("users.uid"), index=True, nullable=False)
    ref_uid = Column(String, ForeignKey("users.uid"), nullable=False)
    name = Column(String, nullable=True)
    earn = Column(MONEY, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
