import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())

class IdempotencyKey(Base):
    __tablename__ = "idempotency_keys"
    id = Column(Integer, primary_key=True)
    key = Column(String, index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    request_hash = Column(String, nullable=False)
    response_body = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (UniqueConstraint('key', 'user_id', name='uq_idempotency_key_user'),)

class Game(Base):
    __tablename__ = "games"
    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    products = relationship("Product", back_populates="game")

class Product(Base):
    __tablename__ = "products"
    id = Column(String(36), primary_key=True, default=_new_id)
    game_id = Column(String(36), ForeignKey("games.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    price = Column(Integer, nullable=False)  # smallest currency unit
    currency_amount = Column(Integer, nullable=False)  # in-game currency delivered
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    game = relationship("Game", back_populates="products")
    __table_args__ = (CheckConstraint("price > 0", name="ck_product_price_positive"),)

class Voucher(Base):
    __tablename__ = "vouchers"
    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    discount_percentage = Column(Integer, nullable=False)
    points_required = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (
        CheckConstraint("discount_percentage BETWEEN 0 AND 100", name="ck_voucher_discount_range"),
        CheckConstraint("points_required >= 0", name="ck_voucher_points_non_negative"),
    )

class UserVoucher(Base):
    __tablename__ = "user_vouchers"
    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), index=True, nullable=False)
    voucher_id = Column(String(36), ForeignKey("vouchers.id"), index=True, nullable=False)
    points_spent = Column(Integer, nullable=False, default=0)  # points_required at redemption time
    is_used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    voucher = relationship("Voucher")

class Profile(Base):
    __tablename__ = "profiles"
    id = Column(String(36), primary_key=True)  # same as the auth user id
    name = Column(String, nullable=True)
    loyalty_points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (CheckConstraint("loyalty_points >= 0", name="ck_profile_points_non_negative"),)

class Transaction(Base):
    __tablename__ = "transactions"
    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), index=True, nullable=False)
    game_id = Column(String(36), ForeignKey("games.id"), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    user_game_id = Column(String, nullable=False)
    payment_method = Column(String, nullable=False)
    total_price = Column(Integer, nullable=False)
    points_earned = Column(Integer, nullable=False, default=0)
    user_voucher_id = Column(String(36), ForeignKey("user_vouchers.id"), nullable=True)
    status = Column(String, nullable=False)  # pending|success
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    game = relationship("Game")
    product = relationship("Product")
