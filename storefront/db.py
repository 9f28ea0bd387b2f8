"""
Store operations over a SQLAlchemy session.

These functions flush but never commit: the caller (storefront.services) owns
the database transaction, so a purchase or redemption lands as one unit or
not at all.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from storefront.errors import AlreadyUsed, IdempotencyConflict, InsufficientPoints, NotFound
from storefront.models import models


def get_or_create_idempotency(db: Session, key: str, user_id: str, body_hash: str):
    existing = db.query(models.IdempotencyKey).filter_by(key=key, user_id=user_id).first()
    if existing:
        if existing.request_hash != body_hash:
            raise IdempotencyConflict("idempotency conflict")
        return existing.response_body
    return None


def store_idempotency(db: Session, key: str, user_id: str, body_hash: str, response_body: dict):
    record = models.IdempotencyKey(key=key, user_id=user_id, request_hash=body_hash, response_body=response_body)
    db.add(record)
    db.flush()
    return response_body


def get_game_by_slug(db: Session, slug: str) -> models.Game:
    game = db.query(models.Game).filter_by(slug=slug, is_active=True).first()
    if not game:
        raise NotFound("game not found")
    return game


def list_active_games(db: Session) -> list[models.Game]:
    return db.query(models.Game).filter_by(is_active=True).order_by(models.Game.name).all()


def list_active_products(db: Session, game_id: str) -> list[models.Product]:
    return (
        db.query(models.Product)
        .filter_by(game_id=game_id, is_active=True)
        .order_by(models.Product.price)
        .all()
    )


def get_product(db: Session, product_id: str) -> models.Product:
    product = db.get(models.Product, product_id)
    if not product:
        raise NotFound("product not found")
    return product


def list_active_vouchers(db: Session) -> list[models.Voucher]:
    return (
        db.query(models.Voucher)
        .filter_by(is_active=True)
        .order_by(models.Voucher.points_required)
        .all()
    )


def get_voucher_template(db: Session, voucher_id: str) -> models.Voucher:
    voucher = db.get(models.Voucher, voucher_id)
    if not voucher:
        raise NotFound("voucher not found")
    return voucher


def get_user_voucher(db: Session, user_voucher_id: str, owner_id: str) -> models.UserVoucher:
    # Someone else's voucher is reported exactly like a missing one.
    user_voucher = (
        db.query(models.UserVoucher)
        .options(joinedload(models.UserVoucher.voucher))
        .filter_by(id=user_voucher_id, user_id=owner_id)
        .first()
    )
    if not user_voucher:
        raise NotFound("user voucher not found")
    return user_voucher


def list_user_vouchers(db: Session, user_id: str) -> list[models.UserVoucher]:
    return (
        db.query(models.UserVoucher)
        .options(joinedload(models.UserVoucher.voucher))
        .filter_by(user_id=user_id)
        .order_by(models.UserVoucher.created_at.desc(), models.UserVoucher.id)
        .all()
    )


def create_user_voucher(db: Session, user_id: str, voucher_id: str, points_spent: int = 0) -> models.UserVoucher:
    user_voucher = models.UserVoucher(user_id=user_id, voucher_id=voucher_id, points_spent=points_spent, is_used=False)
    db.add(user_voucher)
    db.flush()
    return user_voucher


def mark_user_voucher_used(
    db: Session, user_voucher_id: str, owner_id: str, used_at: Optional[datetime] = None
) -> models.UserVoucher:
    used_at = used_at or datetime.now(timezone.utc)
    updated = (
        db.query(models.UserVoucher)
        .filter(models.UserVoucher.id == user_voucher_id)
        .filter(models.UserVoucher.user_id == owner_id)
        .filter(models.UserVoucher.is_used == False)  # noqa: E712
        .update({"is_used": True, "used_at": used_at}, synchronize_session=False)
    )
    if updated == 0:
        user_voucher = get_user_voucher(db, user_voucher_id, owner_id)
        raise AlreadyUsed(f"user voucher {user_voucher.id} already used")
    user_voucher = get_user_voucher(db, user_voucher_id, owner_id)
    db.refresh(user_voucher)
    return user_voucher


def ensure_profile(db: Session, user_id: str) -> models.Profile:
    profile = db.get(models.Profile, user_id)
    if not profile:
        profile = models.Profile(id=user_id, loyalty_points=0)
        db.add(profile)
        db.flush()
    return profile


def get_profile(db: Session, user_id: str) -> models.Profile:
    profile = db.get(models.Profile, user_id)
    if not profile:
        raise NotFound("profile not found")
    return profile


def update_profile_name(db: Session, user_id: str, name: str) -> models.Profile:
    profile = ensure_profile(db, user_id)
    profile.name = name
    db.add(profile)
    db.flush()
    return profile


def get_profile_balance(db: Session, user_id: str) -> int:
    balance = db.query(models.Profile.loyalty_points).filter(models.Profile.id == user_id).scalar()
    return balance or 0


def atomic_adjust_balance(db: Session, user_id: str, delta: int) -> int:
    """
    Add delta to the user's points in a single conditional UPDATE.

    The row only changes when the resulting balance stays non-negative, so two
    concurrent redemptions cannot both spend the same points.
    """
    updated = (
        db.query(models.Profile)
        .filter(models.Profile.id == user_id)
        .filter(models.Profile.loyalty_points + delta >= 0)
        .update({"loyalty_points": models.Profile.loyalty_points + delta}, synchronize_session=False)
    )
    if updated == 0:
        exists = db.query(models.Profile.id).filter(models.Profile.id == user_id).scalar()
        if exists is None:
            raise NotFound("profile not found")
        raise InsufficientPoints(get_profile_balance(db, user_id), -delta)
    profile = db.get(models.Profile, user_id)
    if profile is not None:
        db.refresh(profile)
    return get_profile_balance(db, user_id)


def create_transaction(db: Session, record: dict) -> str:
    transaction = models.Transaction(**record)
    db.add(transaction)
    db.flush()
    return transaction.id


def get_transaction(db: Session, transaction_id: str) -> models.Transaction:
    transaction = db.get(models.Transaction, transaction_id)
    if not transaction:
        raise NotFound("transaction not found")
    return transaction


def list_transactions(db: Session, user_id: str) -> list[models.Transaction]:
    return (
        db.query(models.Transaction)
        .options(joinedload(models.Transaction.game), joinedload(models.Transaction.product))
        .filter_by(user_id=user_id)
        .order_by(models.Transaction.created_at.desc(), models.Transaction.id)
        .all()
    )
