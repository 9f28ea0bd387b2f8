"""
Purchase and redemption workflows.

Each workflow is one database transaction: store calls only flush, and the
session is committed here once every step has been confirmed, or rolled back
before the error reaches the caller.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront import db as store
from storefront.config import TransactionStatus
from storefront.errors import AlreadyUsed, NotFound, StoreUnavailable, StorefrontError, ValidationError
from storefront.helpers import (
    hash_request,
    serialize_game,
    serialize_product,
    serialize_profile,
    serialize_transaction,
    serialize_user_voucher,
    serialize_voucher,
    validate_payment_method,
    validate_required_id,
    validate_user_game_id,
)
from storefront.logging_config import get_logger
from storefront.loyalty import accrue_points, redeem_voucher as check_redemption
from storefront.pricing import compute_price
from storefront.schemas.app_schemas import PurchaseRequest

logger = get_logger(__name__)


@contextmanager
def unit_of_work(db: Session, commit: bool = True):
    try:
        yield db
        if commit:
            db.commit()
    except StorefrontError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store call failed: error=%s", exc)
        raise StoreUnavailable("store unavailable") from exc


def _simulate_payment(payment_method: str, amount: int) -> TransactionStatus:
    # Every supported method settles immediately.
    logger.info("Simulated payment settled method=%s amount=%s", payment_method, amount)
    return TransactionStatus.SUCCESS


def purchase(
    db: Session,
    user_id: str,
    request: PurchaseRequest,
    idempotency_key: Optional[str] = None,
) -> dict:
    """
    Buy a product for user_id, optionally applying one of the user's redeemed vouchers.

    Steps run in order: validate, price, record the transaction as pending,
    consume the voucher, credit points, mark success, commit. Any failure
    rolls the whole purchase back and is raised to the caller.
    """
    if not user_id:
        raise ValidationError("user id is required")
    game_id = validate_required_id("gameId", request.gameId)
    product_id = validate_required_id("productId", request.productId)
    user_game_id = validate_user_game_id(request.userGameId)
    validate_payment_method(request.paymentMethod)
    body_hash = hash_request(request.model_dump())

    with unit_of_work(db):
        if idempotency_key:
            existing = store.get_or_create_idempotency(db, idempotency_key, user_id, body_hash)
            if existing:
                logger.info("Replaying purchase for idempotency key=%s user=%s", idempotency_key, user_id)
                return existing

        product = store.get_product(db, product_id)
        if product.game_id != game_id:
            raise ValidationError("product does not belong to game")
        if not product.is_active or not product.game.is_active:
            raise ValidationError("product is not available")

        user_voucher = None
        if request.userVoucherId:
            user_voucher = store.get_user_voucher(db, request.userVoucherId, user_id)
            if user_voucher.is_used:
                logger.warning(
                    "Rejected purchase with used voucher user=%s userVoucherId=%s", user_id, user_voucher.id
                )
                raise AlreadyUsed(f"user voucher {user_voucher.id} already used")

        total_price = compute_price(product.price, user_voucher.voucher if user_voucher else None)
        points_earned = accrue_points(total_price)

        transaction_id = store.create_transaction(
            db,
            {
                "user_id": user_id,
                "game_id": product.game_id,
                "product_id": product.id,
                "user_game_id": user_game_id,
                "payment_method": request.paymentMethod,
                "total_price": total_price,
                "points_earned": points_earned,
                "user_voucher_id": user_voucher.id if user_voucher else None,
                "status": TransactionStatus.PENDING.value,
            },
        )

        status = _simulate_payment(request.paymentMethod, total_price)
        if user_voucher:
            store.mark_user_voucher_used(db, user_voucher.id, user_id, datetime.now(timezone.utc))
        store.ensure_profile(db, user_id)
        balance = store.atomic_adjust_balance(db, user_id, points_earned)

        transaction = store.get_transaction(db, transaction_id)
        transaction.status = status.value
        db.add(transaction)
        db.flush()
        db.refresh(transaction)
        response = serialize_transaction(transaction)
        if idempotency_key:
            try:
                store.store_idempotency(db, idempotency_key, user_id, body_hash, response)
            except IntegrityError:
                # A concurrent submission with the same key committed first: drop ours, replay theirs.
                db.rollback()
                existing = store.get_or_create_idempotency(db, idempotency_key, user_id, body_hash)
                if existing is None:
                    raise
                logger.info("Replaying purchase for idempotency key=%s user=%s", idempotency_key, user_id)
                return existing

    logger.info(
        "Completed purchase transactionId=%s user=%s product=%s totalPrice=%s pointsEarned=%s userVoucherId=%s balance=%s",
        transaction_id,
        user_id,
        product.id,
        total_price,
        points_earned,
        request.userVoucherId,
        balance,
    )
    return response


def redeem_voucher(db: Session, user_id: str, voucher_id: str) -> dict:
    """
    Exchange loyalty points for a new instance of a voucher.

    The balance check is advisory; the conditional decrement in the store is
    what guarantees points are never over-spent.
    """
    if not user_id:
        raise ValidationError("user id is required")
    with unit_of_work(db):
        voucher = store.get_voucher_template(db, voucher_id)
        if not voucher.is_active:
            raise NotFound("voucher not found")
        profile = store.ensure_profile(db, user_id)
        try:
            redemption = check_redemption(profile.loyalty_points, voucher)
        except StorefrontError:
            logger.warning(
                "Rejected redemption user=%s voucher=%s balance=%s required=%s",
                user_id,
                voucher.id,
                profile.loyalty_points,
                voucher.points_required,
            )
            raise
        balance = store.atomic_adjust_balance(db, user_id, -redemption.points_spent)
        user_voucher = store.create_user_voucher(db, user_id, voucher.id, redemption.points_spent)
        db.refresh(user_voucher)
        response = {
            "loyaltyPoints": balance,
            "userVoucher": serialize_user_voucher(user_voucher),
        }

    logger.info(
        "Redeemed voucher user=%s voucher=%s userVoucherId=%s pointsSpent=%s balance=%s",
        user_id,
        voucher.id,
        user_voucher.id,
        redemption.points_spent,
        balance,
    )
    return response


def list_games(db: Session) -> list[dict]:
    with unit_of_work(db, commit=False):
        return [serialize_game(game) for game in store.list_active_games(db)]


def get_game(db: Session, slug: str) -> dict:
    with unit_of_work(db, commit=False):
        game = store.get_game_by_slug(db, slug)
        payload = serialize_game(game)
        payload["products"] = [serialize_product(p) for p in store.list_active_products(db, game.id)]
        return payload


def list_vouchers(db: Session) -> list[dict]:
    with unit_of_work(db, commit=False):
        return [serialize_voucher(v) for v in store.list_active_vouchers(db)]


def get_vault(db: Session, user_id: str) -> dict:
    with unit_of_work(db, commit=False):
        transactions = store.list_transactions(db, user_id)
        return {
            "loyaltyPoints": store.get_profile_balance(db, user_id),
            "successfulTransactions": sum(
                1 for t in transactions if t.status == TransactionStatus.SUCCESS.value
            ),
            "vouchers": [serialize_voucher(v) for v in store.list_active_vouchers(db)],
            "userVouchers": [serialize_user_voucher(uv) for uv in store.list_user_vouchers(db, user_id)],
            "transactions": [serialize_transaction(t) for t in transactions],
        }


def get_profile(db: Session, user_id: str) -> dict:
    with unit_of_work(db):
        return serialize_profile(store.ensure_profile(db, user_id))


def rename_profile(db: Session, user_id: str, name: str) -> dict:
    name = (name or "").strip()
    if not name or len(name) > 100:
        raise ValidationError("name must be 1-100 characters")
    with unit_of_work(db):
        profile = store.update_profile_name(db, user_id, name)
        response = serialize_profile(profile)
    logger.info("Updated profile name user=%s", user_id)
    return response
