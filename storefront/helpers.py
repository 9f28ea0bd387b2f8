import hashlib
import json
from typing import Optional

from storefront.config import payment_method_labels, settings
from storefront.errors import ValidationError
from storefront.loyalty import voucher_state
from storefront.models import models


def hash_request(body: dict) -> str:
    return hashlib.sha256(json.dumps(body, sort_keys=True).encode()).hexdigest()


def validate_payment_method(payment_method: str):
    if payment_method not in settings.supported_payment_methods:
        raise ValidationError("unsupported payment method")


def validate_required_id(field: str, value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required")
    return value


def validate_user_game_id(user_game_id: str) -> str:
    value = (user_game_id or "").strip()
    if len(value) < settings.user_game_id_min_length:
        raise ValidationError(f"userGameId must be at least {settings.user_game_id_min_length} characters")
    if len(value) > settings.user_game_id_max_length:
        raise ValidationError(f"userGameId must be at most {settings.user_game_id_max_length} characters")
    return value


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_game(game: models.Game) -> dict:
    return {
        "id": game.id,
        "name": game.name,
        "slug": game.slug,
        "description": game.description,
        "thumbnailUrl": game.thumbnail_url,
    }


def serialize_product(product: models.Product) -> dict:
    return {
        "id": product.id,
        "gameId": product.game_id,
        "name": product.name,
        "price": product.price,
        "currencyAmount": product.currency_amount,
    }


def serialize_voucher(voucher: models.Voucher) -> dict:
    return {
        "id": voucher.id,
        "name": voucher.name,
        "description": voucher.description,
        "discountPercentage": voucher.discount_percentage,
        "pointsRequired": voucher.points_required,
    }


def serialize_user_voucher(user_voucher: models.UserVoucher) -> dict:
    return {
        "id": user_voucher.id,
        "voucherId": user_voucher.voucher_id,
        "pointsSpent": user_voucher.points_spent,
        "state": voucher_state(user_voucher).value,
        "isUsed": user_voucher.is_used,
        "usedAt": _isoformat(user_voucher.used_at),
        "createdAt": _isoformat(user_voucher.created_at),
        "voucher": serialize_voucher(user_voucher.voucher),
    }


def serialize_transaction(transaction: models.Transaction) -> dict:
    return {
        "id": transaction.id,
        "gameId": transaction.game_id,
        "gameName": transaction.game.name if transaction.game else None,
        "productId": transaction.product_id,
        "productName": transaction.product.name if transaction.product else None,
        "userGameId": transaction.user_game_id,
        "paymentMethod": transaction.payment_method,
        "paymentMethodLabel": payment_method_labels.get(transaction.payment_method, transaction.payment_method),
        "totalPrice": transaction.total_price,
        "pointsEarned": transaction.points_earned,
        "userVoucherId": transaction.user_voucher_id,
        "status": transaction.status,
        "createdAt": _isoformat(transaction.created_at),
    }


def serialize_profile(profile: models.Profile) -> dict:
    return {
        "id": profile.id,
        "name": profile.name,
        "loyaltyPoints": profile.loyalty_points,
    }
