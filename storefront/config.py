from enum import Enum
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    db_url: str = "sqlite:///./storefront.db"
    bearer_token: Optional[str] = None
    log_level: str = "INFO"
    points_unit: int = 10_000
    supported_payment_methods: list[str] = ["gopay", "ovo", "dana", "bank"]
    user_game_id_min_length: int = 3
    user_game_id_max_length: int = 50

settings = Settings()

class TransactionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"

class VoucherState(str, Enum):
    AVAILABLE = "available"
    USED = "used"

payment_method_labels = {
    "gopay": "GoPay",
    "ovo": "OVO",
    "dana": "DANA",
    "bank": "Transfer Bank",
}
