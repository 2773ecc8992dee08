from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Shop API
    API_BASE_URL: str = "http://localhost:8000/api"
    REQUEST_TIMEOUT_SECONDS: float = 15.0

    # Promotions
    FREE_GIFT_THRESHOLD: Decimal = Decimal("10000")

    # Orders
    CANCELLATION_WINDOW_HOURS: int = 24
    CHARGE_SHIPPING: bool = False
    SHIPPING_MODE: Literal["amount", "weight"] = "amount"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
