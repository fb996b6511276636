# storefront/config.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from pathlib import Path


class Settings(BaseSettings):
    ENV: str = "development"
    STORE_NAME: str = "TechStore"
    DATA_DIR: Path = Path("data")  # where CSV / XLSX files will live
    USERS_FILE: str = "users.csv"
    PRODUCTS_FILE: str = "products.csv"
    CATEGORIES_FILE: str = "categories.csv"
    ORDERS_FILE: str = "orders.csv"
    CARTS_FILE: str = "carts.csv"
    WISHLISTS_FILE: str = "wishlists.csv"
    REVIEWS_FILE: str = "reviews.csv"
    SETTINGS_FILE: str = "site_settings.csv"

    image_dir: str = "static/images"

    # auth
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30

    # Mercado Pago. Leave the token empty to run the gateway in mock mode.
    MERCADOPAGO_ACCESS_TOKEN: str = ""
    MERCADOPAGO_API_URL: str = "https://api.mercadopago.com"
    MERCADOPAGO_TIMEOUT: float = 10.0
    BASE_URL: str = "http://localhost:8000"
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = ""  # comma separated

    # payment-method discounts, in percent of the subtotal
    PIX_DISCOUNT_PERCENT: str = "5"
    BOLETO_DISCOUNT_PERCENT: str = "0"
    CREDIT_CARD_DISCOUNT_PERCENT: str = "0"
    MAX_INSTALLMENTS: int = 10

    # Example .env:
    # DATA_DIR=./data
    # MERCADOPAGO_ACCESS_TOKEN=TEST-123...
    # BOLETO_DISCOUNT_PERCENT=3

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
