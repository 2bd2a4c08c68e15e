from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # DB
    DATABASE_URL: str = "sqlite:///./database.db"

    # Security / JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Payment gateway
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"

    # Downstream invoice / email functions
    FUNCTIONS_BASE_URL: str = ""
    SERVICE_ROLE_KEY: str = ""
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Used when invoice_settings has no row
    DEFAULT_SELLER_STATE: str = "Maharashtra"
    DEFAULT_PLATFORM_FEE_PERCENTAGE: Decimal = Decimal("2")
    DEFAULT_PLATFORM_FEE_TAXABLE: bool = False
    DEFAULT_GST_RATE: Decimal = Decimal("18")

    LOW_STOCK_THRESHOLD: int = 10

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
