from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./mjengo.db"
    ENVIRONMENT: str = "production"  # 'development' exposes error details
    BASE_URL: str = "http://localhost:8000"

    # Sessions
    JWT_SECRET: str = ""  # Required to issue sessions
    JWT_ALGORITHM: str = "HS256"
    SESSION_EXPIRE_HOURS: int = 24
    SESSION_COOKIE_NAME: str = "session"

    # Metering & pricing (amounts in currency minor units)
    FREE_CALCULATIONS: int = 3
    SUBSCRIPTION_PRICE: int = 50000  # 500 KES
    SUBSCRIPTION_DAYS: int = 30
    TOKEN_UNIT_PRICE: int = 100
    CURRENCY: str = "KES"

    # Email verification
    CODE_TTL_MINUTES: int = 15
    CODE_MAX_ATTEMPTS: int = 5
    CODE_REQUESTS_PER_HOUR: int = 10
    EMAIL_MX_CHECK: bool = True
    DISPOSABLE_DOMAINS_EXTRA: str = ""  # comma-separated

    # Paystack
    PAYSTACK_SECRET_KEY: str = ""
    PAYSTACK_BASE_URL: str = "https://api.paystack.co"

    # SMTP notifier. Empty SMTP_HOST logs codes in development
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "Construction Calculator <noreply@construction.com>"

    MATERIALS_LOG_PATH: str = "materials.txt"
    ADMIN_API_KEY: str = ""

    class Config:
        env_file = ".env"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def subscribe_url(self) -> str:
        return f"{self.BASE_URL.rstrip('/')}/api/paystack/subscribe"


settings = Settings()
