from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "FlightBot API"
    # Comma-separated origins for CORS (e.g. https://chat.example.com). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./flightbot.db"

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    # Conversation state between turns
    SESSION_BACKEND: str = "memory"  # memory|redis
    SESSION_TTL_SECONDS: int = 86400
    CARD_DATA_TTL_SECONDS: int = 600  # while a session holds card details

    # Booking dialog
    DIALOG_RETRY_POLICY: str = "restart"  # restart|reprompt
    PERSISTENCE_RETRY_ATTEMPTS: int = 3
    PERSISTENCE_RETRY_BACKOFF: float = 0.2

    @field_validator("DIALOG_RETRY_POLICY", "SESSION_BACKEND", mode="after")
    @classmethod
    def lower_choice(cls, v: str, info) -> str:
        v = (v or "").strip().lower()
        allowed = {"DIALOG_RETRY_POLICY": ("restart", "reprompt"), "SESSION_BACKEND": ("memory", "redis")}[info.field_name]
        if v not in allowed:
            raise ValueError(f"{info.field_name} must be one of {', '.join(allowed)}")
        return v

    # Payments. Sandbox is the mocked gateway; turn it off to charge through Cybersource.
    PAYMENT_SANDBOX: bool = True
    PAYMENT_DECLINE_RATE: float = 0.0
    PAYMENT_LOCATION_ID: str = ""  # opaque pass-through for the gateway

    # Cybersource (HTTP Signature / REST Payments)
    CYBS_ENV: str = "test"  # test|prod
    CYBS_HOST: str = "apitest.cybersource.com"
    CYBS_MERCHANT_ID: str = ""
    CYBS_KEY_ID: str = ""
    CYBS_SECRET_KEY_B64: str = ""

    # Confirmation email
    SEND_CONFIRMATION_EMAIL: bool = False
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "bookings@flightbot.local"

    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = ""


settings = Settings()
