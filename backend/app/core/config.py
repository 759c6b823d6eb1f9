from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./medequip.db"
    SECRET_KEY: str = "dev-insecure-key-change-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS origins, given as a JSON list in the environment
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Account lockout
    MAX_LOGIN_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 15

    LOG_LEVEL: str = "INFO"

    # Folios are dated in the distributor's local calendar
    TIMEZONE: str = "America/Mexico_City"
    FOLIO_PREFIX: str = "BHL"
    FOLIO_MAX_ATTEMPTS: int = 3

    # Quote defaults
    DEFAULT_TAX_RATE: Decimal = Decimal("0.16")
    DEFAULT_CURRENCY: str = "MXN"
    TERMS_PAYMENT_CONDITIONS: str = "100% Anticipado a la entrega. (Transferencia Bancaria)"
    TERMS_DELIVERY_TIME: str = "15 días hábiles"
    TERMS_WARRANTY: str = "Garantía: 12 meses sobre defectos de fabricación."
    TERMS_OBSERVATIONS: str = (
        "Sin más por el momento, nos ponemos a sus órdenes para cualquier duda "
        "y/o información adicional."
    )


settings = Settings()
