import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Force-load .env (reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


@dataclass(frozen=True)
class Settings:
    env: str = "production"
    database_url: str = "sqlite:///./storefront.db"
    jwt_secret: str = ""

    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    # shared key used to sign "<gateway order id>|<gateway payment id>"
    payment_signing_secret: str = ""
    currency: str = "inr"
    gateway_timeout_seconds: float = 10.0

    brevo_api_key: str = ""
    mail_sender_email: str = "orders@example.com"
    mail_sender_name: str = "Storefront"

    log_level: str = "INFO"

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            env=os.getenv("ENV", cls.env),
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
            stripe_publishable_key=os.getenv("STRIPE_PUBLISHABLE_KEY", ""),
            payment_signing_secret=os.getenv("PAYMENT_SIGNING_SECRET", ""),
            currency=os.getenv("CURRENCY", cls.currency).lower(),
            gateway_timeout_seconds=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10")),
            brevo_api_key=os.getenv("BREVO_API_KEY", ""),
            mail_sender_email=os.getenv("MAIL_SENDER_EMAIL", cls.mail_sender_email),
            mail_sender_name=os.getenv("MAIL_SENDER_NAME", cls.mail_sender_name),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
