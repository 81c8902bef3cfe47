# authcore/core/config.py
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings:
    def __init__(self) -> None:
        # Only load .env for local/dev. In prod, env vars come from the service config.
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | prod
        if self.ENV != "prod":
            load_dotenv()

        # ----------------------------
        # Database
        # ----------------------------
        self.DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
        self.DB_HOST = os.getenv("DB_HOST", "")
        self.DB_PORT = os.getenv("DB_PORT", "5432")
        self.DB_NAME = os.getenv("DB_NAME", "")
        self.DB_APP_USER = os.getenv("DB_APP_USER", "")
        self.DB_APP_PASSWORD = os.getenv("DB_APP_PASSWORD", "")
        self.DB_SSLMODE = os.getenv("DB_SSLMODE", "require").strip().lower()

        # ----------------------------
        # Sessions
        # ----------------------------
        self.SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "auth_session")
        self.SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", "30"))
        # Past this many days after creation a validated session gets its cookie reissued.
        self.SESSION_FRESH_DAYS = int(os.getenv("SESSION_FRESH_DAYS", "15"))
        self.SESSION_COOKIE_SECURE = str_to_bool(
            os.getenv("SESSION_COOKIE_SECURE"), default=(self.ENV == "prod")
        )
        self.SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "lax")
        self.SESSION_COOKIE_PATH = os.getenv("SESSION_COOKIE_PATH", "/")

        # Hosts accepted by the origin check in addition to the request's own Host header.
        self.TRUSTED_ORIGIN_HOSTS = parse_csv(os.getenv("TRUSTED_ORIGIN_HOSTS"))

        # ----------------------------
        # Email verification
        # ----------------------------
        self.EMAIL_VERIFICATION_CODE_LENGTH = int(os.getenv("EMAIL_VERIFICATION_CODE_LENGTH", "8"))
        self.EMAIL_VERIFICATION_CODE_TTL_MINUTES = int(os.getenv("EMAIL_VERIFICATION_CODE_TTL_MINUTES", "15"))

        # ----------------------------
        # Email delivery
        # ----------------------------
        self.EMAIL_PROVIDER = os.getenv("EMAIL_PROVIDER", "resend").strip().lower()
        self.EMAIL_ENABLED = str_to_bool(os.getenv("EMAIL_ENABLED"), default=False)

        self.FROM_EMAIL = os.getenv("FROM_EMAIL", "")
        self.FROM_NAME = os.getenv("FROM_NAME", "Habittra")
        self.RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
        self.AWS_REGION = os.getenv("AWS_REGION", "")

        # SMTP (only relevant if EMAIL_PROVIDER=gmail/smtp)
        self.SMTP_HOST = os.getenv("SMTP_HOST", "")
        self.SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
        self.SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
        self.SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
        self.SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", "")
        self.SMTP_USE_TLS = str_to_bool(os.getenv("SMTP_USE_TLS", "true"), default=True)
        self.SMTP_USE_SSL = str_to_bool(os.getenv("SMTP_USE_SSL", "false"), default=False)

        # MailChannels (only relevant if EMAIL_PROVIDER=mailchannels)
        self.MAILCHANNELS_API_URL = os.getenv("MAILCHANNELS_API_URL", "https://api.mailchannels.net/tx/v1/send")
        self.DKIM_DOMAIN = os.getenv("DKIM_DOMAIN", "")
        self.DKIM_SELECTOR = os.getenv("DKIM_SELECTOR", "mailchannels")
        self.DKIM_PRIVATE_KEY = os.getenv("DKIM_PRIVATE_KEY", "")

        self._validate_sessions()

        # Final: fail fast in prod
        self._validate_prod()

    def _validate_sessions(self) -> None:
        # A window wider than the TTL would mean no session is ever reissued.
        if self.SESSION_FRESH_DAYS > self.SESSION_TTL_DAYS:
            raise RuntimeError("SESSION_FRESH_DAYS cannot exceed SESSION_TTL_DAYS")

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []

        if not self.DATABASE_URL:
            if not self.DB_HOST:
                missing.append("DB_HOST")
            if not self.DB_NAME:
                missing.append("DB_NAME")
            if not self.DB_APP_USER:
                missing.append("DB_APP_USER")
            if not self.DB_APP_PASSWORD:
                missing.append("DB_APP_PASSWORD")
            if self.DB_SSLMODE != "require":
                raise RuntimeError("DB_SSLMODE must be 'require' in prod")

        if not self.SESSION_COOKIE_SECURE:
            raise RuntimeError("SESSION_COOKIE_SECURE must be enabled in prod")

        if self.EMAIL_ENABLED and not (self.FROM_EMAIL or self.SMTP_FROM_EMAIL):
            missing.append("FROM_EMAIL")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"

    def _build_database_url(self, user: str, password: str) -> str:
        encoded_password = quote_plus(password)
        return (
            f"postgresql+psycopg2://{user}:{encoded_password}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?sslmode={self.DB_SSLMODE}"
        )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.DB_HOST:
            return self._build_database_url(self.DB_APP_USER, self.DB_APP_PASSWORD)
        # Local dev without Postgres
        return "sqlite:///./authcore.db"

    @property
    def session_ttl_seconds(self) -> int:
        return self.SESSION_TTL_DAYS * 24 * 3600

    @property
    def session_fresh_seconds(self) -> int:
        return self.SESSION_FRESH_DAYS * 24 * 3600


settings = Settings()
