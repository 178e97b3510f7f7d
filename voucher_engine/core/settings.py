import os


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _getenv_csv_set(name: str) -> set[str]:
    raw = _getenv(name)
    if raw is None:
        return set()
    parts = [p.strip().lower() for p in raw.split(",")]
    return {p for p in parts if p}


class Settings:
    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()

        self.database_url = _getenv("DATABASE_URL", "sqlite:///./vouchers.db") or "sqlite:///./vouchers.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=True)
        self.db_statement_timeout_ms = _getenv_int("DB_STATEMENT_TIMEOUT_MS", 5000)
        self.db_lock_timeout_ms = _getenv_int("DB_LOCK_TIMEOUT_MS", 3000)

        self.supabase_url = _getenv("SUPABASE_URL") or _getenv("VITE_SUPABASE_URL")
        self.supabase_anon_key = _getenv("SUPABASE_ANON_KEY") or _getenv("VITE_SUPABASE_ANON_KEY")
        self.supabase_service_role_key = _getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.supabase_jwt_audience = _getenv("SUPABASE_JWT_AUD", "authenticated")
        self.supabase_jwt_issuer = _getenv("SUPABASE_JWT_ISSUER")
        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")
        self.admin_emails = _getenv_csv_set("ADMIN_EMAILS")

        self.voucher_default_validity_months = _getenv_int("VOUCHER_DEFAULT_VALIDITY_MONTHS", 12)
        self.voucher_code_max_attempts = max(1, _getenv_int("VOUCHER_CODE_MAX_ATTEMPTS", 5))
        self.modification_window_hours = max(0, _getenv_int("MODIFICATION_WINDOW_HOURS", 48))
        self.max_free_reschedules = max(0, _getenv_int("MAX_FREE_RESCHEDULES", 1))

        self.notifications_enabled = _getenv_bool(
            "NOTIFICATIONS_ENABLED",
            default=(self.environment == "production"),
        )
        self.notifications_timeout_s = float(_getenv("NOTIFICATIONS_TIMEOUT_S", "10") or "10")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def resolved_cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins
        if raw is None:
            return ["http://localhost:5173", "http://localhost:8000"]
        if raw.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in raw.split(",") if o.strip()]
        return origins


settings = Settings()
