from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # ── Application ──────────────────────────────────────────────
    app_name: str = "Gymdesk Back Office"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    api_version: str = "v1"

    # ── Storage ──────────────────────────────────────────────────
    store_backend: str = "mongo"  # "mongo" | "sql"
    mongodb_uri: Optional[str] = None
    database_name: str = "gymdesk_db"
    sql_url: str = "sqlite:///./gymdesk.db"
    sql_echo: bool = False

    # ── Session / Security ───────────────────────────────────────
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    session_cookie_name: str = "employee_session"
    session_max_age_hours: int = 8
    dev_session_max_age_hours: int = 24
    max_login_attempts: int = 5
    lockout_minutes: int = 15
    min_password_length: int = 8

    # ── CORS ─────────────────────────────────────────────────────
    cors_allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    cors_allow_credentials: bool = True
    cors_allowed_methods: list[str] = ["*"]
    cors_allowed_headers: list[str] = ["*"]

    # ── Rate limiting ────────────────────────────────────────────
    rate_limit_enabled: bool = True

    # ── monday.com integration ───────────────────────────────────
    monday_api_token: Optional[str] = None
    monday_api_url: str = "https://api.monday.com/v2"
    monday_api_version: str = "2023-10"
    monday_timeout_seconds: float = 30.0
    monday_retry_attempts: int = 3
    monday_retry_delay_ms: int = 1000
    monday_request_delay_ms: int = 200
    monday_page_size: int = 100
    monday_webhook_secret: Optional[str] = None
    monday_members_board_id: Optional[str] = None
    monday_contracts_board_id: Optional[str] = None
    monday_payments_board_id: Optional[str] = None
    monday_employees_board_id: Optional[str] = None

    # ── Payment gateway ──────────────────────────────────────────
    payment_webhook_secret: Optional[str] = None
    default_currency: str = "MXN"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def monday_board_ids(self) -> dict[str, str]:
        """Configured board id per sync entity (missing boards are omitted)."""
        boards = {
            "members": self.monday_members_board_id,
            "contracts": self.monday_contracts_board_id,
            "payments": self.monday_payments_board_id,
            "employees": self.monday_employees_board_id,
        }
        return {entity: str(board) for entity, board in boards.items() if board}


# ── Module-level singleton ──────────────────────────────────────
settings = Settings()
