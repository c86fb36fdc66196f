from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Preferred for server-side access, bypasses RLS

    # Auth / JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12
    remember_me_expire_days: int = 30
    auth_cookie_name: str = "navibot_session"

    # One-shot tokens
    password_reset_expire_minutes: int = 30
    verification_expire_hours: int = 24
    invitation_expire_days: int = 7

    # Email (SMTP)
    email_enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    email_from: str = "noreply@navibot.com"
    email_from_name: str = "NaviBot"

    # Public URLs
    public_url: str = "http://localhost:3000"  # frontend, used in email links
    base_url: Optional[str] = None  # this API as seen by providers, used for webhooks

    # Channels
    dispara_ja_base_url: str = "https://disparaja.com/api"
    whatsapp_graph_url: str = "https://graph.facebook.com/v17.0"
    whatsapp_verify_token: str = "navibot"
    http_timeout_seconds: float = 30.0

    # App
    app_name: str = "navibot-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    auth_rate_limit: str = "10/minute"  # login, registration and email-sending endpoints
    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
