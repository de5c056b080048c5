from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./codescore.db"

    # JWT
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Share links expire together with the review they point at
    share_token_expire_days: int = 7

    # Frontend URL for CORS and the request-access redirect
    frontend_url: str = "http://localhost:3000"

    # Public URL of this API, used to build approve/deny links in admin email
    public_base_url: str = "http://localhost:8000"

    # Single administrator: receives approval emails, bootstrapped at startup if password set
    admin_email: str = "admin@example.com"
    admin_password: str = ""

    min_password_length: int = 6

    # DeepSeek (OpenAI-compatible chat completions)
    deepseek_api_key: str = ""
    deepseek_api_url: str = "https://api.deepseek.com/v1/chat/completions"
    deepseek_model: str = "deepseek-coder"
    ai_timeout_seconds: float = 60.0

    # SMTP (empty host = log notifications instead of sending)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    mail_from: str = "CodeScore <no-reply@codescore.local>"

    # Code review retention
    review_retention_days: int = 7
    sweep_interval_seconds: int = 60 * 60 * 24
    sweep_enabled: bool = True

    # Redis (optional lock for the retention sweep; empty = no Redis)
    redis_url: str = ""  # e.g. redis://localhost:6379/0

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
