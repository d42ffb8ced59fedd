import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

class SlackSettings(BaseModel):
    bot_token: Optional[str] = Field(default=os.getenv("SLACK_BOT_TOKEN"))
    signing_secret: Optional[str] = Field(default=os.getenv("SLACK_SIGNING_SECRET"))
    command: str = os.getenv("SLACK_COMMAND", "/pto")

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.signing_secret)

class Config(BaseModel):
    app_name: str = "PTO Approval Service"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./pto.db")

    # Chat platform
    slack: SlackSettings = SlackSettings()
    home_recent_limit: int = int(os.getenv("HOME_RECENT_LIMIT", "5"))

    # Auto-provisioning of chat users retries transient store errors this many times
    user_provision_retries: int = int(os.getenv("USER_PROVISION_RETRIES", "3"))

    # Identity header carrying the caller's external (chat platform) id
    actor_header: str = "X-User-Id"
    request_id_header: str = "X-Request-ID"

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment == "production" and not settings.slack.enabled:
    _logger.warning("Slack credentials are not configured; only the REST API will be served.")
