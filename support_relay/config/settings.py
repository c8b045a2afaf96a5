"""
Support Relay Configuration Management

Provides centralized configuration handling for the support form pipeline,
the spam classifier, the delivery retry policy and the helpdesk providers.

Design Considerations:
- Environment-driven settings with .env support
- Deployment additions to spam rules extend, never replace, the defaults
- Provider credentials kept as secrets
- Validation of inconsistent limits at load time
"""

from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings


DEFAULT_PRIORITY_MAP: Dict[str, int] = {
    "low": 1,
    "normal": 2,
    "high": 3,
    "urgent": 4,
}


class SpamSettings(BaseModel):
    """Spam classifier options."""
    log_spam: bool = Field(
        default=True,
        description="Emit an audit log record for every rejected submission"
    )
    log_channel: str = Field(
        default="support_relay.spam",
        description="Logger name receiving spam audit records"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Dedicated file for spam audit records"
    )
    min_message_length: int = Field(
        default=10,
        ge=0,
        description="Messages shorter than this are rejected"
    )
    max_message_length: int = Field(
        default=10000,
        ge=1,
        description="Messages longer than this are rejected"
    )
    patterns: List[str] = Field(
        default_factory=list,
        description="Additional regular expressions appended to the defaults"
    )
    forbidden_words: List[str] = Field(
        default_factory=list,
        description="Additional forbidden words appended to the defaults"
    )
    check_gibberish_names: bool = Field(
        default=True,
        description="Reject names that look machine generated"
    )

    @model_validator(mode="after")
    def check_length_bounds(self) -> "SpamSettings":
        if self.min_message_length > self.max_message_length:
            raise ValueError("min_message_length must not exceed max_message_length")
        return self


class DeliverySettings(BaseModel):
    """Retry policy for asynchronous helpdesk delivery."""
    max_attempts: int = Field(default=5, ge=1)
    backoff: Tuple[int, ...] = Field(
        default=(30, 60, 300, 900, 3600),
        description="Seconds to wait before each retry"
    )
    attempt_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound for a single delivery attempt in seconds"
    )
    record_failures: bool = Field(
        default=True,
        description="Mark the local record as failed once retries are exhausted"
    )

    @field_validator("backoff")
    @classmethod
    def validate_backoff(cls, value: Tuple[int, ...]) -> Tuple[int, ...]:
        if not value:
            raise ValueError("backoff schedule must contain at least one delay")
        if any(delay < 0 for delay in value):
            raise ValueError("backoff delays must be non-negative")
        return value


class KayakoSettings(BaseSettings):
    """
    Kayako helpdesk credentials and case defaults.

    Either OAuth client credentials (client_id/client_secret) or basic-auth
    credentials (email/password) make the provider usable.
    """
    url: str = Field(default="", description="Kayako instance base URL")
    client_id: str = Field(default="")
    client_secret: SecretStr = Field(default=SecretStr(""))
    email: str = Field(default="", description="Agent email for basic auth")
    password: SecretStr = Field(default=SecretStr(""))
    scopes: str = Field(default="users conversations")
    channel: str = Field(default="MAIL")
    channel_id: int = Field(default=1)
    timeout: float = Field(default=30.0, gt=0)
    customer_role_id: int = Field(default=4)
    priority_map: Dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_PRIORITY_MAP))

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return (value or "").strip().rstrip("/")

    model_config = {
        "env_prefix": "KAYAKO_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }


class SupportSettings(BaseSettings):
    """
    Top-level support relay settings.

    Loaded from SUPPORT_* environment variables (nested values use a double
    underscore delimiter, e.g. SUPPORT_SPAM__MIN_MESSAGE_LENGTH) or passed
    explicitly by the host application.
    """
    provider: str = Field(
        default="null",
        description="Provider key: 'null'/'local' or 'kayako'"
    )
    form_handle: str = Field(
        default="support_contact",
        description="Only submissions of this form are processed"
    )
    queue: str = Field(default="default", description="Queue name for delivery tasks")
    field_mapping: Dict[str, str] = Field(
        default_factory=lambda: {"email": "email", "message": "message"},
        description="Canonical field name -> form field handle"
    )
    database_url: str = Field(default="sqlite:///data/support_relay.db")
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    attachments_dir: Optional[str] = Field(
        default=None,
        description="Directory holding uploaded files; attachment references are file names in it"
    )

    spam: SpamSettings = Field(default_factory=SpamSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)
    kayako: KayakoSettings = Field(default_factory=KayakoSettings)

    @field_validator("provider")
    @classmethod
    def normalize_provider(cls, value: str) -> str:
        return (value or "null").strip().lower()

    @field_validator("field_mapping")
    @classmethod
    def validate_field_mapping(cls, value: Dict[str, str]) -> Dict[str, str]:
        if "email" not in value or "message" not in value:
            raise ValueError("field_mapping must map at least 'email' and 'message'")
        return value

    model_config = {
        "env_prefix": "SUPPORT_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }


def get_settings() -> SupportSettings:
    """
    Load and validate support relay settings.

    Returns:
        Validated settings object

    Raises:
        ValidationError: If configuration fails validation
    """
    load_dotenv()
    return SupportSettings()
