"""
Configuration of the identity server.

Settings are loaded from the environment (prefix ``IS_``, nested groups
separated by ``__``) and an optional ``.env`` file. Services never keep a
settings object around: they read the current snapshot from a
``SettingsHolder`` so that a reload swaps the whole configuration at once.
"""
from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_seconds(value: Any) -> Any:
    """Read a plain number, as environment variables carry it, as seconds.

    Other values, such as ISO 8601 durations, go to pydantic unchanged.
    """
    if isinstance(value, str):
        try:
            return timedelta(seconds=float(value.strip()))
        except (ValueError, OverflowError):
            return value
    return value


Duration = Annotated[timedelta, BeforeValidator(parse_seconds)]


class InvitationSettings(BaseModel):
    """Invitation requirements for user registration."""
    required: bool = False
    token_ttl: Duration = timedelta(days=7)


class ContactInfoValidationSettings(BaseModel):
    """Email validation requirements for user registration."""
    required: bool = False
    token_ttl: Duration = timedelta(days=2)
    retry_interval: Duration = timedelta(hours=1)


class AdminApprovalSettings(BaseModel):
    required: bool = False


class PasswordRequirements(BaseModel):
    """Password strength requirements."""
    min_length: int = 8
    max_length: int = 1000
    min_uppercase: int = 1
    min_digits: int = 1
    min_special: int = 0
    reject_user_id: bool = True
    reject_common: bool = True


class UserRegistrationSettings(BaseModel):
    enabled: bool = True
    invitation: InvitationSettings = Field(default_factory=InvitationSettings)
    contact_info_validation: ContactInfoValidationSettings = Field(
        default_factory=ContactInfoValidationSettings
    )
    admin_approval: AdminApprovalSettings = Field(default_factory=AdminApprovalSettings)
    password_requirements: PasswordRequirements = Field(default_factory=PasswordRequirements)


class AuthCacheSettings(BaseModel):
    """Cross-request membership cache; a zero TTL disables the cache."""
    membership_ttl: Duration = timedelta(minutes=10)


class AdminRightsSettings(BaseModel):
    all: bool = False


class UserRightsSettings(BaseModel):
    """Whether non-admin users may create entities of each kind."""
    create_applications: bool = True
    create_clients: bool = True
    create_gateways: bool = True
    create_organizations: bool = True


class DeleteSettings(BaseModel):
    restore: Duration = timedelta(hours=24)


class EmailSettings(BaseModel):
    queue_size: int = 1024
    sender_address: str = "noreply@localhost"
    network_name: str = "LoRaWAN Network"


class ClusterSettings(BaseModel):
    """Keys that authenticate cluster-internal callers."""
    keys: List[SecretStr] = Field(default_factory=list)


class RedisSettings(BaseModel):
    url: Optional[str] = None
    password: Optional[SecretStr] = None
    db: int = 0
    key_prefix: str = "lorawan_is"


class DatabaseSettings(BaseModel):
    dsn: Optional[str] = None
    min_pool_size: int = 2
    max_pool_size: int = 10
    db_schema: str = "identity"


class IdentityServerSettings(BaseSettings):
    """Identity server settings."""

    model_config = SettingsConfigDict(
        env_prefix="IS_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "lorawan-identity"
    environment: str = "development"

    user_registration: UserRegistrationSettings = Field(default_factory=UserRegistrationSettings)
    auth_cache: AuthCacheSettings = Field(default_factory=AuthCacheSettings)
    admin_rights: AdminRightsSettings = Field(default_factory=AdminRightsSettings)
    user_rights: UserRightsSettings = Field(default_factory=UserRightsSettings)
    delete: DeleteSettings = Field(default_factory=DeleteSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    cluster: ClusterSettings = Field(default_factory=ClusterSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    blacklisted_ids: List[str] = Field(
        default_factory=lambda: [
            "admin", "administrator", "api", "console", "everyone",
            "identity-server", "network-server", "application-server",
            "join-server", "gateway-server", "root", "system", "ttn",
        ]
    )
    request_timeout: Duration = timedelta(seconds=30)
    temporary_password_ttl: Duration = timedelta(hours=1)
    secret_hash_iterations: int = 20000

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 1000

    def is_id_allowed(self, entity_id: str) -> bool:
        """Check an entity ID against the blacklist."""
        return entity_id.lower() not in {blocked.lower() for blocked in self.blacklisted_ids}

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


class SettingsHolder:
    """Holds the active settings snapshot.

    Readers take ``current`` once per operation; ``reload`` and ``replace``
    swap the snapshot in a single assignment.
    """

    def __init__(self, settings: Optional[IdentityServerSettings] = None):
        self._current = settings or IdentityServerSettings()

    @property
    def current(self) -> IdentityServerSettings:
        return self._current

    def replace(self, settings: IdentityServerSettings) -> None:
        self._current = settings

    def reload(self) -> IdentityServerSettings:
        """Load settings from the environment again and activate them."""
        self._current = IdentityServerSettings()
        return self._current


@lru_cache()
def get_settings() -> IdentityServerSettings:
    """Get cached settings instance."""
    return IdentityServerSettings()
