"""Application settings loaded from environment variables.

Environment Configuration:
    MINIX_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: SQLAlchemy connection string for the row store (required)
    CORS_ORIGINS: Comma-separated browser origins allowed to call the API
    LOG_JSON: Render logs as JSON (true) or console-friendly text (false)

Direct Message Configuration:
    MEDIA_BASE_URL: Prefix for synthesized media URLs
    AVATAR_BASE_URL: Prefix for seeded avatar URLs (username is appended)
    DEFAULT_PROFILE_TITLE: Title shown for users outside the directory
    DM_BOT_USERNAME: Directory contact that opens every welcome thread
    DM_WELCOME_TEXT: Greeting inserted into a new user's welcome thread
    DM_DIRECTORY_CONTACTS: JSON list of {id, username, display_name, title, avatar_url}

Note: The directory is plain configuration. It is handed to the directory
seeder at call time; nothing in the process holds it as mutable state.
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class DirectoryContact(BaseModel):
    """A mock participant identity that is always present in the user table."""

    id: str
    username: str
    display_name: str
    title: str
    avatar_url: str


DEFAULT_DIRECTORY_CONTACTS: list[DirectoryContact] = [
    DirectoryContact(
        id="11111111-1111-4111-8111-111111111111",
        username="launch-labs",
        display_name="Launch Labs",
        title="Product & Growth",
        avatar_url="https://api.dicebear.com/7.x/notionists/svg?seed=launch-labs",
    ),
    DirectoryContact(
        id="22222222-2222-4222-8222-222222222222",
        username="growth-mate",
        display_name="Growth Mate",
        title="Lifecycle",
        avatar_url="https://api.dicebear.com/7.x/notionists/svg?seed=growth-mate",
    ),
    DirectoryContact(
        id="33333333-3333-4333-8333-333333333333",
        username="dm-bot",
        display_name="Direct Message Bot",
        title="Automation",
        avatar_url="https://api.dicebear.com/7.x/bottts/svg?seed=dm-bot",
    ),
]

DEFAULT_WELCOME_TEXT = "Hi! I am a mock DM bot. Send me anything to see the persisted response."


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL is always required
    - SQLite URLs are rejected in staging and prod
    - Directory usernames and ids must be unique
    """

    minix_env: Environment = Field(default=Environment.LOCAL, alias="MINIX_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000", alias="CORS_ORIGINS"
    )
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Direct message settings
    media_base_url: str = Field(default="https://mock.api/media", alias="MEDIA_BASE_URL")
    avatar_base_url: str = Field(
        default="https://api.dicebear.com/7.x/notionists/svg?seed=", alias="AVATAR_BASE_URL"
    )
    default_profile_title: str = Field(default="Beta Tester", alias="DEFAULT_PROFILE_TITLE")
    dm_bot_username: str = Field(default="dm-bot", alias="DM_BOT_USERNAME")
    dm_welcome_text: str = Field(default=DEFAULT_WELCOME_TEXT, alias="DM_WELCOME_TEXT")
    dm_directory_contacts: list[DirectoryContact] = Field(
        default_factory=lambda: list(DEFAULT_DIRECTORY_CONTACTS),
        alias="DM_DIRECTORY_CONTACTS",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("media_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Reject configurations that cannot work in the selected environment."""
        if self.minix_env in (Environment.STAGING, Environment.PROD):
            if self.database_url.startswith("sqlite"):
                raise ValueError(
                    f"DATABASE_URL must not be SQLite for MINIX_ENV={self.minix_env.value}"
                )

        usernames = [c.username for c in self.dm_directory_contacts]
        if len(set(usernames)) != len(usernames):
            raise ValueError("DM_DIRECTORY_CONTACTS contains duplicate usernames")
        ids = [c.id for c in self.dm_directory_contacts]
        if len(set(ids)) != len(ids):
            raise ValueError("DM_DIRECTORY_CONTACTS contains duplicate ids")

        return self

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def bot_contact(self) -> DirectoryContact | None:
        """Return the directory contact that owns welcome threads, if configured."""
        for contact in self.dm_directory_contacts:
            if contact.username == self.dm_bot_username:
                return contact
        return None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
