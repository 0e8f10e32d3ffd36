"""
Client configuration using Pydantic Settings.

All configuration is read from environment variables prefixed with
``GALLERY_``, with defaults suitable for local development.
"""

from pydantic import Field
from pydantic_settings import BaseSettings

ONE_YEAR_SECONDS = 365 * 24 * 60 * 60


class Settings(BaseSettings):
    """Central client configuration."""

    # Hosts
    primary_host: str = Field(
        default="https://e-hentai.org/",
        description="Primary (unrestricted) gallery host",
    )
    restricted_host: str = Field(
        default="https://exhentai.org/",
        description="Restricted host requiring elevated session cookies",
    )
    mirror_host: str = Field(
        default="https://s.exhentai.org/",
        description="Failover mirror of the restricted host",
    )
    control_host: str = Field(
        default="https://e-hentai.org/",
        description="Host the client is browsing; receives the skip-server marker cookie",
    )
    login_url: str = Field(
        default="https://forums.e-hentai.org/index.php?act=Login&CODE=01",
        description="Form endpoint credentials are posted to",
    )

    # Cookies
    member_id_cookie: str = Field(default="ipb_member_id")
    pass_hash_cookie: str = Field(default="ipb_pass_hash")
    igneous_cookie: str = Field(default="igneous")
    skip_server_cookie: str = Field(default="skipserver")
    yay_cookie: str = Field(default="yay")
    ignore_offensive_cookie: str = Field(default="nw")
    mystery_value: str = Field(
        default="mystery",
        description="Server-issued placeholder value that is not a real session",
    )
    cookie_ttl: int = Field(
        default=ONE_YEAR_SECONDS,
        description="Default lifetime in seconds for cookies written by the client",
    )

    # HTTP Client
    http_timeout: int = Field(
        default=30,
        description="Timeout in seconds for outbound HTTP requests",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (GalleryClient)",
        description="User-Agent header sent with every request",
    )

    # MongoDB (gallery cache)
    mongo_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI",
    )
    mongo_db_name: str = Field(
        default="gallery_client",
        description="MongoDB database name",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    model_config = {
        "env_prefix": "GALLERY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


# Singleton, import this throughout the package
settings = Settings()
