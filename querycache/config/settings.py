"""Library settings loaded from environment variables via pydantic-settings.

Values are read from (highest priority first):

  1. Environment variables -- e.g. ``QUERY_CACHE_BACKEND=storage``
  2. A ``.env`` file in the working directory
  3. The defaults below

Field names map to upper-cased variable names automatically
(``cache_bucket`` ← ``CACHE_BUCKET``).  ``GOOGLE_APPLICATION_CREDENTIALS``
is the standard Google variable; it is read once here so the connection
hook never inspects the environment itself.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """querycache settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Cache backend ===
    # Which adapter main.build_query_cache() constructs.
    query_cache_backend: Literal["firestore", "datastore", "storage"] = "firestore"
    google_project_id: str = ""
    cache_collection: str = "queries"  # Firestore collection
    cache_kind: str = "queries"  # Datastore kind
    cache_bucket: str = ""  # Cloud Storage bucket (required for "storage")
    cache_timeout: float | None = Field(default=None, gt=0)

    # === Connection authentication ===
    # auto = authenticate iff credentials were detected at startup
    auth_mode: Literal["auto", "skip", "explicit"] = "auto"
    auth_eager: bool = False  # build the dialer at startup instead of first connect
    google_application_credentials: str = ""
    cloudsql_driver: str = "asyncpg"
    cloudsql_ip_type: Literal["public", "private", "psc"] | None = None
    cloudsql_enable_iam_auth: bool = False

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"
