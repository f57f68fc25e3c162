"""
KeepWise Backend — Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; checked again in the app lifespan.

Deployment modes:
    NOTE_STORE=sql        → notes live in a relational table (SQLite by default)
    NOTE_STORE=firestore  → notes live in a Firestore collection

    AUTH_PROVIDER=none     → every caller is the shared anonymous user
    AUTH_PROVIDER=firebase → Firebase ID tokens, verified with firebase-admin
    AUTH_PROVIDER=jwt      → HS256 tokens signed with JWT_SECRET
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Production deployments should
    pick an AUTH_PROVIDER; with the default `none`, authentication is off.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///./notes.db or postgresql+asyncpg://user:pw@host/db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./notes.db",
        description="Async SQLAlchemy connection URL",
    )

    # Pool sizing only applies to server databases; SQLite ignores it
    db_pool_size: int = Field(default=20, ge=5, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # ── Note Store ────────────────────────────────────────────────────────
    note_store: str = Field(default="sql", description="Storage backend: sql or firestore")
    firestore_collection: str = Field(default="notes")

    @field_validator("note_store")
    @classmethod
    def validate_note_store(cls, v: str) -> str:
        """Ensures the storage backend is one we ship."""
        lower = v.strip().lower()
        if lower not in {"sql", "firestore"}:
            raise ValueError(f"Invalid note_store '{v}'. Must be 'sql' or 'firestore'")
        return lower

    # ── Authentication ────────────────────────────────────────────────────
    auth_provider: str = Field(default="none", description="none, firebase or jwt")

    @field_validator("auth_provider")
    @classmethod
    def validate_auth_provider(cls, v: str) -> str:
        lower = v.strip().lower()
        if lower not in {"none", "firebase", "jwt"}:
            raise ValueError(
                f"Invalid auth_provider '{v}'. Must be one of: none, firebase, jwt"
            )
        return lower

    # Firebase service account: either a JSON key file or the three fields below
    firebase_credentials_path: Optional[str] = Field(default=None)
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_client_email: Optional[str] = Field(default=None)
    firebase_private_key: Optional[str] = Field(default=None)
    firebase_check_revoked: bool = Field(default=False)

    jwt_secret: Optional[str] = Field(default=None)
    jwt_algorithm: str = Field(default="HS256")
    jwt_audience: Optional[str] = Field(default=None)
    jwt_issuer: Optional[str] = Field(default=None)

    @property
    def firebase_configured(self) -> bool:
        """True when enough service account data exists to initialize firebase-admin."""
        if self.firebase_credentials_path:
            return True
        return bool(
            self.firebase_project_id
            and self.firebase_client_email
            and self.firebase_private_key
        )

    # ── CORS ──────────────────────────────────────────────────────────────
    # The extension and the notes viewer call the API cross-origin
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3000, ge=1024, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Summarizer (client side) ──────────────────────────────────────────
    gemini_api_key: str = Field(default="")
    gemini_model: str = Field(default="gemini-1.5-flash")

    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: int = Field(default=2, ge=1, le=30)
    retry_max_wait: int = Field(default=10, ge=5, le=120)

    cb_failure_threshold: int = Field(default=5, ge=2, le=20)
    cb_recovery_timeout: int = Field(default=60, ge=10, le=300)

    # ── Capture client ────────────────────────────────────────────────────
    api_base_url: str = Field(default="http://localhost:3000/api")
    # Firebase ID tokens expire after an hour; refresh before that
    token_refresh_interval: int = Field(default=50 * 60, ge=60, le=3600)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_for_startup(self) -> None:
        """
        What:  Validates that the selected providers have what they need.
        When:  Called during app startup (lifespan) before anything is built.
        Raises ValueError listing every problem found.
        """
        errors = []
        if self.auth_provider == "firebase" and not self.firebase_configured:
            errors.append(
                "AUTH_PROVIDER=firebase but no Firebase credentials are set. "
                "Set FIREBASE_CREDENTIALS_PATH or FIREBASE_PROJECT_ID, "
                "FIREBASE_CLIENT_EMAIL and FIREBASE_PRIVATE_KEY."
            )
        if self.auth_provider == "jwt" and not self.jwt_secret:
            errors.append("AUTH_PROVIDER=jwt but JWT_SECRET is not set.")
        if self.note_store == "firestore" and not self.firebase_configured:
            errors.append(
                "NOTE_STORE=firestore but no Firebase credentials are set."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance — imported throughout the application
settings = Settings()

