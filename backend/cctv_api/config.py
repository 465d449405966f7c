"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in routes)
    - get_settings() is cached (lru_cache): one instance per process
    - Token lists are comma-separated strings; token_list() trims and drops blanks

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - Token lists kept as str (not list[str]): pydantic-settings would otherwise expect JSON
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://cctv:cctv@db:5432/cctv_analytics"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Runtime
    environment: str = "development"

    # Session auth
    jwt_secret: str = "your-secret-key"
    jwt_expires_hours: int = 24
    bcrypt_rounds: int = 12

    # Static security tokens, grouped by purpose
    registration_tokens: str = ""
    admin_tokens: str = ""
    sensitive_tokens: str = ""
    general_tokens: str = ""

    # Uploads
    server_url: str = "http://localhost:5000"
    upload_dir: str = "files/uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    # Milvus
    milvus_host: str = "172.30.5.103"
    milvus_port: int = 19530
    milvus_username: str = ""
    milvus_password: str = ""
    milvus_ssl: bool = False

    # Face recognition service
    face_api_base_url: str = "http://172.30.5.103:8001"
    face_api_endpoint: str = "/face"
    face_api_timeout_ms: int = 30_000
    face_api_max_retries: int = 3
    face_api_retry_delay_ms: int = 1000
    face_api_auth_token: str = ""
    face_api_key: str = ""
    face_api_user_agent: str = "AnimalAnalytic/1.0"

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def token_list(self, purpose: str) -> list[str]:
        """Split the comma-separated token list for a purpose."""
        raw = getattr(self, f"{purpose}_tokens", "") or ""
        return [t.strip() for t in raw.split(",") if t.strip()]

    @property
    def milvus_uri(self) -> str:
        scheme = "https" if self.milvus_ssl else "http"
        return f"{scheme}://{self.milvus_host}:{self.milvus_port}"

    @property
    def face_api_url(self) -> str:
        return self.face_api_base_url.rstrip("/") + self.face_api_endpoint


@lru_cache
def get_settings() -> Settings:
    return Settings()
