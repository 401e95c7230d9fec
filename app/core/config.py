import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

from app.modules.gateway.policy import DEFAULT_MAX_REDIRECTS, PolicyConfig

# Load environment variables from .env file
load_dotenv()

class Settings(BaseSettings):
    # Server Settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")

    # Fetch Policy
    # Comma separated domains; leave empty to allow every host
    ALLOWLIST: str = os.getenv("ALLOWLIST", "")
    MAX_REDIRECTS: int = int(os.getenv("MAX_REDIRECTS", str(DEFAULT_MAX_REDIRECTS)))
    DOWNLOAD_ENFORCE_MIME: bool = os.getenv("DOWNLOAD_ENFORCE_MIME", "False").lower() == "true"

    # Upstream Settings
    STREAM_CHUNK_SIZE: int = int(os.getenv("STREAM_CHUNK_SIZE", str(64 * 1024)))
    # 0 means no cap on concurrent upstream connections
    UPSTREAM_MAX_CONNECTIONS: int = int(os.getenv("UPSTREAM_MAX_CONNECTIONS", "0"))

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    def policy(self) -> PolicyConfig:
        return PolicyConfig.from_allowlist(
            self.ALLOWLIST,
            max_redirects=self.MAX_REDIRECTS,
            enforce_mime_on_download=self.DOWNLOAD_ENFORCE_MIME,
        )

# Create settings instance
settings = Settings()
