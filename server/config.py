"""
Server configuration loaded from environment variables.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """Server configuration."""

    # Server settings
    HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("SERVER_PORT", "4000"))

    # Browser origins allowed to open a WebSocket
    ALLOWED_ORIGINS: list[str] = _split(os.getenv("ALLOWED_ORIGINS", "http://localhost:3000"))

    # Keepalive
    PING_INTERVAL: float = float(os.getenv("PING_INTERVAL", "30"))
    PING_TIMEOUT: float = float(os.getenv("PING_TIMEOUT", "10"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


config = Config()
settings = config
