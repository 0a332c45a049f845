"""
Client configuration settings.
"""

import os
from dataclasses import dataclass


@dataclass
class ClientSettings:
    """Client configuration."""

    # Server connection
    server_host: str = "localhost"
    server_port: int = 4000

    @property
    def server_url(self) -> str:
        return f"ws://{self.server_host}:{self.server_port}"


def load_settings() -> ClientSettings:
    """Load settings from environment variables."""
    return ClientSettings(
        server_host=os.getenv("RELAY_SERVER_HOST", "localhost"),
        server_port=int(os.getenv("RELAY_SERVER_PORT", "4000")),
    )


settings = load_settings()
