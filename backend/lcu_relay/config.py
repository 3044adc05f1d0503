"""
Relay configuration
Values come from the environment (and a .env file if present)
"""

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"


class RelaySettings(BaseModel):
    """Runtime settings for the relay process"""
    host: str = "127.0.0.1"
    port: int = 3001
    poll_interval: float = Field(default=5.0, gt=0, description="Seconds between credential ticks")
    lockfile_path: Optional[str] = Field(default=None, description="Overrides the platform lockfile path")
    proxy_timeout: float = Field(default=10.0, gt=0)
    log_level: str = "INFO"
    cors_origins: List[str] = []

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "RelaySettings":
        """Build settings from LCU_* environment variables"""
        if dotenv:
            load_dotenv()

        origins = os.getenv("LCU_RELAY_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)

        return cls(
            host=os.getenv("LCU_RELAY_HOST", "127.0.0.1"),
            port=int(os.getenv("LCU_RELAY_PORT", "3001")),
            poll_interval=float(os.getenv("LCU_POLL_INTERVAL", "5.0")),
            lockfile_path=os.getenv("LCU_LOCKFILE") or None,
            proxy_timeout=float(os.getenv("LCU_PROXY_TIMEOUT", "10.0")),
            log_level=os.getenv("LCU_RELAY_LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
