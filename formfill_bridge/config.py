"""
Bridge Configuration

Endpoint and runtime settings for the form-fill bridge.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import BridgeConfigError


MEMORY_ENDPOINT = "memory://"


class BridgeConfig(BaseModel):
    """Configuration for the form-fill bridge."""

    # Connection settings
    endpoint: str = Field(
        default=MEMORY_ENDPOINT,
        description="Backing context endpoint (memory:// or unix:// socket)"
    )

    max_frame_bytes: int = Field(
        default=1024 * 1024,
        ge=1024,
        le=64 * 1024 * 1024,
        description="Largest accepted wire frame in bytes"
    )

    connect_timeout_ms: int = Field(
        default=5000,
        ge=100,
        le=60000,
        description="Timeout for opening a socket connection"
    )

    # Ambient settings
    log_level: str = Field(
        default="WARNING",
        description="Logging level used by the CLI"
    )

    telemetry_enabled: bool = Field(
        default=False,
        description="Write bridge events to the JSONL event log"
    )

    data_dir: Optional[str] = Field(
        default=None,
        description="Directory for event logs (defaults to ~/.local/formfill_bridge)"
    )

    @field_validator('endpoint')
    @classmethod
    def validate_endpoint(cls, v):
        """Validate endpoint format."""
        if v == MEMORY_ENDPOINT:
            return v
        if v.startswith('unix://'):
            path = v[7:]
            if not path.startswith('/'):
                raise ValueError('Unix socket path must be absolute')
            return v
        raise ValueError('Endpoint must be memory:// or unix://')

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Normalise and check the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f'Unknown log level: {v}')
        return level

    @property
    def socket_path(self) -> Optional[str]:
        """Filesystem path of a unix:// endpoint, None otherwise."""
        if self.endpoint.startswith('unix://'):
            return self.endpoint[7:]
        return None

    @classmethod
    def from_env(cls) -> 'BridgeConfig':
        """Load configuration from environment variables."""
        try:
            return cls(
                endpoint=os.getenv('FORMFILL_ENDPOINT', MEMORY_ENDPOINT),
                max_frame_bytes=int(os.getenv('FORMFILL_MAX_FRAME_BYTES', str(1024 * 1024))),
                connect_timeout_ms=int(os.getenv('FORMFILL_CONNECT_TIMEOUT_MS', '5000')),
                log_level=os.getenv('FORMFILL_LOG_LEVEL', 'WARNING'),
                telemetry_enabled=os.getenv('FORMFILL_TELEMETRY', 'false').lower() == 'true',
                data_dir=os.getenv('FORMFILL_DIR') or None,
            )
        except (ValidationError, ValueError) as e:
            raise BridgeConfigError(f"Invalid bridge configuration: {e}") from e
