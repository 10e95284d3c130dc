"""Data models describing adapter profiles."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field  # type: ignore[import]

from ..protocol.constants import DEFAULT_BAUDRATE, DEFAULT_COMMAND_TIMEOUT, DEFAULT_RETRIES


class AdapterProfile(BaseModel):
    """Connection and timing settings for a specific ELM327 adapter."""

    name: str = Field(..., description="Human-friendly name for the adapter or vehicle")
    adapter_port: str = Field(..., description="Serial/Bluetooth RFCOMM port of the adapter")
    baudrate: int = Field(default=DEFAULT_BAUDRATE, gt=0)
    command_timeout: float = Field(
        default=DEFAULT_COMMAND_TIMEOUT,
        ge=0.1,
        description="Per-attempt timeout in seconds for ordinary PID reads",
    )
    max_retries: int = Field(
        default=DEFAULT_RETRIES,
        ge=0,
        description="Additional attempts after the first one for ordinary PID reads",
    )
    polling_interval: float = Field(
        default=1.0,
        ge=0.1,
        description="Interval in seconds between live-data snapshots",
    )
    initialize: bool = Field(
        default=True,
        description="Run the ATZ/AT init sequence when the adapter is opened",
    )
    metadata: Dict[str, str] = Field(
        default_factory=dict,
        description="Optional metadata such as make, model, or notes",
    )
    created_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp indicating when the profile was created",
    )

    model_config = ConfigDict(populate_by_name=True)
