"""Engine configuration and access policy selection."""

import logging
import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AccessPolicy(str, Enum):
    """Which rule decides location reachability. Chosen once per engine."""
    NAMED_PREREQUISITE = "named_prerequisite"  # Every lower-ranked location completed
    PREFIX_COUNT = "prefix_count"              # Position bounded by amulets collected


class QuestConfig(BaseModel):
    """Configuration for a quest session."""

    backend_url: Optional[str] = None
    auth_header: str = "X-Telegram-Init-Data"
    max_hints: int = Field(ge=0, default=3)
    access_policy: AccessPolicy = AccessPolicy.NAMED_PREREQUISITE
    storage_namespace: str = "quest"
    storage_path: str = ":memory:"
    start_location: Optional[str] = None   # Defaults to the first location in the graph
    trigger_poll_interval_seconds: float = Field(gt=0, default=30.0)
    max_in_flight_events: int = Field(ge=1, default=8)
    request_timeout_seconds: float = Field(gt=0, default=10.0)

    @property
    def backend_configured(self) -> bool:
        return bool(self.backend_url)

    @classmethod
    def from_env(cls, prefix: str = "QUESTLINE_") -> "QuestConfig":
        """Build a config from ``QUESTLINE_*`` environment variables."""
        values = {}
        for field_name in cls.model_fields:
            raw = os.getenv(f"{prefix}{field_name.upper()}")
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()

        config = cls.model_validate(values)
        if not config.backend_configured:
            logger.warning(
                "Backend URL not configured; remote sync is disabled",
                extra={"env_var": f"{prefix}BACKEND_URL"},
            )
        return config
