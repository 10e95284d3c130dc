"""Services for managing adapter profiles on disk."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Mapping

from pydantic import ValidationError  # type: ignore[import]

from ..protocol.constants import DEFAULT_BAUDRATE, DEFAULT_COMMAND_TIMEOUT, DEFAULT_RETRIES
from .constants import DEFAULT_ADAPTER_PORT, DEFAULT_PROFILE_NAME, PROFILE_SUFFIX
from .models import AdapterProfile


class ProfileError(RuntimeError):
    """Base exception for profile operations."""


class ProfileNotFoundError(ProfileError):
    """Raised when a requested profile cannot be located."""


class ProfileService:
    """Manage reading, writing, and creating adapter profiles."""

    _logger = logging.getLogger(__name__)

    def __init__(self, profile_dir: Path) -> None:
        self._profile_dir = profile_dir
        self._profile_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def list_profiles(self) -> List[AdapterProfile]:
        """Enumerate stored profiles sorted by name."""

        profiles: List[AdapterProfile] = []
        for path in sorted(self._profile_dir.glob(f"*{PROFILE_SUFFIX}")):
            try:
                profiles.append(AdapterProfile.model_validate_json(path.read_text()))
            except ValidationError as exc:
                self._logger.warning("Skipping invalid profile %s: %s", path.name, exc)
        profiles.sort(key=lambda profile: profile.name.lower())
        return profiles

    def list_profile_names(self) -> List[str]:
        return [profile.name for profile in self.list_profiles()]

    def load_profile(self, name: str) -> AdapterProfile:
        """Load a specific profile by name."""

        path = self._profile_path_for_name(name)
        if not path.exists():
            raise ProfileNotFoundError(f"Profile '{name}' does not exist")
        try:
            return AdapterProfile.model_validate_json(path.read_text())
        except ValidationError as exc:
            raise ProfileError(f"Profile '{name}' is invalid: {exc}") from exc

    def save_profile(self, profile: AdapterProfile) -> Path:
        """Persist a profile definition and return its path."""

        path = self._profile_path_for_name(profile.name)
        data = profile.model_dump(mode="json")
        path.write_text(json.dumps(data, indent=2, sort_keys=True))
        self._logger.info("Saved profile '%s' to %s", profile.name, path)
        return path

    def delete_profile(self, name: str) -> None:
        """Delete a profile if it exists."""

        path = self._profile_path_for_name(name)
        if path.exists():
            path.unlink()
            self._logger.info("Deleted profile '%s'", name)

    def create_profile(
        self,
        *,
        name: str,
        adapter_port: str = DEFAULT_ADAPTER_PORT,
        baudrate: int = DEFAULT_BAUDRATE,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        max_retries: int = DEFAULT_RETRIES,
        polling_interval: float = 1.0,
        metadata: Mapping[str, str] | None = None,
    ) -> AdapterProfile:
        """Build, validate and persist a new profile."""

        try:
            profile = AdapterProfile(
                name=name,
                adapter_port=adapter_port,
                baudrate=baudrate,
                command_timeout=command_timeout,
                max_retries=max_retries,
                polling_interval=polling_interval,
                metadata=dict(metadata or {}),
                created_at=datetime.now(timezone.utc),
            )
        except ValidationError as exc:
            raise ProfileError(f"Profile '{name}' is invalid: {exc}") from exc

        self.save_profile(profile)
        return profile

    @staticmethod
    def default_profile(adapter_port: str = DEFAULT_ADAPTER_PORT) -> AdapterProfile:
        """Return an unsaved profile with stock ELM327 settings."""

        return AdapterProfile(name=DEFAULT_PROFILE_NAME, adapter_port=adapter_port)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _profile_path_for_name(self, name: str) -> Path:
        slug = self._slugify(name)
        return self._profile_dir / f"{slug}{PROFILE_SUFFIX}"

    @staticmethod
    def _slugify(name: str) -> str:
        slug = re.sub(r"[^a-zA-Z0-9]+", "-", name.strip().lower())
        slug = slug.strip("-")
        return slug or "adapter"
