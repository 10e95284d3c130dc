"""Adapter profile configuration for pyOBDcore."""

from .constants import DEFAULT_ADAPTER_PORT, PROFILE_SUFFIX
from .models import AdapterProfile
from .service import ProfileError, ProfileNotFoundError, ProfileService

__all__ = [
    "AdapterProfile",
    "ProfileService",
    "ProfileError",
    "ProfileNotFoundError",
    "PROFILE_SUFFIX",
    "DEFAULT_ADAPTER_PORT",
]
