"""Constants for adapter profile handling."""

PROFILE_SUFFIX = ".json"
DEFAULT_ADAPTER_PORT = "/dev/rfcomm0"
DEFAULT_PROFILE_NAME = "default"
