"""pyOBDcore: OBD-II protocol client for ELM327 adapters."""

__version__ = "0.1.0"
