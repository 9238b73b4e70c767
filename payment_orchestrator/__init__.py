"""Card payment orchestration service backed by Authorize.Net."""

__version__ = "1.0.0"
