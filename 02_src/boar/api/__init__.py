"""Web framework integration."""

from .middleware import BoarMiddleware, get_span, raw_uri

__all__ = ["BoarMiddleware", "get_span", "raw_uri"]
