"""Async HTTP server building blocks: static files, range and conditional headers, guards, controllers, bodies and request context."""

__version__ = "0.1.0"