"""Read-only HTTP/JSON backend for browsing microcontroller boards."""

__version__ = "0.1.0"
__all__ = ["api", "queryservice", "server"]