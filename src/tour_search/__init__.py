"""Tour offer search with server-driven polling."""

__version__ = "0.1.0"
