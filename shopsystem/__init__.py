"""Shop catalogue: a SQLite-backed product API, a client for it and an HTML front end."""

__version__ = "0.1.0"
__all__ = ["__version__"]