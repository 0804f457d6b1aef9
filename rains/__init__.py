"""Algorithm types, connection information and in-memory caches for a RAINS name server."""

__version__ = "0.1.0"