"""Router exports for the stream API."""
from . import health, store, streams

__all__ = ["health", "store", "streams"]
