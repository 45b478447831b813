# clovalink/models/__init__.py
from .stored_key import StoredKey

__all__ = ["StoredKey"]
