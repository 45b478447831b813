from .key_cache import UnlockedKeyCache
from .password_strength import validate_passphrase_strength
from .sanitizer import InputSanitizer

__all__ = ["InputSanitizer", "UnlockedKeyCache", "validate_passphrase_strength"]
