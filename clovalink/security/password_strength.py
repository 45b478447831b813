"""
Passphrase strength validation for the local key store.
A weak passphrase makes the sealed private key cheap to brute-force.
"""
import re
from typing import Tuple


def validate_passphrase_strength(passphrase: str) -> Tuple[bool, str]:
    """
    Validate key store passphrase strength.

    Requirements:
    - Minimum 12 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*-+=)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(passphrase) < 12:
        return False, "Passphrase must be at least 12 characters long"

    if not re.search(r'[A-Z]', passphrase):
        return False, "Passphrase must contain at least one uppercase letter"

    if not re.search(r'[a-z]', passphrase):
        return False, "Passphrase must contain at least one lowercase letter"

    if not re.search(r'[0-9]', passphrase):
        return False, "Passphrase must contain at least one digit"

    if not re.search(r'[!@#$%^&*\-+=]', passphrase):
        return False, "Passphrase must contain at least one special character (!@#$%^&*-+=)"

    return True, ""
