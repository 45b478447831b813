"""
Logging configuration
Encryption events are logged but never include keys, tokens or message text
"""

import logging
import sys
from typing import Set


class SensitiveDataFilter(logging.Filter):
    """Filter that redacts records which look like they carry secrets"""

    SENSITIVE_KEYS: Set[str] = {
        "privatekey",
        "private_key",
        "passphrase",
        "token",
        "secret",
        "encryptedkey",
        "password",
    }

    def filter(self, record: logging.LogRecord) -> bool:
        msg = str(record.msg).lower()
        for key in self.SENSITIVE_KEYS:
            if key in msg and "=" in msg:
                # Likely contains sensitive value assignment
                record.msg = "[REDACTED - Sensitive data filtered]"
                record.args = ()
                break
        return True


def setup_logging(level: str = "INFO") -> None:
    """Configure client logging"""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    handler.addFilter(SensitiveDataFilter())

    root = logging.getLogger()
    root.setLevel(level.upper())

    # Clear existing handlers to avoid duplicates
    root.handlers = []
    root.addHandler(handler)

    # Reduce noise from libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# Encryption event logger
encryption_logger = logging.getLogger("clovalink.encryption")


def log_plaintext_fallback(recipient_id: str, reason: str) -> None:
    """Log a direct message that is about to leave unencrypted"""
    encryption_logger.warning(f"Sending to {recipient_id} without encryption: {reason}")


def log_key_generated(user_id: str, fingerprint: str) -> None:
    encryption_logger.info(f"Generated key pair for user {user_id} ({fingerprint[:16]})")


def log_orphaned_key(user_id: str, fingerprint: str) -> None:
    """Log loss of a private key whose public half is still published"""
    encryption_logger.warning(
        f"Local private key for user {user_id} is missing; published key {fingerprint[:16]} is orphaned "
        "and messages encrypted under it can no longer be read"
    )
