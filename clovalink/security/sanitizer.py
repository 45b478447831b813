"""
Input sanitization for outgoing messages and channel names.

Rejects:
- Null bytes
- Control characters (except tab/newline/carriage return in message text)
- Oversized input
"""
import re
from typing import Optional


class InputSanitizer:
    """Validates and sanitizes user input before it is encrypted or sent."""

    NULL_BYTE_PATTERN = re.compile(r'\x00')
    CONTROL_CHAR_PATTERN = re.compile(r'[\x00-\x08\x0b-\x0c\x0e-\x1f\x7f]')  # Except \t=0x09, \n=0x0a, \r=0x0d
    NEWLINE_PATTERN = re.compile(r'[\r\n]')

    MAX_MESSAGE_LENGTH = 50000
    MAX_CHANNEL_NAME_LENGTH = 100
    MAX_DESCRIPTION_LENGTH = 500

    @staticmethod
    def sanitize_string(value: str, max_length: Optional[int] = None, allow_newlines: bool = False) -> str:
        """
        Sanitize string input.

        Args:
            value: Input string
            max_length: Optional max length
            allow_newlines: Allow \\n and \\r characters (for message text)

        Returns:
            Sanitized string

        Raises:
            ValueError: If input contains dangerous patterns
        """
        if not isinstance(value, str):
            raise ValueError("Input must be string")

        if InputSanitizer.NULL_BYTE_PATTERN.search(value):
            raise ValueError("Null bytes not allowed")

        if InputSanitizer.CONTROL_CHAR_PATTERN.search(value):
            raise ValueError("Control characters not allowed")

        if not allow_newlines and InputSanitizer.NEWLINE_PATTERN.search(value):
            raise ValueError("Line breaks not allowed")

        if max_length and len(value) > max_length:
            raise ValueError(f"Input exceeds max length of {max_length}")

        return value

    @staticmethod
    def sanitize_message_text(value: str) -> str:
        """Validate message text (newlines allowed). The text is returned unchanged."""
        return InputSanitizer.sanitize_string(
            value, max_length=InputSanitizer.MAX_MESSAGE_LENGTH, allow_newlines=True
        )

    @staticmethod
    def sanitize_channel_name(value: str) -> str:
        sanitized = InputSanitizer.sanitize_string(value, allow_newlines=False).strip()
        if not sanitized:
            raise ValueError("Channel name is required")
        if len(sanitized) > InputSanitizer.MAX_CHANNEL_NAME_LENGTH:
            raise ValueError(f"Channel name exceeds max length of {InputSanitizer.MAX_CHANNEL_NAME_LENGTH}")
        return sanitized

    @staticmethod
    def sanitize_description(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        sanitized = InputSanitizer.sanitize_string(
            value, max_length=InputSanitizer.MAX_DESCRIPTION_LENGTH, allow_newlines=True
        ).strip()
        return sanitized or None
