"""
GUID service for entity identification.

Provides utilities for encoding, decoding, and validating the Global Unique
Identifiers used in URLs and API responses.

GUID Format: {prefix}_{base32_uuid}
- prefix: 3-character entity type identifier (usr, chn, vid, ntf)
- base32_uuid: 26-character Crockford Base32 encoded UUIDv7
"""

import re
import uuid

import base32_crockford
from uuid_extensions import uuid7

ENTITY_PREFIXES = {
    "usr": "User",
    "chn": "Channel",
    "vid": "Video",
    "ntf": "Notification",
}

GUID_PATTERN = re.compile(
    r"^(usr|chn|vid|ntf)_[0-9A-HJKMNP-TV-Za-hjkmnp-tv-z]{26}$",
    re.IGNORECASE
)


class GuidService:
    """
    Static helpers for GUID operations.
    """

    @staticmethod
    def generate_uuid() -> uuid.UUID:
        """Generate a new time-ordered UUIDv7 value."""
        return uuid7()

    @staticmethod
    def encode_uuid(uuid_value: uuid.UUID, prefix: str) -> str:
        """
        Encode a UUID to a GUID string.

        Args:
            uuid_value: UUID (or its 16 raw bytes) to encode
            prefix: Entity type prefix

        Returns:
            GUID string (e.g., "ntf_01hgw2bbg...")

        Raises:
            ValueError: If prefix is invalid
        """
        if prefix not in ENTITY_PREFIXES:
            raise ValueError(
                f"Invalid prefix '{prefix}'. "
                f"Valid prefixes: {', '.join(ENTITY_PREFIXES.keys())}"
            )

        raw = uuid_value if isinstance(uuid_value, bytes) else uuid_value.bytes
        encoded = base32_crockford.encode(int.from_bytes(raw, "big")).zfill(26)
        return f"{prefix}_{encoded.lower()}"

    @staticmethod
    def validate_guid(guid: str, expected_prefix: str = None) -> bool:
        """
        Validate a GUID format, optionally checking its prefix.
        """
        if not guid or not GUID_PATTERN.match(guid):
            return False

        if expected_prefix:
            return guid[:3].lower() == expected_prefix.lower()

        return True

    @staticmethod
    def parse_guid(guid: str, expected_prefix: str) -> uuid.UUID:
        """
        Parse a GUID string to UUID, validating the prefix.

        Args:
            guid: GUID string
            expected_prefix: Expected entity prefix

        Returns:
            UUID object

        Raises:
            ValueError: If format invalid or prefix doesn't match
        """
        if not guid:
            raise ValueError("GUID cannot be empty")

        if not GUID_PATTERN.match(guid):
            raise ValueError(
                f"Invalid GUID format: {guid}. "
                f"Expected format: {{prefix}}_{{26-char base32}}"
            )

        prefix = guid[:3].lower()
        if prefix != expected_prefix.lower():
            raise ValueError(
                f"GUID prefix mismatch. Expected '{expected_prefix}', got '{prefix}'"
            )

        try:
            uuid_int = base32_crockford.decode(guid[4:].upper())
            return uuid.UUID(bytes=uuid_int.to_bytes(16, "big"))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid GUID encoding: {e}")
