"""
GUID mixin for SQLAlchemy models.

Gives user-facing entities a UUIDv7 (time-ordered) identity exposed as a
prefixed Crockford Base32 string, so internal integer keys never leave the
service.

GUID Format: {prefix}_{base32_uuid}
Examples:
    - usr_01hgw2bbg0000000000000000 (User)
    - chn_01hgw2bbg0000000000000001 (Channel)
    - vid_01hgw2bbg0000000000000002 (Video)
    - ntf_01hgw2bbg0000000000000003 (Notification)
"""

import uuid as uuid_module
from typing import ClassVar, Optional

import base32_crockford
from sqlalchemy import Column, TypeDecorator, LargeBinary
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from uuid_extensions import uuid7


class UUIDType(TypeDecorator):
    """
    Platform-independent UUID type.

    Native UUID on PostgreSQL, 16-byte LargeBinary elsewhere (SQLite tests).
    Always presents as a Python UUID object.
    """

    impl = LargeBinary
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(LargeBinary(16))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == 'postgresql':
            return value if isinstance(value, uuid_module.UUID) else uuid_module.UUID(bytes=value)
        if isinstance(value, uuid_module.UUID):
            return value.bytes
        if isinstance(value, bytes):
            return value
        return uuid_module.UUID(str(value)).bytes

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid_module.UUID):
            return value
        if isinstance(value, bytes):
            return uuid_module.UUID(bytes=value)
        return uuid_module.UUID(str(value))


class GuidMixin:
    """
    Mixin providing GUID (Global Unique Identifier) support for entities.

    Adds:
    - uuid: UUID column (UUIDv7, generated on insert)
    - guid: Property returning the prefixed Base32 string

    Usage:
        class Channel(Base, GuidMixin):
            GUID_PREFIX = "chn"
    """

    # Subclasses define their 3-character prefix
    GUID_PREFIX: ClassVar[str]

    uuid = Column(
        UUIDType(),
        nullable=False,
        unique=True,
        index=True,
        default=uuid7,
    )

    @property
    def guid(self) -> Optional[str]:
        """
        Get the full GUID with prefix, or None before the row is flushed.
        """
        if self.uuid is None:
            return None

        uuid_bytes = self.uuid if isinstance(self.uuid, bytes) else self.uuid.bytes
        encoded = base32_crockford.encode(int.from_bytes(uuid_bytes, "big")).zfill(26)
        return f"{self.GUID_PREFIX}_{encoded.lower()}"
