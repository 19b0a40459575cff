"""
Storage Package.

Active-record layer on top of the database gateway.

Modules:
- record: Record façade (legacy active-record API)
- record_store: In-memory field buffer
- identifiers: Identifier variants and classification
- schema: RecordConfig and RecordSchema
- synchronization: Load/save/delete protocol
"""

from .identifiers import (
    Empty,
    FieldMapping,
    IdentifierKind,
    SameKindReference,
    Scalar,
    classify,
    is_uuid,
    parse_identifier,
)
from .record import Record, StatusMessage
from .record_store import RecordStore
from .schema import RecordConfig, RecordSchema
from .synchronization import SaveResult, SynchronizationEngine

__all__ = [
    "Record",
    "StatusMessage",
    "RecordStore",
    "RecordConfig",
    "RecordSchema",
    "SaveResult",
    "SynchronizationEngine",
    "IdentifierKind",
    "Scalar",
    "FieldMapping",
    "SameKindReference",
    "Empty",
    "classify",
    "is_uuid",
    "parse_identifier",
]
