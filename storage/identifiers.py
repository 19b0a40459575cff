"""
Storage - Identifier Classifier.

============================================================
PURPOSE
============================================================
Records accept one ambiguous "identifier" argument: a primary
key, a name, a UUID, a field mapping or another record. This
module turns that argument into a closed set of variants at the
boundary and classifies the variant against the record
configuration.

============================================================
CLASSIFICATION
============================================================
Scalar int/float       key column set     -> ID
Scalar int/float       no key column      -> UNKNOWN
Scalar str             name column set    -> NAME
Scalar str             UUID shaped        -> UUID
Scalar str             otherwise          -> UNKNOWN
FieldMapping                              -> VALUES
SameKindReference                         -> REUSE
Empty (None, bool, anything else)         -> UNKNOWN

A configured name column wins over UUID detection: every string
is a name for such records, UUID shaped or not.

============================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Tuple, Type, Union

from core.constants import UUID_PATTERN


class IdentifierKind(Enum):
    """How an identifier is used by use_identifier / load_identifier."""

    ID = "id"
    NAME = "name"
    UUID = "uuid"
    VALUES = "values"
    REUSE = "reuse"
    UNKNOWN = "unknown"


# ============================================================
# VARIANTS
# ============================================================

@dataclass(frozen=True)
class Scalar:
    """Single int, float or str value."""

    value: Union[int, float, str]

    @property
    def is_numeric(self) -> bool:
        return not isinstance(self.value, str)


@dataclass(frozen=True)
class FieldMapping:
    """Column -> value mapping."""

    values: Mapping[str, Any] = field(hash=False)


@dataclass(frozen=True)
class SameKindReference:
    """Another record whose fields are reused."""

    record: Any = field(hash=False)


@dataclass(frozen=True)
class Empty:
    """None, booleans and any other unsupported input."""

    raw: Any = field(default=None, hash=False)


Identifier = Union[Scalar, FieldMapping, SameKindReference, Empty]


def is_uuid(value: str) -> bool:
    """True for 8-4-4-4-12 hexadecimal strings, any case."""
    return bool(UUID_PATTERN.match(value))


def parse_identifier(
    value: Any,
    reference_type: Union[Type, Tuple[Type, ...]] = (),
) -> Identifier:
    """
    Wrap a raw identifier in its variant.

    Args:
        value: Raw identifier as passed by the caller
        reference_type: Record class(es) treated as same-kind references
    """
    if isinstance(value, (Scalar, FieldMapping, SameKindReference, Empty)):
        return value
    # bool is an int subclass but never a key
    if isinstance(value, bool) or value is None:
        return Empty(value)
    if isinstance(value, (int, float, str)):
        return Scalar(value)
    if isinstance(value, Mapping):
        return FieldMapping(value)
    if reference_type and isinstance(value, reference_type):
        return SameKindReference(value)
    return Empty(value)


def classify(identifier: Identifier, key_column: str, name_column: str) -> IdentifierKind:
    """Classify a parsed identifier against the record configuration."""
    if isinstance(identifier, FieldMapping):
        return IdentifierKind.VALUES
    if isinstance(identifier, SameKindReference):
        return IdentifierKind.REUSE
    if isinstance(identifier, Scalar):
        if identifier.is_numeric:
            return IdentifierKind.ID if key_column else IdentifierKind.UNKNOWN
        if name_column:
            return IdentifierKind.NAME
        if is_uuid(identifier.value):
            return IdentifierKind.UUID
    return IdentifierKind.UNKNOWN


__all__ = [
    "IdentifierKind",
    "Identifier",
    "Scalar",
    "FieldMapping",
    "SameKindReference",
    "Empty",
    "is_uuid",
    "parse_identifier",
    "classify",
]
