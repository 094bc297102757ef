from qterms.core.serialization.registry import (
    CURRENT_VERSION,
    CurrentEncoding,
    LegacyEncoding,
    decode_envelope,
)
from qterms.core.serialization.binary import serialize, deserialize
from qterms.core.serialization.structured import to_json, from_json, json_schema
from qterms.core.serialization.legacy import migrate_from_legacy

__all__ = [
    "CURRENT_VERSION",
    "CurrentEncoding",
    "LegacyEncoding",
    "decode_envelope",
    "serialize",
    "deserialize",
    "to_json",
    "from_json",
    "json_schema",
    "migrate_from_legacy",
]
