"""
Deterministic point identifiers for graph elements.

A point id is the first four bytes of the SHA-256 digest of the element's
natural key, read as an unsigned big-endian integer. Re-deriving the id for
the same key always addresses the same point, so upsert and delete need no
lookup table. Two keys colliding in 32 bits overwrite each other's point;
the width is kept at 32 bits so ids match indexes written by earlier
deployments.
"""

import hashlib
import struct

from .schema import Relation


def derive_point_id(natural_key: str) -> int:
    """Map a natural key to a stable unsigned 32-bit point id."""
    digest = hashlib.sha256(natural_key.encode("utf-8")).digest()
    return struct.unpack(">I", digest[:4])[0]


def entity_key(name: str) -> str:
    return name


def relation_key(relation: Relation) -> str:
    return f"{relation.from_entity}-{relation.relation_type}-{relation.to_entity}"
