"""Entity type policy for indexing.

Upstream extraction emits free-form entity type strings. Only a closed set of
high-signal types is indexed; ``vendor`` is folded into ``company`` so both
accumulate in one bucket. Everything else (people, technologies, security
vendors quoted as sources, "other") is dropped before storage.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional


class EntityType(str, Enum):
    """Entity types persisted in the index."""

    THREAT_ACTOR = "threat_actor"
    MALWARE = "malware"
    PRODUCT = "product"
    COMPANY = "company"
    GOVERNMENT_AGENCY = "government_agency"


ENTITY_TYPE_ALIASES: Dict[str, EntityType] = {
    "vendor": EntityType.COMPANY,
}

EXCLUDED_ENTITY_TYPES: FrozenSet[str] = frozenset(
    {"person", "technology", "security_organization", "other"}
)


def normalize_entity_type(raw_type: Optional[str]) -> Optional[EntityType]:
    """
    Map an upstream entity type onto the indexed enumeration.

    Args:
        raw_type: Type string as produced by the extractor

    Returns:
        The indexed type, or None when the type must not be stored
    """
    if not raw_type:
        return None

    key = raw_type.strip().lower().replace(" ", "_").replace("-", "_")
    if key in EXCLUDED_ENTITY_TYPES:
        return None
    if key in ENTITY_TYPE_ALIASES:
        return ENTITY_TYPE_ALIASES[key]

    try:
        return EntityType(key)
    except ValueError:
        return None
