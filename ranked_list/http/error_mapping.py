"""Central error mapping for ranked list failures.

Single source of truth for mapping library exceptions to problem+json codes
and HTTP statuses. Handlers must import from here instead of hardcoding
strings or numbers. Lookup walks the exception's MRO so subclasses inherit
their parent's mapping.
"""

from __future__ import annotations

from typing import Dict, Type

from ranked_list.errors import ConfigurationError, PartitionMismatchError, PersistenceError, RankedListError

NOT_FOUND = {
    "code": "RESOURCE_NOT_FOUND",
    "status": 404,
}

RANKED_LIST_ERROR_MAP: Dict[Type[BaseException], Dict[str, object]] = {
    PersistenceError: {"code": "RANK_PERSISTENCE_FAILED", "status": 409},
    PartitionMismatchError: {"code": "RANK_PARTITION_MISMATCH", "status": 409},
    ConfigurationError: {"code": "RANK_CONFIGURATION_INVALID", "status": 500},
    RankedListError: {"code": "RANKED_LIST_ERROR", "status": 500},
}


def lookup(exc: BaseException) -> Dict[str, object]:
    for klass in type(exc).__mro__:
        if klass in RANKED_LIST_ERROR_MAP:
            return RANKED_LIST_ERROR_MAP[klass]
    return {"code": "INTERNAL_ERROR", "status": 500}


__all__ = ["NOT_FOUND", "RANKED_LIST_ERROR_MAP", "lookup"]
