"""
Cache size estimation and quota-driven eviction
"""

import json
import logging
from typing import Any, List

from ...database.models.block_cache import BlockCache


logger = logging.getLogger(__name__)


def estimate_size(obj: Any) -> int:
    """Serialized UTF-8 size in bytes, matching what the storage layer writes"""
    if hasattr(obj, 'to_dict'):
        obj = obj.to_dict()
    return len(json.dumps(obj, separators=(',', ':'), ensure_ascii=False).encode('utf-8'))


def prune_cache(cache: BlockCache, max_size_bytes: int) -> List[str]:
    """
    Evict block entries, largest serialized entry first, until the cache
    fits under max_size_bytes

    Returns:
        DIDs of the evicted entries
    """
    current_size = estimate_size(cache)
    if current_size <= max_size_bytes:
        return []

    ranked = sorted(
        ((did, estimate_size(block_set)) for did, block_set in cache.block_sets.items()),
        key=lambda item: item[1],
        reverse=True
    )

    evicted = []
    for did, entry_size in ranked:
        if current_size <= max_size_bytes:
            break
        del cache.block_sets[did]
        # Key and separators are also freed, so the projection errs high
        current_size -= entry_size
        evicted.append(did)

    if evicted:
        logger.info(f"Pruned {len(evicted)} users from cache to fit size limit "
                    f"(now {estimate_size(cache)} bytes, limit {max_size_bytes})")

    return evicted
