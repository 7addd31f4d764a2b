"""
Sync service subpackage
Contains the block list sync engine and cache eviction helpers
"""

from .block_sync_service import BlockSyncService, SyncPhase
from .cache_pruner import estimate_size, prune_cache

__all__ = ['BlockSyncService', 'SyncPhase', 'estimate_size', 'prune_cache']
