"""
Cache store repository class
Atomic read-modify-write access to the block cache, sync status and auth token
"""

import logging
import time
from typing import Callable, Optional

from ..connection import StorageManager, StorageQuotaError
from ..models.auth_token import AuthToken
from ..models.block_cache import BlockCache
from ..models.block_set import BlockSet
from ..models.sync_status import SyncStatus


STORAGE_KEYS = {
    'block_cache': 'blockCache',
    'sync_status': 'syncStatus',
    'auth_token': 'authToken',
}


class CacheStore:
    """
    Cache store repository class

    Every mutation rewrites a whole aggregate. The sync engine is the only
    writer of the block cache while a pass is running.
    """

    def __init__(self, storage: StorageManager, clock: Callable[[], float] = time.time):
        self.storage = storage
        self.clock = clock
        self.logger = logging.getLogger(f'{__name__}.CacheStore')

    # Block cache

    def get_block_cache(self) -> Optional[BlockCache]:
        """Get the persisted block cache, None when nothing is stored"""
        data = self.storage.get_item(STORAGE_KEYS['block_cache'])
        if not data:
            return None
        try:
            return BlockCache.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to decode block cache: {e}")
            return None

    def save_block_cache(self, cache: BlockCache) -> int:
        """
        Persist the whole block cache

        Raises:
            StorageQuotaError: the cache does not fit in the storage quota
        """
        return self.storage.set_item(STORAGE_KEYS['block_cache'], cache.to_dict())

    def load_cache_for_owner(self, owner_did: str) -> BlockCache:
        """Get the cache for an identity; a cache owned by anyone else is discarded"""
        cache = self.get_block_cache()
        if cache is None:
            return BlockCache.create_empty(owner_did)
        if cache.owner_did != owner_did:
            self.logger.info(f"Cache belongs to {cache.owner_did or 'nobody'}, starting fresh for {owner_did}")
            return BlockCache.create_empty(owner_did)
        return cache

    def update_user_block_set(self, block_set: BlockSet) -> bool:
        """Replace a single user's block entry in the persisted cache"""
        cache = self.get_block_cache()
        if cache is None:
            return False
        cache.block_sets[block_set.did] = block_set
        try:
            self.save_block_cache(cache)
            return True
        except StorageQuotaError as e:
            self.logger.error(f"Failed to update block entry for {block_set.handle}: {e}")
            return False

    # Sync status

    def get_sync_status(self) -> SyncStatus:
        """Get sync status (defaults when nothing stored)"""
        data = self.storage.get_item(STORAGE_KEYS['sync_status'])
        if not data:
            return SyncStatus()
        return SyncStatus.from_dict(data)

    def update_sync_status(self, **changes) -> SyncStatus:
        """Merge changes into the sync status; always refreshes last_heartbeat"""
        status = self.get_sync_status()
        for name, value in changes.items():
            if not hasattr(status, name):
                raise AttributeError(f"SyncStatus has no field {name}")
            setattr(status, name, value)
        status.last_heartbeat = self.clock()
        self.storage.set_item(STORAGE_KEYS['sync_status'], status.to_dict())
        return status

    def reset_sync_status(self) -> SyncStatus:
        """Forget all progress and release the lock"""
        return self.update_sync_status(
            total_follows=0,
            synced_follows=0,
            last_sync=0,
            is_running=False,
            errors=[]
        )

    # Auth token

    def get_stored_auth(self) -> Optional[AuthToken]:
        """Get stored auth token"""
        data = self.storage.get_item(STORAGE_KEYS['auth_token'])
        if not data or not data.get('did'):
            return None
        return AuthToken.from_dict(data)

    def store_auth(self, auth: AuthToken):
        """Store auth token"""
        self.storage.set_item(STORAGE_KEYS['auth_token'], auth.to_dict())

    def clear_all(self) -> bool:
        """Delete all persisted data"""
        return self.storage.clear()
