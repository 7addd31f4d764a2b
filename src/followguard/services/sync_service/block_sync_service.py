"""
Block Sync Service
Full resynchronization of the follow list and each followed user's block list
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ...database.connection import StorageQuotaError
from ...database.models.auth_token import AuthToken
from ...database.models.block_cache import BlockCache
from ...database.models.followed_user import FollowedUser
from ...database.models.sync_status import SyncStatus
from ...database.repositories.cache_store import CacheStore
from ...utils.config import AppConfig
from ..block_profiles import BlockProfile, get_block_profile
from ..bsky_service.bsky_api import BlueskyAPI, chunk
from .cache_pruner import estimate_size, prune_cache


class SyncPhase(Enum):
    IDLE = "idle"
    LOCKED = "locked"
    ENUMERATING = "enumerating"
    FETCHING = "fetching"
    FINALIZING = "finalizing"


class BlockSyncService:
    """
    Sync engine

    Runs one full pass: take the lease lock, enumerate follows, fetch block
    lists in small concurrent batches, persist incrementally and evict on
    quota errors. A pass killed midway leaves a stale lock that the next
    invocation reclaims after stale_lock_timeout.
    """

    def __init__(self, config: AppConfig, cache_store: CacheStore, api: BlueskyAPI,
                 profile: Optional[BlockProfile] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.time):
        self.config = config
        self.cache_store = cache_store
        self.api = api
        self.profile = profile or get_block_profile(config)
        self.sleep = sleep
        self.clock = clock
        self.phase = SyncPhase.IDLE
        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        """Setup logger"""
        logger = logging.getLogger(f'{__name__}.BlockSyncService')
        logger.setLevel(getattr(logging, self.config.log_level, logging.INFO))

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    def _set_phase(self, phase: SyncPhase):
        self.logger.debug(f"Sync phase: {self.phase.value} -> {phase.value}")
        self.phase = phase

    def _acquire_lock(self) -> Optional[SyncStatus]:
        """
        Take the lease lock unless a live pass holds it

        Returns:
            The status as it was before locking, None when the lock is held
        """
        status = self.cache_store.get_sync_status()
        now = self.clock()

        if status.is_lock_held(now, self.config.stale_lock_timeout):
            self.logger.info("Sync already in progress, skipping")
            return None

        if status.is_running:
            self.logger.warning(f"Stale lock detected ({round(status.heartbeat_age(now))}s old), resetting...")
            self.cache_store.update_sync_status(is_running=False)

        self.cache_store.update_sync_status(is_running=True, errors=[])
        self._set_phase(SyncPhase.LOCKED)
        return status

    def _prepare_cache(self, auth: AuthToken) -> BlockCache:
        """Load the cache for the current identity and drop entries of another profile"""
        cache = self.cache_store.load_cache_for_owner(auth.did)

        foreign = [did for did, block_set in cache.block_sets.items() if not self.profile.accepts(block_set)]
        for did in foreign:
            del cache.block_sets[did]
        if foreign:
            self.logger.info(f"Discarded {len(foreign)} entries stored by another block profile")

        if cache.is_structurally_incomplete(self.config.incomplete_follow_threshold,
                                            self.config.incomplete_cache_ratio):
            self.logger.info(f"Cache looks incomplete ({len(cache.block_sets)} entries for "
                             f"{len(cache.followed_users)} follows), running as first-time sync")
            cache.block_sets = {}
        elif not cache.followed_users:
            self.logger.info("Cache empty, running as first-time sync")

        return cache

    def safe_save_block_cache(self, cache: BlockCache, errors: Optional[List[str]] = None) -> bool:
        """Save the cache; on a quota error prune and retry exactly once"""
        try:
            self.cache_store.save_block_cache(cache)
            return True
        except StorageQuotaError as e:
            self.logger.warning(f"Quota exceeded, pruning cache: {e}")

        prune_cache(cache, self.config.max_cache_size_bytes)
        try:
            self.cache_store.save_block_cache(cache)
            self.logger.info("Successfully saved pruned cache")
            return True
        except StorageQuotaError as retry_error:
            self.logger.error(f"Failed to save even after pruning: {retry_error}")
            if errors is not None:
                errors.append(f"Failed to save cache after pruning: {retry_error}")
            return False

    def _proactive_prune(self, cache: BlockCache, errors: List[str]):
        """Make headroom before any new work when the cache nears the ceiling"""
        initial_size = estimate_size(cache)
        limit = self.config.max_cache_size_bytes * self.config.proactive_prune_ratio
        if initial_size > limit:
            self.logger.info(f"Cache size ({initial_size / 1024 / 1024:.1f}MB) approaching limit, pruning...")
            prune_cache(cache, self.config.max_cache_size_bytes)
            self.safe_save_block_cache(cache, errors)

    def _heartbeat(self, follows_so_far: int):
        """Keep the lease alive while the follows listing pages in"""
        self.logger.debug(f"Enumerated {follows_so_far} follows")
        self.cache_store.update_sync_status()

    def _replace_follows(self, cache: BlockCache, follows: List[FollowedUser]):
        """Replace the follow list and drop entries of accounts no longer followed"""
        cache.followed_users = follows
        followed = {user.did for user in follows}
        for did in [did for did in cache.block_sets if did not in followed]:
            del cache.block_sets[did]

    def _fetch_user_blocks(self, user: FollowedUser) -> List[str]:
        blocks = self.api.get_user_blocks(user.did)
        if not isinstance(blocks, (list, tuple)):
            return []
        return list(blocks)

    def _fetch_batch(self, batch: List[FollowedUser]) -> Tuple[Dict[str, List[str]], List[str]]:
        """Fetch block lists of one batch concurrently; failures become error strings"""
        results: Dict[str, List[str]] = {}
        errors: List[str] = []

        with ThreadPoolExecutor(max_workers=len(batch)) as executor:
            future_to_user = {executor.submit(self._fetch_user_blocks, user): user for user in batch}

            for future in as_completed(future_to_user):
                user = future_to_user[future]
                try:
                    results[user.did] = future.result()
                except Exception as e:
                    errors.append(f"Failed to sync {user.handle}: {str(e) or type(e).__name__}")
                    self.logger.error(f"Error syncing {user.handle}: {e}")

        return results, errors

    def _store_user_blocks(self, cache: BlockCache, user: FollowedUser, blocks: List[str]):
        """Replace a user's entry; users without blocks are not stored"""
        if blocks:
            cache.block_sets[user.did] = self.profile.build_block_set(user, blocks, self.clock())
        else:
            cache.block_sets.pop(user.did, None)

    def _sync_block_lists(self, cache: BlockCache, follows: List[FollowedUser], errors: List[str]) -> int:
        """Fetch, store and periodically persist block lists batch by batch"""
        batches = chunk(follows, self.config.batch_size)
        synced_count = 0

        for batch_index, batch in enumerate(batches):
            results, batch_errors = self._fetch_batch(batch)
            errors.extend(batch_errors)

            for user in batch:
                if user.did in results:
                    self._store_user_blocks(cache, user, results[user.did])
                    synced_count += 1

            self.cache_store.update_sync_status(synced_follows=synced_count, total_follows=len(follows))
            self.logger.info(f"Synced batch {batch_index + 1}/{len(batches)} ({synced_count}/{len(follows)} users)")

            is_last = batch_index == len(batches) - 1
            if (batch_index + 1) % self.config.save_interval == 0 or is_last:
                cache.last_full_sync = self.clock()
                if self.safe_save_block_cache(cache, errors):
                    self.logger.info(f"Saved cache (batch {batch_index + 1}/{len(batches)})")

            if not is_last and self.config.batch_delay > 0:
                self.sleep(self.config.batch_delay)

        return synced_count

    def perform_full_sync(self) -> Dict:
        """
        Perform a full sync pass

        Returns:
            Sync statistics; status is one of completed, skipped_locked,
            skipped_no_auth or failed
        """
        start_time = time.time()
        self.logger.info("Starting full sync...")

        previous_status = self._acquire_lock()
        if previous_status is None:
            return {'status': 'skipped_locked', 'processing_time': time.time() - start_time}

        try:
            auth = self.cache_store.get_stored_auth()
            if auth is None:
                self.logger.info("No auth available, skipping sync")
                self.cache_store.update_sync_status(is_running=False, errors=previous_status.errors)
                self._set_phase(SyncPhase.IDLE)
                return {'status': 'skipped_no_auth', 'processing_time': time.time() - start_time}

            self.cache_store.update_sync_status(synced_follows=0)
            cache = self._prepare_cache(auth)
            errors: List[str] = []
            self._proactive_prune(cache, errors)

            self._set_phase(SyncPhase.ENUMERATING)
            self.logger.info("Fetching all follows...")
            follows = self.api.get_all_follows(
                auth.did,
                page_delay=self.config.follows_page_delay,
                on_page=self._heartbeat
            )
            self._replace_follows(cache, follows)
            self.cache_store.update_sync_status(total_follows=len(follows), synced_follows=0)
            self.logger.info(f"Got {len(follows)} follows, fetching block lists...")

            self._set_phase(SyncPhase.FETCHING)
            synced_count = self._sync_block_lists(cache, follows, errors)
            if not follows:
                cache.last_full_sync = self.clock()
                self.safe_save_block_cache(cache, errors)

            self._set_phase(SyncPhase.FINALIZING)
            self.cache_store.update_sync_status(
                is_running=False,
                last_sync=self.clock(),
                synced_follows=synced_count,
                total_follows=len(follows),
                errors=errors
            )
            self._set_phase(SyncPhase.IDLE)

            processing_time = time.time() - start_time
            self.logger.info(f"Full sync complete: {synced_count}/{len(follows)} users, "
                             f"{len(errors)} errors in {processing_time:.2f} seconds")
            return {
                'status': 'completed',
                'total_follows': len(follows),
                'synced_follows': synced_count,
                'cached_users': len(cache.block_sets),
                'errors': errors,
                'processing_time': processing_time
            }

        except Exception as e:
            error_msg = str(e) or 'Unknown error'
            self.logger.error(f"Sync error: {error_msg}")
            self.cache_store.update_sync_status(is_running=False, errors=[error_msg])
            self._set_phase(SyncPhase.IDLE)
            return {
                'status': 'failed',
                'error': error_msg,
                'processing_time': time.time() - start_time
            }
