"""
Component wiring shared by the scripts
"""

from dataclasses import dataclass
from typing import Optional

from .database.connection import StorageConfig, StorageManager
from .database.repositories.cache_store import CacheStore
from .scheduler.sync_scheduler import BlockSyncScheduler
from .services.block_profiles import BlockProfile, get_block_profile
from .services.bsky_service.bsky_api import BlueskyAPI
from .services.message_service import BlockInfoRequestHandler
from .services.query_service.blocking_query_service import BlockingQueryService
from .services.sync_service.block_sync_service import BlockSyncService
from .utils.config import AppConfig


@dataclass
class FollowGuardRuntime:
    config: AppConfig
    storage: StorageManager
    cache_store: CacheStore
    api: BlueskyAPI
    profile: BlockProfile
    sync_service: BlockSyncService
    query_service: BlockingQueryService
    scheduler: BlockSyncScheduler
    request_handler: BlockInfoRequestHandler

    def close(self):
        self.scheduler.shutdown()
        self.storage.disconnect()


def build_runtime(config: AppConfig, storage: Optional[StorageManager] = None,
                  api: Optional[BlueskyAPI] = None, log_dir: Optional[str] = None) -> FollowGuardRuntime:
    """Wire storage, API client, engines, scheduler and request handler"""
    storage = storage or StorageManager(StorageConfig(config.storage_path, config.storage_quota_bytes))
    cache_store = CacheStore(storage)
    api = api or BlueskyAPI(config)
    profile = get_block_profile(config)

    sync_service = BlockSyncService(config, cache_store, api, profile)
    query_service = BlockingQueryService(cache_store, profile, api, config.verify_max_workers)
    scheduler = BlockSyncScheduler(config, sync_service, log_dir=log_dir)
    request_handler = BlockInfoRequestHandler(
        config, cache_store, api, sync_service, query_service,
        fire_sync=scheduler.trigger_now
    )

    return FollowGuardRuntime(
        config=config,
        storage=storage,
        cache_store=cache_store,
        api=api,
        profile=profile,
        sync_service=sync_service,
        query_service=query_service,
        scheduler=scheduler,
        request_handler=request_handler
    )
