"""
Request handling service
Inbound requests from the calling surface, answered with success/error envelopes
"""

import logging
import threading
from typing import Callable, Dict, Optional

from ..database.models.auth_token import AuthToken
from ..database.models.block_cache import BlockCache
from ..database.repositories.cache_store import CacheStore
from ..utils.config import AppConfig
from .bsky_service.bsky_api import BlueskyAPI
from .query_service.blocking_query_service import BlockingQueryService
from .sync_service.block_sync_service import BlockSyncService


SET_AUTH = 'SET_AUTH'
GET_BLOCKING_INFO = 'GET_BLOCKING_INFO'
FETCH_PROFILE_BLOCKS = 'FETCH_PROFILE_BLOCKS'
TRIGGER_SYNC = 'TRIGGER_SYNC'
GET_SYNC_STATUS = 'GET_SYNC_STATUS'
CLEAR_CACHE = 'CLEAR_CACHE'


class BlockInfoRequestHandler:
    """Dispatches request messages to the sync and query engines"""

    def __init__(self, config: AppConfig, cache_store: CacheStore, api: BlueskyAPI,
                 sync_service: BlockSyncService, query_service: BlockingQueryService,
                 fire_sync: Optional[Callable[[], None]] = None):
        self.config = config
        self.cache_store = cache_store
        self.api = api
        self.sync_service = sync_service
        self.query_service = query_service
        self.fire_sync = fire_sync or self._start_background_sync
        self.logger = logging.getLogger(__name__)

        self._handlers = {
            SET_AUTH: self._handle_set_auth,
            GET_BLOCKING_INFO: self._handle_get_blocking_info,
            FETCH_PROFILE_BLOCKS: self._handle_fetch_profile_blocks,
            TRIGGER_SYNC: self._handle_trigger_sync,
            GET_SYNC_STATUS: self._handle_get_sync_status,
            CLEAR_CACHE: self._handle_clear_cache,
        }

    def _start_background_sync(self):
        """Fire and forget a sync pass on a daemon thread"""
        thread = threading.Thread(target=self.sync_service.perform_full_sync, name='followguard-sync', daemon=True)
        thread.start()

    def handle(self, message: Dict) -> Dict:
        """Handle one request message and return its response envelope"""
        message_type = message.get('type')
        self.logger.debug(f"Received message: {message_type}")

        handler = self._handlers.get(message_type)
        if handler is None:
            return {'success': False, 'error': 'Unknown message type'}

        try:
            return handler(message)
        except Exception as e:
            self.logger.error(f"Message handler error ({message_type}): {e}")
            return {'success': False, 'error': str(e) or 'Unknown error'}

    def _should_sync_after_auth(self, previous: Optional[AuthToken], auth: AuthToken) -> Optional[str]:
        """Reason to start a sync after a login, None when the cache looks complete"""
        if previous is None or previous.did != auth.did:
            return 'new user'

        cache = self.cache_store.get_block_cache()
        if cache is None or not cache.followed_users:
            return 'empty cache'

        if cache.is_structurally_incomplete(self.config.incomplete_follow_threshold,
                                            self.config.incomplete_cache_ratio):
            return 'incomplete cache'

        return None

    def _handle_set_auth(self, message: Dict) -> Dict:
        auth_data = message.get('auth')
        if not auth_data:
            return {'success': False, 'error': 'Missing auth'}

        auth = auth_data if isinstance(auth_data, AuthToken) else AuthToken.from_dict(auth_data)
        if not auth.did:
            return {'success': False, 'error': 'Missing did in auth'}

        previous = self.cache_store.get_stored_auth()
        self.cache_store.store_auth(auth)
        self.logger.info(f"Auth stored for {auth.handle or auth.did}")

        reason = self._should_sync_after_auth(previous, auth)
        if reason:
            self.logger.info(f"Triggering sync: {reason}")
            self.fire_sync()
        else:
            self.logger.info("Skipping sync - cache looks complete")

        return {'success': True}

    def _handle_get_blocking_info(self, message: Dict) -> Dict:
        profile_did = message.get('profile_did')
        if not profile_did:
            return {'success': False, 'error': 'Missing profile_did'}

        # The viewed profile is not one of my follows, so its blocks are fetched on demand
        profile_blocks = []
        try:
            profile_blocks = self.api.get_user_blocks(profile_did)
        except Exception as e:
            self.logger.info(f"Could not fetch profile blocks for {profile_did}: {e}")

        blocking_info = self.query_service.lookup_blocking_info(profile_did, profile_blocks)
        self.logger.info(f"Blocking info for {profile_did}: {len(blocking_info.blocked_by)} blocked_by, "
                         f"{len(blocking_info.blocking)} blocking")
        return {'success': True, 'blocking_info': blocking_info.to_dict()}

    def _handle_fetch_profile_blocks(self, message: Dict) -> Dict:
        profile_did = message.get('profile_did')
        if not profile_did:
            return {'success': False, 'error': 'Missing profile_did'}

        blocks = self.api.get_user_blocks(profile_did)
        return {'success': True, 'blocks': blocks}

    def _handle_trigger_sync(self, message: Dict) -> Dict:
        result = self.sync_service.perform_full_sync()
        if result.get('status') == 'failed':
            return {'success': False, 'error': result.get('error'), 'sync_result': result}
        return {'success': True, 'sync_result': result}

    def _handle_get_sync_status(self, message: Dict) -> Dict:
        status = self.cache_store.get_sync_status()
        return {'success': True, 'sync_status': status.to_dict()}

    def _handle_clear_cache(self, message: Dict) -> Dict:
        self.logger.info("Clearing cache and resetting sync status...")
        self.cache_store.save_block_cache(BlockCache.create_empty(''))
        self.cache_store.reset_sync_status()

        self.logger.info("Cache cleared, triggering full sync...")
        self.fire_sync()
        return {'success': True}
