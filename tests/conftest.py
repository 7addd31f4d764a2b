"""
Pytest configuration and shared fixtures
"""

import os
import sys
from typing import Dict, List
from unittest.mock import Mock

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from followguard.database.connection import StorageConfig, StorageManager
from followguard.database.models.auth_token import AuthToken
from followguard.database.models.followed_user import FollowedUser
from followguard.database.repositories.cache_store import CacheStore
from followguard.services.bsky_service.bsky_api import BlueskyAPI
from followguard.utils.config import AppConfig


OWNER_DID = 'did:plc:owner0000000000000000'


@pytest.fixture
def config() -> AppConfig:
    """Config with delays disabled"""
    return AppConfig(
        storage_path=':memory:',
        batch_delay=0,
        follows_page_delay=0,
        api_backoff_seconds=0,
        log_level='WARNING'
    )


@pytest.fixture
def storage():
    """In-memory storage with the default quota"""
    manager = StorageManager(StorageConfig(':memory:', 10 * 1024 * 1024))
    yield manager
    manager.disconnect()


@pytest.fixture
def cache_store(storage) -> CacheStore:
    return CacheStore(storage)


@pytest.fixture
def auth() -> AuthToken:
    return AuthToken(
        access_token='jwt-123',
        did=OWNER_DID,
        handle='owner.bsky.social',
        pds_url='https://pds.example.com'
    )


@pytest.fixture
def mock_api():
    """Mock Bluesky API client"""
    api = Mock(spec=BlueskyAPI)
    api.get_all_follows.return_value = []
    api.get_user_blocks.return_value = []
    return api


def make_users(count: int, prefix: str = 'user') -> List[FollowedUser]:
    return [
        FollowedUser(did=f'did:plc:{prefix}{i:04d}', handle=f'{prefix}{i}.bsky.social', display_name=f'User {i}')
        for i in range(count)
    ]


def blocks_lookup(blocks_by_did: Dict[str, object]):
    """side_effect for get_user_blocks: return lists, raise exceptions"""
    def _get_user_blocks(did, pds_url=None):
        value = blocks_by_did.get(did, [])
        if isinstance(value, Exception):
            raise value
        return value
    return _get_user_blocks
