"""
Storage models module
"""

from .followed_user import FollowedUser
from .block_set import ExactBlockSet, BloomBlockSet, BlockSet, block_set_from_dict
from .block_cache import BlockCache
from .sync_status import SyncStatus
from .auth_token import AuthToken, normalize_pds_url

__all__ = [
    'FollowedUser',
    'ExactBlockSet',
    'BloomBlockSet',
    'BlockSet',
    'block_set_from_dict',
    'BlockCache',
    'SyncStatus',
    'AuthToken',
    'normalize_pds_url',
]
