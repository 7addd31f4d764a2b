"""
Storage package
"""

from .connection import StorageConfig, StorageManager, StorageQuotaError, get_storage_manager, reset_storage_manager
from .repositories import CacheStore
from .schemas import StorageSchema

__all__ = [
    'StorageConfig',
    'StorageManager',
    'StorageQuotaError',
    'get_storage_manager',
    'reset_storage_manager',
    'CacheStore',
    'StorageSchema',
]
