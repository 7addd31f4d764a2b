"""
Storage repositories module
"""

from .cache_store import CacheStore, STORAGE_KEYS

__all__ = ['CacheStore', 'STORAGE_KEYS']
