"""
Bloom filter subpackage
"""

from .bloom_filter import (
    BloomFilter,
    HashStrategy,
    Fnv1aHashStrategy,
    Murmur3HashStrategy,
    get_hash_strategy,
)

__all__ = [
    'BloomFilter',
    'HashStrategy',
    'Fnv1aHashStrategy',
    'Murmur3HashStrategy',
    'get_hash_strategy',
]
