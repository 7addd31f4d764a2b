"""
Block data persistence profiles

A deployment stores block lists either as exact DID lists or as bloom
filters. One profile is active per build; the sync engine writes only its
entries and the query engine reads only its entries.
"""

from typing import List, Optional

from ..database.models.block_set import BlockSet, BloomBlockSet, ExactBlockSet
from ..database.models.followed_user import FollowedUser
from ..utils.config import AppConfig
from .bloom.bloom_filter import (
    BloomFilter,
    DEFAULT_BITS_PER_ELEMENT,
    DEFAULT_HASH_COUNT,
    HashStrategy,
    get_hash_strategy,
)


class BlockProfile:
    """Strategy deciding how block lists are stored and matched"""

    name = "abstract"
    requires_verification = False

    def build_block_set(self, user: FollowedUser, blocks: List[str], now: float) -> BlockSet:
        raise NotImplementedError

    def accepts(self, block_set: BlockSet) -> bool:
        """Whether a stored entry belongs to this profile"""
        raise NotImplementedError

    def matches(self, block_set: BlockSet, profile_did: str) -> bool:
        """Whether the entry (possibly) contains the DID"""
        raise NotImplementedError


class ExactBlockProfile(BlockProfile):
    """Raw DID lists; answers need no verification"""

    name = "exact"
    requires_verification = False

    def __init__(self, set_threshold: int = 32):
        self.set_threshold = set_threshold

    def build_block_set(self, user: FollowedUser, blocks: List[str], now: float) -> ExactBlockSet:
        return ExactBlockSet(
            did=user.did,
            handle=user.handle,
            blocks=list(blocks),
            last_synced=now,
            display_name=user.display_name,
            avatar=user.avatar
        )

    def accepts(self, block_set: BlockSet) -> bool:
        return isinstance(block_set, ExactBlockSet)

    def matches(self, block_set: BlockSet, profile_did: str) -> bool:
        return isinstance(block_set, ExactBlockSet) and block_set.contains(profile_did, self.set_threshold)


class BloomBlockProfile(BlockProfile):
    """Bloom filter compressed lists; matches are candidates to verify"""

    name = "bloom"
    requires_verification = True

    def __init__(self, bits_per_element: int = DEFAULT_BITS_PER_ELEMENT,
                 hash_count: int = DEFAULT_HASH_COUNT,
                 hash_strategy: Optional[HashStrategy] = None):
        self.bits_per_element = bits_per_element
        self.hash_count = hash_count
        self.hash_strategy = hash_strategy or get_hash_strategy()

    def build_block_set(self, user: FollowedUser, blocks: List[str], now: float) -> BloomBlockSet:
        bloom = BloomFilter.from_items(
            blocks,
            bits_per_element=self.bits_per_element,
            hash_count=self.hash_count,
            hash_strategy=self.hash_strategy
        )
        return BloomBlockSet(
            did=user.did,
            handle=user.handle,
            bloom_filter=bloom,
            approx_count=len(blocks),
            last_synced=now,
            display_name=user.display_name,
            avatar=user.avatar
        )

    def accepts(self, block_set: BlockSet) -> bool:
        return isinstance(block_set, BloomBlockSet)

    def matches(self, block_set: BlockSet, profile_did: str) -> bool:
        return isinstance(block_set, BloomBlockSet) and block_set.might_contain(profile_did)


def get_block_profile(config: AppConfig) -> BlockProfile:
    """Build the profile selected by configuration"""
    if config.block_profile == BloomBlockProfile.name:
        return BloomBlockProfile(
            bits_per_element=config.bloom_bits_per_element,
            hash_count=config.bloom_hash_count,
            hash_strategy=get_hash_strategy(config.bloom_hash)
        )
    if config.block_profile == ExactBlockProfile.name:
        return ExactBlockProfile(set_threshold=config.exact_set_threshold)
    raise ValueError(f"Unknown block profile: {config.block_profile}")
