"""
Per-followed-user block data models

Two persistence profiles exist: an exact DID list and a bloom filter.
A stored entry is always replaced wholesale, never merged.
"""

from typing import Dict, FrozenSet, List, Optional, Union
from dataclasses import dataclass, field

from .followed_user import FollowedUser
from ...services.bloom.bloom_filter import BloomFilter


@dataclass
class ExactBlockSet:
    """Exact list of DIDs a followed user blocks"""
    did: str
    handle: str
    blocks: List[str]
    last_synced: float
    display_name: Optional[str] = None
    avatar: Optional[str] = None
    _index: Optional[FrozenSet[str]] = field(default=None, init=False, repr=False, compare=False)

    kind = 'exact'

    def contains(self, did: str, set_threshold: int = 32) -> bool:
        """Literal membership test, hashing the list once it gets long"""
        if len(self.blocks) <= set_threshold:
            return did in self.blocks
        if self._index is None:
            self._index = frozenset(self.blocks)
        return did in self._index

    @property
    def entry_count(self) -> int:
        return len(self.blocks)

    def to_user(self) -> FollowedUser:
        return FollowedUser(self.did, self.handle, self.display_name, self.avatar)

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return {
            'kind': self.kind,
            'did': self.did,
            'handle': self.handle,
            'display_name': self.display_name,
            'avatar': self.avatar,
            'blocks': list(self.blocks),
            'last_synced': self.last_synced,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ExactBlockSet':
        """Create ExactBlockSet from dictionary"""
        blocks = data.get('blocks') or []
        return cls(
            did=data.get('did', ''),
            handle=data.get('handle', ''),
            blocks=[str(item) for item in blocks],
            last_synced=float(data.get('last_synced', 0)),
            display_name=data.get('display_name'),
            avatar=data.get('avatar')
        )


@dataclass
class BloomBlockSet:
    """Bloom filter compressed block list of a followed user"""
    did: str
    handle: str
    bloom_filter: BloomFilter
    approx_count: int
    last_synced: float
    display_name: Optional[str] = None
    avatar: Optional[str] = None

    kind = 'bloom'

    def might_contain(self, did: str) -> bool:
        return self.bloom_filter.might_contain(did)

    @property
    def entry_count(self) -> int:
        return self.approx_count

    def to_user(self) -> FollowedUser:
        return FollowedUser(self.did, self.handle, self.display_name, self.avatar)

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return {
            'kind': self.kind,
            'did': self.did,
            'handle': self.handle,
            'display_name': self.display_name,
            'avatar': self.avatar,
            'bloom_filter': self.bloom_filter.to_dict(),
            'approx_count': self.approx_count,
            'last_synced': self.last_synced,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'BloomBlockSet':
        """Create BloomBlockSet from dictionary"""
        return cls(
            did=data.get('did', ''),
            handle=data.get('handle', ''),
            bloom_filter=BloomFilter.from_dict(data['bloom_filter']),
            approx_count=int(data.get('approx_count', 0)),
            last_synced=float(data.get('last_synced', 0)),
            display_name=data.get('display_name'),
            avatar=data.get('avatar')
        )


BlockSet = Union[ExactBlockSet, BloomBlockSet]


def block_set_from_dict(data: Dict) -> BlockSet:
    """Rebuild a block set from its persisted dictionary"""
    kind = data.get('kind')
    if kind == BloomBlockSet.kind or (kind is None and 'bloom_filter' in data):
        return BloomBlockSet.from_dict(data)
    return ExactBlockSet.from_dict(data)
