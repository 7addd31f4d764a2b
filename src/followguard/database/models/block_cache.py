"""
Block cache root aggregate model
"""

import logging
from typing import Dict, List
from dataclasses import dataclass, field

from .followed_user import FollowedUser
from .block_set import BlockSet, block_set_from_dict


logger = logging.getLogger(__name__)


@dataclass
class BlockCache:
    """Follows and their block sets, pinned to one authenticated identity"""
    owner_did: str
    followed_users: List[FollowedUser] = field(default_factory=list)
    block_sets: Dict[str, BlockSet] = field(default_factory=dict)
    last_full_sync: float = 0

    @classmethod
    def create_empty(cls, owner_did: str) -> 'BlockCache':
        """Create an empty cache for an identity"""
        return cls(owner_did=owner_did)

    def followed_by_did(self) -> Dict[str, FollowedUser]:
        """Map of followed DID to user"""
        return {user.did: user for user in self.followed_users}

    def is_structurally_incomplete(self, follow_threshold: int = 100, ratio: float = 0.05) -> bool:
        """Many follows but almost no block entries: an interrupted first sync"""
        follow_count = len(self.followed_users)
        return follow_count > follow_threshold and len(self.block_sets) < follow_count * ratio

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return {
            'owner_did': self.owner_did,
            'followed_users': [user.to_dict() for user in self.followed_users],
            'block_sets': {did: block_set.to_dict() for did, block_set in self.block_sets.items()},
            'last_full_sync': self.last_full_sync,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'BlockCache':
        """Create BlockCache from dictionary, skipping unreadable entries"""
        block_sets = {}
        for did, entry in (data.get('block_sets') or {}).items():
            try:
                block_sets[did] = block_set_from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable block entry for {did}: {e}")

        return cls(
            owner_did=data.get('owner_did', ''),
            followed_users=[FollowedUser.from_dict(user) for user in data.get('followed_users') or []],
            block_sets=block_sets,
            last_full_sync=float(data.get('last_full_sync', 0))
        )
