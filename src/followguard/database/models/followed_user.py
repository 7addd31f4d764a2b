"""
Followed user data model
"""

from typing import Dict, Optional
from dataclasses import dataclass, asdict


@dataclass
class FollowedUser:
    """An account the authenticated user follows"""
    did: str
    handle: str
    display_name: Optional[str] = None
    avatar: Optional[str] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'FollowedUser':
        """Create FollowedUser from a persisted or API dictionary"""
        return cls(
            did=data.get('did', ''),
            handle=data.get('handle', ''),
            display_name=data.get('display_name', data.get('displayName')),
            avatar=data.get('avatar')
        )
