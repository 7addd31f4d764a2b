"""
Auth token data model
"""

from typing import Dict, Optional
from dataclasses import dataclass, asdict


DEFAULT_PDS_URL = "https://bsky.social"


def normalize_pds_url(url: Optional[str], default: str = DEFAULT_PDS_URL) -> str:
    """Strip trailing slashes and make sure a scheme is present"""
    url = (url or default).strip().rstrip('/')
    if not url.startswith('http://') and not url.startswith('https://'):
        url = 'https://' + url
    return url


@dataclass
class AuthToken:
    """Session of the authenticated user; did pins the cache owner"""
    access_token: str
    did: str
    handle: str = ''
    pds_url: str = DEFAULT_PDS_URL
    refresh_token: Optional[str] = None

    def __post_init__(self):
        self.pds_url = normalize_pds_url(self.pds_url)

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'AuthToken':
        """Create AuthToken from a persisted or session dictionary"""
        return cls(
            access_token=data.get('access_token', data.get('accessJwt', '')),
            did=data.get('did', ''),
            handle=data.get('handle') or '',
            pds_url=data.get('pds_url') or data.get('pdsUrl') or data.get('service') or DEFAULT_PDS_URL,
            refresh_token=data.get('refresh_token', data.get('refreshJwt'))
        )
