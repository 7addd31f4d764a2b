"""
Sync status data model
"""

from typing import Dict, List
from dataclasses import dataclass, field, asdict


@dataclass
class SyncStatus:
    """
    Progress record of the sync engine

    Doubles as a lease: is_running plus last_heartbeat decide whether a
    pass is live or whether its owner died and the lock may be reclaimed.
    """
    total_follows: int = 0
    synced_follows: int = 0
    last_sync: float = 0
    is_running: bool = False
    last_heartbeat: float = 0
    errors: List[str] = field(default_factory=list)

    def heartbeat_age(self, now: float) -> float:
        return now - (self.last_heartbeat or 0)

    def is_stale(self, now: float, stale_timeout: float) -> bool:
        """Running, but without progress for longer than the timeout"""
        return self.is_running and self.heartbeat_age(now) >= stale_timeout

    def is_lock_held(self, now: float, stale_timeout: float) -> bool:
        """Another live pass owns the lock"""
        return self.is_running and self.heartbeat_age(now) < stale_timeout

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'SyncStatus':
        """Create SyncStatus from dictionary"""
        return cls(
            total_follows=int(data.get('total_follows', 0)),
            synced_follows=int(data.get('synced_follows', 0)),
            last_sync=float(data.get('last_sync', 0)),
            is_running=bool(data.get('is_running', False)),
            last_heartbeat=float(data.get('last_heartbeat', 0)),
            errors=list(data.get('errors') or [])
        )
