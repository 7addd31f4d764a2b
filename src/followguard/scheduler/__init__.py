"""
Scheduler package
"""

from .sync_scheduler import BlockSyncScheduler

__all__ = ['BlockSyncScheduler']
