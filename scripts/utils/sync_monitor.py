#!/usr/bin/env python3
"""
Progress monitoring for a running block sync

Polls the persisted sync status and renders a progress bar until the pass
finishes or its lock goes stale.
"""

import sys
import os
import time
import argparse

from tqdm import tqdm

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from followguard.database.connection import StorageConfig, StorageManager
from followguard.database.repositories.cache_store import CacheStore
from followguard.utils.config import AppConfig


class SyncStatusMonitor:
    """Follow SyncStatus progress with a tqdm bar"""

    def __init__(self, cache_store: CacheStore, stale_timeout: float, update_interval: float = 1.0):
        self.cache_store = cache_store
        self.stale_timeout = stale_timeout
        self.update_interval = update_interval

    def wait(self, start_timeout: float = 30.0) -> bool:
        """
        Block until the current pass ends

        Returns:
            True when the pass finished, False when none started or its lock went stale
        """
        deadline = time.time() + start_timeout
        status = self.cache_store.get_sync_status()
        while not status.is_running:
            if time.time() > deadline:
                print("No sync in progress")
                return False
            time.sleep(self.update_interval)
            status = self.cache_store.get_sync_status()

        pbar = tqdm(total=status.total_follows or None, desc="Block sync", unit="users")
        try:
            while status.is_running:
                if status.is_stale(time.time(), self.stale_timeout):
                    print("\nSync lock went stale, the owning process probably died")
                    return False

                if status.total_follows and pbar.total != status.total_follows:
                    pbar.total = status.total_follows
                    pbar.refresh()
                pbar.update(max(0, status.synced_follows - pbar.n))

                time.sleep(self.update_interval)
                status = self.cache_store.get_sync_status()

            pbar.update(max(0, status.synced_follows - pbar.n))
        finally:
            pbar.close()

        print(f"Sync finished: {status.synced_follows}/{status.total_follows} users, {len(status.errors)} errors")
        for error in status.errors:
            print(f"  - {error}")
        return True


def main():
    parser = argparse.ArgumentParser(description='Monitor a running block sync')
    parser.add_argument('--interval', type=float, default=1.0, help='Polling interval in seconds')
    parser.add_argument('--start-timeout', type=float, default=30.0, help='Seconds to wait for a sync to start')
    args = parser.parse_args()

    config = AppConfig.from_env()
    storage = StorageManager(StorageConfig(config.storage_path, config.storage_quota_bytes))
    try:
        monitor = SyncStatusMonitor(CacheStore(storage), config.stale_lock_timeout, args.interval)
        return monitor.wait(args.start_timeout)
    finally:
        storage.disconnect()


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
