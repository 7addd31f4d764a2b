#!/usr/bin/env python3
"""
Create the local storage file and its schema
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from followguard.database.connection import StorageConfig, StorageManager
from followguard.utils.config import AppConfig


def main():
    config = AppConfig.from_env()
    if not config.validate():
        print("Configuration validation failed, please check environment variables")
        return False

    storage = StorageManager(StorageConfig(config.storage_path, config.storage_quota_bytes))
    try:
        if not storage.connect() or not storage.test_connection():
            print(f"Failed to initialise storage at {config.storage_path}")
            return False

        print(f"Storage ready: {config.storage_path} ({storage.bytes_in_use():,} bytes in use, "
              f"quota {config.storage_quota_bytes:,})")
        return True
    finally:
        storage.disconnect()


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
