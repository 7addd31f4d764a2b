#!/usr/bin/env python3
"""
Run a single block sync pass
"""

import sys
import os
import argparse

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from followguard.database.models.auth_token import AuthToken
from followguard.runtime import build_runtime
from followguard.utils.config import AppConfig


def main():
    parser = argparse.ArgumentParser(description='Run one block sync pass')
    parser.add_argument('--did', type=str, help='Store auth for this DID before syncing')
    parser.add_argument('--handle', type=str, default='', help='Handle for --did')
    parser.add_argument('--pds-url', type=str, default=None, help='PDS URL for --did')
    args = parser.parse_args()

    config = AppConfig.from_env()
    if not config.validate():
        print("Configuration validation failed, please check environment variables")
        return False

    print(f"Configuration loaded: {config}")
    runtime = build_runtime(config)

    try:
        if args.did:
            runtime.cache_store.store_auth(AuthToken(
                access_token=os.getenv('BSKY_ACCESS_TOKEN', ''),
                did=args.did,
                handle=args.handle,
                pds_url=args.pds_url or config.default_pds_url
            ))

        result = runtime.sync_service.perform_full_sync()
        print(f"Sync result: {result.get('status')}")
        if result.get('status') == 'completed':
            print(f"  {result['synced_follows']}/{result['total_follows']} users synced, "
                  f"{result['cached_users']} with blocks, {len(result['errors'])} errors")
        elif result.get('error'):
            print(f"  error: {result['error']}")

        return result.get('status') in ('completed', 'skipped_locked')

    except KeyboardInterrupt:
        print("\nInterrupted, the sync lock will be reclaimed after it goes stale")
        return False
    finally:
        runtime.close()


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
