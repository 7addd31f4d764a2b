#!/usr/bin/env python3
"""
Look up which of your follows block a profile, and which of them it blocks
"""

import sys
import os
import json
import argparse

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from followguard.runtime import build_runtime
from followguard.services.message_service import GET_BLOCKING_INFO, GET_SYNC_STATUS
from followguard.utils.config import AppConfig


def main():
    parser = argparse.ArgumentParser(description='Blocking lookup for one profile')
    parser.add_argument('profile', type=str, help='DID or handle of the profile')
    parser.add_argument('--json', action='store_true', help='Print the raw response envelope')
    args = parser.parse_args()

    config = AppConfig.from_env()
    if not config.validate():
        print("Configuration validation failed, please check environment variables")
        return False

    runtime = build_runtime(config)

    try:
        profile_did = args.profile
        if not profile_did.startswith('did:'):
            profile = runtime.api.get_profile(profile_did)
            if profile is None:
                print(f"Could not resolve {args.profile}")
                return False
            profile_did = profile.did

        response = runtime.request_handler.handle({'type': GET_BLOCKING_INFO, 'profile_did': profile_did})
        if args.json:
            print(json.dumps(response, indent=2, ensure_ascii=False))
            return response.get('success', False)

        if not response.get('success'):
            print(f"Lookup failed: {response.get('error')}")
            return False

        info = response['blocking_info']
        print(f"Followed accounts blocking {args.profile}: {len(info['blocked_by'])}")
        for user in info['blocked_by']:
            print(f"  - @{user['handle']}")
        print(f"Followed accounts blocked by {args.profile}: {len(info['blocking'])}")
        for user in info['blocking']:
            print(f"  - @{user['handle']}")

        status = runtime.request_handler.handle({'type': GET_SYNC_STATUS})['sync_status']
        print(f"(cache: {status['synced_follows']}/{status['total_follows']} follows synced)")
        return True

    finally:
        runtime.close()


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
