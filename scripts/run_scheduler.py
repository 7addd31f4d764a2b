#!/usr/bin/env python3
"""
Scheduler startup script
"""

import sys
import os
import time
import argparse

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from followguard.runtime import build_runtime
from followguard.utils.config import AppConfig


def main():
    parser = argparse.ArgumentParser(description='Periodic block sync scheduler')
    parser.add_argument('--no-initial-sync', action='store_true', help='Wait for the first interval before syncing')
    parser.add_argument('--list-jobs', action='store_true', help='List registered jobs and exit')
    parser.add_argument('--log-dir', type=str, default='logs', help='Directory for scheduler log files')
    args = parser.parse_args()

    config = AppConfig.from_env()
    if not config.validate():
        print("Configuration validation failed, please check environment variables")
        return False

    runtime = build_runtime(config, log_dir=args.log_dir)

    try:
        if args.list_jobs:
            runtime.scheduler.add_periodic_job()
            runtime.scheduler.list_jobs()
            return True

        runtime.scheduler.start(run_immediately=not args.no_initial_sync)
        print("Press Ctrl+C to stop the scheduler")
        while True:
            time.sleep(1)

    except KeyboardInterrupt:
        print("\nStopping...")
        return True
    finally:
        runtime.close()


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
