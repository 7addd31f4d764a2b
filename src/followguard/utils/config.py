"""
Application configuration management module
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv


SUPPORTED_BLOCK_PROFILES = ('exact', 'bloom')
SUPPORTED_BLOOM_HASHES = ('fnv1a', 'murmur3')


@dataclass
class AppConfig:
    """Application configuration class"""

    # Local storage configuration
    storage_path: str = "data/followguard.db"
    storage_quota_bytes: int = 10 * 1024 * 1024  # Hard platform limit
    max_cache_size_bytes: int = 8 * 1024 * 1024  # Soft ceiling used for pruning
    proactive_prune_ratio: float = 0.9

    # Block data persistence profile
    block_profile: str = "exact"
    bloom_bits_per_element: int = 10
    bloom_hash_count: int = 7
    bloom_hash: str = "fnv1a"

    # Sync configuration
    sync_interval_minutes: int = 60
    batch_size: int = 5
    batch_delay: float = 0.5  # Seconds between block list batches
    follows_page_delay: float = 0.1  # Seconds between follow pages
    save_interval: int = 10  # Persist every N batches
    stale_lock_timeout: int = 300  # 5 minutes
    incomplete_follow_threshold: int = 100
    incomplete_cache_ratio: float = 0.05

    # Bluesky API configuration
    public_api_url: str = "https://public.api.bsky.app"
    default_pds_url: str = "https://bsky.social"
    plc_directory_url: str = "https://plc.directory"
    api_timeout: int = 30
    api_max_retries: int = 3
    api_backoff_seconds: float = 1.0
    api_min_interval: float = 0.0

    # Query configuration
    verify_max_workers: int = 5
    exact_set_threshold: int = 32

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Create configuration from environment variables"""
        load_dotenv()

        return cls(
            # Local storage configuration
            storage_path=os.getenv('FOLLOWGUARD_STORAGE_PATH', 'data/followguard.db'),
            storage_quota_bytes=int(os.getenv('STORAGE_QUOTA_BYTES', str(10 * 1024 * 1024))),
            max_cache_size_bytes=int(os.getenv('MAX_CACHE_SIZE_BYTES', str(8 * 1024 * 1024))),
            proactive_prune_ratio=float(os.getenv('PROACTIVE_PRUNE_RATIO', '0.9')),

            # Block data persistence profile
            block_profile=os.getenv('BLOCK_PROFILE', 'exact').strip().lower(),
            bloom_bits_per_element=int(os.getenv('BLOOM_BITS_PER_ELEMENT', '10')),
            bloom_hash_count=int(os.getenv('BLOOM_HASH_COUNT', '7')),
            bloom_hash=os.getenv('BLOOM_HASH', 'fnv1a').strip().lower(),

            # Sync configuration
            sync_interval_minutes=int(os.getenv('SYNC_INTERVAL_MINUTES', '60')),
            batch_size=int(os.getenv('BATCH_SIZE', '5')),
            batch_delay=float(os.getenv('BATCH_DELAY', '0.5')),
            follows_page_delay=float(os.getenv('FOLLOWS_PAGE_DELAY', '0.1')),
            save_interval=int(os.getenv('SAVE_INTERVAL', '10')),
            stale_lock_timeout=int(os.getenv('STALE_LOCK_TIMEOUT', '300')),

            # Bluesky API configuration
            public_api_url=os.getenv('BSKY_PUBLIC_API_URL', 'https://public.api.bsky.app'),
            default_pds_url=os.getenv('BSKY_DEFAULT_PDS_URL', 'https://bsky.social'),
            plc_directory_url=os.getenv('PLC_DIRECTORY_URL', 'https://plc.directory'),
            api_timeout=int(os.getenv('API_TIMEOUT', '30')),
            api_max_retries=int(os.getenv('API_MAX_RETRIES', '3')),
            api_backoff_seconds=float(os.getenv('API_BACKOFF_SECONDS', '1.0')),
            api_min_interval=float(os.getenv('API_MIN_INTERVAL', '0.0')),

            # Query configuration
            verify_max_workers=int(os.getenv('VERIFY_MAX_WORKERS', '5')),
            exact_set_threshold=int(os.getenv('EXACT_SET_THRESHOLD', '32')),

            log_level=os.getenv('LOG_LEVEL', 'INFO').upper()
        )

    def validate(self) -> bool:
        """Validate configuration"""
        if not self.storage_path:
            return False

        if self.storage_quota_bytes <= 0 or self.max_cache_size_bytes <= 0:
            return False

        if self.max_cache_size_bytes > self.storage_quota_bytes:
            return False

        if not 0 < self.proactive_prune_ratio <= 1:
            return False

        if self.block_profile not in SUPPORTED_BLOCK_PROFILES:
            return False

        # Bloom parameters only matter for the probabilistic profile
        if self.block_profile == 'bloom':
            if self.bloom_bits_per_element <= 0 or self.bloom_hash_count <= 0:
                return False
            if self.bloom_hash not in SUPPORTED_BLOOM_HASHES:
                return False

        if self.batch_size <= 0 or self.save_interval <= 0:
            return False

        if self.batch_delay < 0 or self.follows_page_delay < 0:
            return False

        if self.stale_lock_timeout <= 0 or self.sync_interval_minutes <= 0:
            return False

        if not self.public_api_url or not self.default_pds_url:
            return False

        if self.api_timeout <= 0 or self.api_max_retries < 0 or self.api_backoff_seconds < 0:
            return False

        if self.verify_max_workers <= 0:
            return False

        return True

    def __str__(self) -> str:
        """String representation"""
        return (f"AppConfig(profile={self.block_profile}, batch_size={self.batch_size}, "
                f"interval={self.sync_interval_minutes}m, storage={self.storage_path})")
