"""
Unit tests for configuration
"""

import os
from unittest.mock import patch

from followguard.utils.config import AppConfig


def test_defaults():
    config = AppConfig()

    assert config.block_profile == 'exact'
    assert config.batch_size == 5
    assert config.sync_interval_minutes == 60
    assert config.stale_lock_timeout == 300
    assert config.max_cache_size_bytes == 8 * 1024 * 1024
    assert config.validate()


@patch('followguard.utils.config.load_dotenv')
def test_from_env(mock_load_dotenv):
    env = {
        'FOLLOWGUARD_STORAGE_PATH': '/tmp/cache.db',
        'BLOCK_PROFILE': ' Bloom ',
        'BLOOM_HASH': 'MURMUR3',
        'BATCH_SIZE': '10',
        'BATCH_DELAY': '1.5',
        'SYNC_INTERVAL_MINUTES': '30',
        'LOG_LEVEL': 'debug',
    }
    with patch.dict(os.environ, env):
        config = AppConfig.from_env()

    assert config.storage_path == '/tmp/cache.db'
    assert config.block_profile == 'bloom'
    assert config.bloom_hash == 'murmur3'
    assert config.batch_size == 10
    assert config.batch_delay == 1.5
    assert config.sync_interval_minutes == 30
    assert config.log_level == 'DEBUG'
    assert config.validate()


def test_validate_rejects_unknown_profile():
    assert not AppConfig(block_profile='compressed').validate()


def test_validate_rejects_unknown_bloom_hash():
    assert not AppConfig(block_profile='bloom', bloom_hash='sha1').validate()
    # Ignored by the exact profile
    assert AppConfig(block_profile='exact', bloom_hash='sha1').validate()


def test_validate_rejects_bad_sizes():
    assert not AppConfig(batch_size=0).validate()
    assert not AppConfig(max_cache_size_bytes=20 * 1024 * 1024).validate()
    assert not AppConfig(proactive_prune_ratio=1.5).validate()
