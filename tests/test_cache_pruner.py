"""
Unit tests for cache size estimation and eviction
"""

from followguard.database.models import BlockCache, ExactBlockSet, FollowedUser
from followguard.services.sync_service.cache_pruner import estimate_size, prune_cache


def build_cache(sizes):
    """One followed user per entry, entry i holding sizes[i] blocked DIDs"""
    users = [FollowedUser(f'did:plc:user{i}', f'user{i}.bsky.social') for i in range(len(sizes))]
    block_sets = {
        user.did: ExactBlockSet(user.did, user.handle, [f'did:plc:blocked{i}-{j:05d}' for j in range(size)], 1.0)
        for i, (user, size) in enumerate(zip(users, sizes))
    }
    return BlockCache('did:plc:owner', users, block_sets)


def test_estimate_size_matches_compact_json():
    assert estimate_size({'a': 1}) == len('{"a":1}')
    assert estimate_size('é') == 4


def test_estimate_size_uses_to_dict():
    cache = build_cache([3])
    assert estimate_size(cache) == estimate_size(cache.to_dict())


def test_no_pruning_under_limit():
    cache = build_cache([5, 5])
    assert prune_cache(cache, estimate_size(cache)) == []
    assert len(cache.block_sets) == 2


def test_evicts_largest_entries_first():
    cache = build_cache([10, 200, 50, 5])
    limit = estimate_size(cache) - 1000

    evicted = prune_cache(cache, limit)

    assert evicted == ['did:plc:user1']
    assert estimate_size(cache) <= limit
    assert set(cache.block_sets) == {'did:plc:user0', 'did:plc:user2', 'did:plc:user3'}


def test_evicts_until_it_fits():
    cache = build_cache([10, 200, 50, 5])
    limit = estimate_size(build_cache([10, 0, 0, 5]))

    evicted = prune_cache(cache, limit)

    assert evicted == ['did:plc:user1', 'did:plc:user2']
    assert estimate_size(cache) <= limit


def test_follow_list_is_kept():
    cache = build_cache([100, 100])
    prune_cache(cache, 10)

    assert cache.block_sets == {}
    assert len(cache.followed_users) == 2
