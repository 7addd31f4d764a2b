"""
Unit tests for the blocking query service
"""

import pytest

from followguard.database.models import BlockCache, BloomBlockSet, ExactBlockSet, FollowedUser
from followguard.services.block_profiles import BloomBlockProfile, ExactBlockProfile
from followguard.services.bloom.bloom_filter import BloomFilter
from followguard.services.bsky_service.bsky_api import BlueskyAPIError
from followguard.services.query_service.blocking_query_service import BlockingInfo, BlockingQueryService

from conftest import OWNER_DID, blocks_lookup


ALICE = FollowedUser('did:plc:alice', 'alice.bsky.social', 'Alice')
BOB = FollowedUser('did:plc:bob', 'bob.bsky.social', 'Bob')
CAROL = FollowedUser('did:plc:carol', 'carol.bsky.social', 'Carol')


def exact(user, blocks):
    return ExactBlockSet(user.did, user.handle, blocks, 1.0, user.display_name, user.avatar)


def saturated_bloom(user):
    """Bloom entry with every bit set, so it matches any DID"""
    bloom = BloomFilter(64, bit_array=bytearray(b'\xff' * 8), inserted_count=1)
    return BloomBlockSet(user.did, user.handle, bloom, 1, 1.0, user.display_name)


@pytest.fixture
def exact_service(cache_store, auth):
    cache_store.store_auth(auth)
    return BlockingQueryService(cache_store, ExactBlockProfile())


class TestExactLookup:
    """Lookups against exact DID lists"""

    def test_blocked_by(self, exact_service, cache_store):
        cache_store.save_block_cache(BlockCache(OWNER_DID, [ALICE, BOB], {
            ALICE.did: exact(ALICE, ['did:plc:p1']),
            BOB.did: exact(BOB, []),
        }))

        info = exact_service.lookup_blocking_info('did:plc:p1', [])

        assert info.blocked_by == [ALICE]
        assert info.blocking == []

    def test_blocking_direction(self, exact_service, cache_store):
        cache_store.save_block_cache(BlockCache(OWNER_DID, [ALICE, CAROL]))

        info = exact_service.lookup_blocking_info('did:plc:target', [CAROL.did, 'did:plc:stranger', CAROL.did])

        assert info.blocked_by == []
        assert info.blocking == [CAROL]

    def test_blocked_by_keeps_follow_order(self, exact_service, cache_store):
        cache_store.save_block_cache(BlockCache(OWNER_DID, [CAROL, ALICE, BOB], {
            ALICE.did: exact(ALICE, ['did:plc:p1']),
            CAROL.did: exact(CAROL, ['did:plc:p1']),
        }))

        info = exact_service.lookup_blocking_info('did:plc:p1')

        assert [user.did for user in info.blocked_by] == [CAROL.did, ALICE.did]

    def test_long_block_list(self, exact_service, cache_store):
        blocks = [f'did:plc:blocked{i:04d}' for i in range(500)]
        cache_store.save_block_cache(BlockCache(OWNER_DID, [ALICE], {ALICE.did: exact(ALICE, blocks)}))

        assert exact_service.lookup_blocking_info('did:plc:blocked0321').blocked_by == [ALICE]
        assert exact_service.lookup_blocking_info('did:plc:blocked9999').blocked_by == []

    def test_empty_cache(self, exact_service):
        info = exact_service.lookup_blocking_info('did:plc:p1', [ALICE.did])
        assert info == BlockingInfo()

    def test_cache_of_other_identity_is_ignored(self, exact_service, cache_store):
        cache_store.save_block_cache(BlockCache('did:plc:previous', [ALICE], {
            ALICE.did: exact(ALICE, ['did:plc:p1'])
        }))

        assert exact_service.lookup_blocking_info('did:plc:p1') == BlockingInfo()

    def test_bloom_entries_are_ignored(self, exact_service, cache_store):
        cache_store.save_block_cache(BlockCache(OWNER_DID, [ALICE], {ALICE.did: saturated_bloom(ALICE)}))
        assert exact_service.lookup_blocking_info('did:plc:p1').blocked_by == []

    def test_to_dict(self):
        info = BlockingInfo(blocked_by=[ALICE], blocking=[BOB])
        assert info.to_dict() == {
            'blocked_by': [{'did': ALICE.did, 'handle': ALICE.handle, 'display_name': 'Alice', 'avatar': None}],
            'blocking': [{'did': BOB.did, 'handle': BOB.handle, 'display_name': 'Bob', 'avatar': None}],
        }


class TestBloomLookup:
    """Lookups against bloom filters, with live verification"""

    def test_requires_api(self, cache_store):
        with pytest.raises(ValueError):
            BlockingQueryService(cache_store, BloomBlockProfile())

    def test_false_positives_are_excluded(self, cache_store, auth, mock_api):
        cache_store.store_auth(auth)
        cache_store.save_block_cache(BlockCache(OWNER_DID, [ALICE, BOB, CAROL], {
            ALICE.did: saturated_bloom(ALICE),
            BOB.did: saturated_bloom(BOB),
            CAROL.did: saturated_bloom(CAROL),
        }))
        mock_api.get_user_blocks.side_effect = blocks_lookup({
            ALICE.did: ['did:plc:p1'],
            BOB.did: ['did:plc:someone-else'],
            CAROL.did: BlueskyAPIError('unreachable'),
        })
        service = BlockingQueryService(cache_store, BloomBlockProfile(), api=mock_api)

        assert len(service.get_candidate_blockers('did:plc:p1')) == 3

        info = service.lookup_blocking_info('did:plc:p1')
        assert [user.did for user in info.blocked_by] == [ALICE.did]

    def test_real_filters(self, cache_store, auth, mock_api):
        cache_store.store_auth(auth)
        profile = BloomBlockProfile()
        cache_store.save_block_cache(BlockCache(OWNER_DID, [ALICE, BOB], {
            ALICE.did: profile.build_block_set(ALICE, ['did:plc:p1', 'did:plc:p2'], 1.0),
            BOB.did: profile.build_block_set(BOB, ['did:plc:p3'], 1.0),
        }))
        mock_api.get_user_blocks.side_effect = blocks_lookup({ALICE.did: ['did:plc:p1', 'did:plc:p2']})
        service = BlockingQueryService(cache_store, profile, api=mock_api)

        info = service.lookup_blocking_info('did:plc:p2')

        assert ALICE in info.blocked_by
        assert BOB not in info.blocked_by
