"""
Blocking Query Service
Answers which of my follows block a profile, and which of them it blocks
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ...database.models.block_cache import BlockCache
from ...database.models.followed_user import FollowedUser
from ...database.repositories.cache_store import CacheStore
from ..block_profiles import BlockProfile
from ..bsky_service.bsky_api import BlueskyAPI


@dataclass
class BlockingInfo:
    """Lookup result for one profile"""
    blocked_by: List[FollowedUser] = field(default_factory=list)  # follows who block the profile
    blocking: List[FollowedUser] = field(default_factory=list)  # follows the profile blocks

    def to_dict(self) -> Dict:
        return {
            'blocked_by': [user.to_dict() for user in self.blocked_by],
            'blocking': [user.to_dict() for user in self.blocking],
        }


class BlockingQueryService:
    """
    Query engine over the cached block data

    With the bloom profile, cache hits are only candidates and each one is
    confirmed against the live block list before it is reported.
    """

    def __init__(self, cache_store: CacheStore, profile: BlockProfile,
                 api: Optional[BlueskyAPI] = None, max_verify_workers: int = 5):
        self.cache_store = cache_store
        self.profile = profile
        self.api = api
        self.max_verify_workers = max_verify_workers
        self.logger = logging.getLogger(__name__)

        if self.profile.requires_verification and self.api is None:
            raise ValueError(f"{self.profile.name} profile needs an API client for verification")

    def _load_cache(self) -> Optional[BlockCache]:
        """Cached data of the current identity, None when there is none"""
        cache = self.cache_store.get_block_cache()
        if cache is None:
            return None

        auth = self.cache_store.get_stored_auth()
        if auth is not None and cache.owner_did != auth.did:
            self.logger.info("Cache belongs to a different identity, ignoring it")
            return None

        return cache

    def _matching_users(self, cache: BlockCache, profile_did: str) -> List[FollowedUser]:
        """Follows whose stored entry (possibly) contains the profile"""
        matches = []
        for user in cache.followed_users:
            block_set = cache.block_sets.get(user.did)
            if block_set is None or not self.profile.accepts(block_set):
                continue
            if self.profile.matches(block_set, profile_did):
                matches.append(FollowedUser(
                    did=user.did,
                    handle=block_set.handle or user.handle,
                    display_name=block_set.display_name or user.display_name,
                    avatar=block_set.avatar or user.avatar
                ))
        return matches

    def get_candidate_blockers(self, profile_did: str) -> List[FollowedUser]:
        """Follows that might block the profile (may include false positives under bloom)"""
        cache = self._load_cache()
        if cache is None:
            return []
        return self._matching_users(cache, profile_did)

    def _confirm_blocker(self, candidate: FollowedUser, profile_did: str) -> bool:
        blocks = self.api.get_user_blocks(candidate.did)
        return profile_did in set(blocks or [])

    def verify_candidates(self, candidates: List[FollowedUser], profile_did: str) -> List[FollowedUser]:
        """Keep only candidates whose live block list contains the profile"""
        if not candidates:
            return []

        confirmed = set()
        workers = min(self.max_verify_workers, len(candidates))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_user = {
                executor.submit(self._confirm_blocker, candidate, profile_did): candidate
                for candidate in candidates
            }
            for future in as_completed(future_to_user):
                candidate = future_to_user[future]
                try:
                    if future.result():
                        confirmed.add(candidate.did)
                    else:
                        self.logger.debug(f"False positive for {candidate.handle}")
                except Exception as e:
                    self.logger.warning(f"Could not verify {candidate.handle}: {e}")

        # Keep follow-list order
        return [candidate for candidate in candidates if candidate.did in confirmed]

    def lookup_blocking_info(self, profile_did: str, profile_blocks: Optional[List[str]] = None) -> BlockingInfo:
        """
        Look up blocking info for a profile DID

        Args:
            profile_did: DID of the profile being viewed
            profile_blocks: DIDs the viewed profile blocks, fetched by the caller

        Returns:
            BlockingInfo; empty when nothing is cached yet
        """
        cache = self._load_cache()
        if cache is None:
            return BlockingInfo()

        blocked_by = self._matching_users(cache, profile_did)
        if self.profile.requires_verification:
            candidate_count = len(blocked_by)
            blocked_by = self.verify_candidates(blocked_by, profile_did)
            self.logger.info(f"Verified {len(blocked_by)}/{candidate_count} candidate blockers of {profile_did}")

        followed = cache.followed_by_did()
        blocking = []
        seen = set()
        for blocked_did in profile_blocks or []:
            if blocked_did in followed and blocked_did not in seen:
                blocking.append(followed[blocked_did])
                seen.add(blocked_did)

        return BlockingInfo(blocked_by=blocked_by, blocking=blocking)
