"""
Bluesky API Service
Follows listing, block record listing and PDS resolution with rate limiting and retry logic
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

import requests

from ...database.models.followed_user import FollowedUser
from ...database.models.auth_token import normalize_pds_url
from ...utils.config import AppConfig


T = TypeVar('T')

BLOCK_COLLECTION = "app.bsky.graph.block"
PAGE_LIMIT = 100


class BlueskyAPIError(Exception):
    """Raised when a request fails after exhausting retries"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def chunk(items: List[T], size: int) -> List[List[T]]:
    """Split a list into consecutive chunks of at most size items"""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


class BlueskyAPI:
    """Bluesky / AT Protocol API client with rate limiting and retry logic"""

    def __init__(self, config: Optional[AppConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or AppConfig()
        self.public_api_url = self.config.public_api_url.rstrip('/')
        self.default_pds_url = normalize_pds_url(self.config.default_pds_url)
        self.plc_directory_url = self.config.plc_directory_url.rstrip('/')

        self.session = session or requests.Session()
        self.max_retries = self.config.api_max_retries
        self.backoff_seconds = self.config.api_backoff_seconds
        self.min_interval = self.config.api_min_interval
        self.timeout = self.config.api_timeout

        self.last_request_time = 0.0
        self._rate_lock = threading.Lock()

        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        """Setup logger"""
        logger = logging.getLogger(f'{__name__}.BlueskyAPI')
        logger.setLevel(getattr(logging, self.config.log_level, logging.INFO))

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    def _rate_limit(self):
        """Ensure minimum time between requests"""
        if self.min_interval <= 0:
            return

        with self._rate_lock:
            time_since_last = time.time() - self.last_request_time
            if time_since_last < self.min_interval:
                time.sleep(self.min_interval - time_since_last)
            self.last_request_time = time.time()

    def _make_request(self, url: str, params: Dict = None) -> requests.Response:
        """
        GET with retry on rate limiting (429) and transport errors

        Returns the final response, whatever its status, unless every
        attempt was rate limited or failed in transport.
        """
        wait_time = self.backoff_seconds
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                self._rate_limit()
                response = self.session.get(url, params=params, timeout=self.timeout)

                if response.status_code != 429:
                    return response

                last_error = BlueskyAPIError(f"Rate limited by {url}", status_code=429)
                self.logger.warning(f"Rate limited (attempt {attempt + 1}/{self.max_retries + 1}): {url}")

            except requests.exceptions.RequestException as e:
                last_error = BlueskyAPIError(f"Request to {url} failed: {e}")
                self.logger.warning(f"Request failed (attempt {attempt + 1}/{self.max_retries + 1}): {e}")

            if attempt < self.max_retries:
                self.logger.info(f"Retrying in {wait_time} seconds...")
                time.sleep(wait_time)
                wait_time *= 2  # Exponential backoff

        self.logger.error(f"Request failed after {self.max_retries + 1} attempts: {url}")
        raise last_error

    def _get_json(self, url: str, params: Dict = None) -> Dict:
        response = self._make_request(url, params=params)
        if not response.ok:
            raise BlueskyAPIError(f"{url} returned {response.status_code}", status_code=response.status_code)
        return response.json()

    def get_profile(self, actor: str) -> Optional[FollowedUser]:
        """Get basic profile of an actor (DID or handle)"""
        try:
            data = self._get_json(
                f"{self.public_api_url}/xrpc/app.bsky.actor.getProfile",
                params={'actor': actor}
            )
        except BlueskyAPIError as e:
            self.logger.debug(f"Profile lookup failed for {actor}: {e}")
            return None
        return FollowedUser.from_dict(data)

    def get_follows(self, actor: str, cursor: Optional[str] = None) -> Tuple[List[FollowedUser], Optional[str]]:
        """Get one page of accounts the actor follows"""
        params = {'actor': actor, 'limit': PAGE_LIMIT}
        if cursor:
            params['cursor'] = cursor

        data = self._get_json(f"{self.public_api_url}/xrpc/app.bsky.graph.getFollows", params=params)
        follows = [FollowedUser.from_dict(item) for item in data.get('follows') or [] if item.get('did')]
        return follows, data.get('cursor') or None

    def get_all_follows(self, actor: str, page_delay: Optional[float] = None,
                        on_page: Optional[Callable[[int], None]] = None) -> List[FollowedUser]:
        """
        Follow every cursor until the follows listing is exhausted

        on_page is called after each page with the number of follows collected so far.
        """
        if page_delay is None:
            page_delay = self.config.follows_page_delay

        all_follows: List[FollowedUser] = []
        cursor = None
        page = 0

        while True:
            follows, cursor = self.get_follows(actor, cursor)
            all_follows.extend(follows)
            page += 1
            self.logger.debug(f"Follows page {page}: {len(follows)} accounts")
            if on_page is not None:
                on_page(len(all_follows))

            if not cursor:
                break
            if page_delay > 0:
                time.sleep(page_delay)

        return all_follows

    def resolve_pds(self, did: str) -> Optional[str]:
        """Resolve the PDS endpoint of a did:plc identity via the PLC directory"""
        if not did.startswith('did:plc:'):
            return None

        try:
            document = self._get_json(f"{self.plc_directory_url}/{did}")
        except (BlueskyAPIError, ValueError) as e:
            self.logger.debug(f"PDS resolution failed for {did}: {e}")
            return None

        for service in document.get('service') or []:
            if service.get('id') == '#atproto_pds' and service.get('serviceEndpoint'):
                return service['serviceEndpoint']
        return None

    def get_user_blocks(self, did: str, pds_url: Optional[str] = None) -> List[str]:
        """
        List the DIDs a user blocks (their public block records)

        A repo the PDS refuses (400/404, e.g. deactivated) ends the listing
        with whatever was collected.
        """
        pds = normalize_pds_url(pds_url or self.resolve_pds(did) or self.default_pds_url)
        url = f"{pds}/xrpc/com.atproto.repo.listRecords"

        blocks: List[str] = []
        cursor = None

        while True:
            params = {'repo': did, 'collection': BLOCK_COLLECTION, 'limit': PAGE_LIMIT}
            if cursor:
                params['cursor'] = cursor

            response = self._make_request(url, params=params)
            if response.status_code in (400, 404):
                self.logger.debug(f"Repo {did} not listable ({response.status_code})")
                return blocks
            if not response.ok:
                raise BlueskyAPIError(
                    f"Listing blocks of {did} returned {response.status_code}",
                    status_code=response.status_code
                )

            data = response.json()
            for record in data.get('records') or []:
                subject = (record.get('value') or {}).get('subject')
                if subject:
                    blocks.append(subject)

            cursor = data.get('cursor')
            if not cursor:
                return blocks
