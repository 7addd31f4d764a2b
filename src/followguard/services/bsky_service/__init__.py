"""
Bluesky service subpackage
Contains the AT Protocol API client
"""

from .bsky_api import BlueskyAPI, BlueskyAPIError, chunk

__all__ = ['BlueskyAPI', 'BlueskyAPIError', 'chunk']
