"""
followguard - local index of blocks between your follows and any Bluesky profile
"""

__version__ = "0.3.0"
