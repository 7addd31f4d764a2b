"""
Storage schemas module
"""

from .storage import StorageSchema

__all__ = ['StorageSchema']
