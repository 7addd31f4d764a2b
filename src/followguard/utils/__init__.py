"""
Utilities package
"""

from .config import AppConfig

__all__ = ['AppConfig']
