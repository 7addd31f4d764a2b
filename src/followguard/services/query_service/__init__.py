"""
Query service subpackage
"""

from .blocking_query_service import BlockingInfo, BlockingQueryService

__all__ = ['BlockingInfo', 'BlockingQueryService']
