"""
Key-value storage table schema definition
"""

import logging
from typing import List
from ..connection import StorageManager


class StorageSchema:
    """Key-value storage table schema definition"""

    def __init__(self, storage_manager: StorageManager):
        self.storage_manager = storage_manager
        self.logger = logging.getLogger(f'{__name__}.StorageSchema')

    def get_table_sql(self) -> str:
        """Get SQL for creating the key-value table"""
        return """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            size_bytes INTEGER NOT NULL DEFAULT 0,
            updated_at REAL NOT NULL
        );
        """

    def get_indexes_sql(self) -> List[str]:
        """Get SQL statements for creating indexes on the key-value table"""
        return [
            "CREATE INDEX IF NOT EXISTS idx_kv_store_updated_at ON kv_store(updated_at);",
        ]

    def create_table(self) -> bool:
        """Create key-value table with indexes"""
        try:
            if not self.storage_manager.execute_ddl(self.get_table_sql()):
                raise Exception("Failed to create kv_store table")

            for index_sql in self.get_indexes_sql():
                if not self.storage_manager.execute_ddl(index_sql):
                    self.logger.warning(f"Failed to create index: {index_sql[:50]}...")

            self.logger.debug("kv_store table ready")
            return True

        except Exception as e:
            self.logger.error(f"Failed to create kv_store table: {e}")
            return False
