"""
Local storage connection management module
Provides a durable key-value store on SQLite with a byte quota
"""

import os
import json
import time
import logging
import threading
from contextlib import contextmanager
from typing import Optional, Any
from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


class StorageQuotaError(Exception):
    """Raised when a write would exceed the storage quota"""


class StorageConfig:
    """Storage configuration class"""

    def __init__(self, path: Optional[str] = None, quota_bytes: Optional[int] = None):
        load_dotenv()
        self.path = path or os.getenv('FOLLOWGUARD_STORAGE_PATH', 'data/followguard.db')
        self.quota_bytes = quota_bytes or int(os.getenv('STORAGE_QUOTA_BYTES', str(10 * 1024 * 1024)))

    @property
    def in_memory(self) -> bool:
        return self.path == ':memory:'

    def get_connection_string(self) -> str:
        """Get SQLAlchemy connection string"""
        if self.in_memory:
            return "sqlite://"
        return f"sqlite:///{self.path}"


class StorageManager:
    """Storage manager class"""

    def __init__(self, config: Optional[StorageConfig] = None):
        self.config = config or StorageConfig()
        self.logger = self._setup_logger()
        self._engine: Optional[Engine] = None
        self._lock = threading.RLock()

    def _setup_logger(self) -> logging.Logger:
        """Setup logger for storage operations"""
        logger = logging.getLogger(f'{__name__}.StorageManager')
        logger.setLevel(logging.INFO)

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    def connect(self) -> bool:
        """Create the storage engine and make sure the schema exists"""
        try:
            if self._engine is not None:
                return True

            if self.config.in_memory:
                # A single shared connection keeps the in-memory database alive
                self._engine = create_engine(
                    self.config.get_connection_string(),
                    connect_args={'check_same_thread': False},
                    poolclass=StaticPool
                )
            else:
                directory = os.path.dirname(os.path.abspath(self.config.path))
                os.makedirs(directory, exist_ok=True)
                self._engine = create_engine(
                    self.config.get_connection_string(),
                    connect_args={'check_same_thread': False}
                )

            from .schemas.storage import StorageSchema
            if not StorageSchema(self).create_table():
                raise Exception("Failed to create storage schema")

            self.logger.info(f"Storage connection established: {self.config.path}")
            return True

        except Exception as e:
            self.logger.error(f"Failed to connect to storage: {e}")
            self._engine = None
            return False

    def disconnect(self):
        """Dispose storage engine"""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self.logger.info("Storage connection closed")

    def get_engine(self) -> Engine:
        """Get storage engine"""
        if self._engine is None:
            if not self.connect():
                raise Exception("Unable to establish storage connection")
        return self._engine

    @contextmanager
    def get_connection(self):
        """Context manager for a transactional connection"""
        with self._lock:
            try:
                with self.get_engine().begin() as connection:
                    yield connection
            except StorageQuotaError:
                raise
            except Exception as e:
                self.logger.error(f"Storage operation failed: {e}")
                raise

    def execute_ddl(self, statement: str) -> bool:
        """Execute a schema statement"""
        try:
            with self._lock:
                with self._engine.begin() as connection:
                    connection.execute(text(statement))
            return True
        except Exception as e:
            self.logger.error(f"DDL execution failed: {e}")
            return False

    def test_connection(self) -> bool:
        """Test storage connection"""
        try:
            with self.get_connection() as connection:
                result = connection.execute(text("SELECT 1")).scalar()
                return result == 1
        except Exception as e:
            self.logger.error(f"Connection test failed: {e}")
            return False

    def get_item(self, key: str) -> Optional[Any]:
        """Read and decode a JSON value, None when missing or unreadable"""
        try:
            with self.get_connection() as connection:
                row = connection.execute(
                    text("SELECT value FROM kv_store WHERE key = :key"),
                    {'key': key}
                ).fetchone()
        except Exception as e:
            self.logger.error(f"Failed to read {key}: {e}")
            return None

        if row is None:
            return None

        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            self.logger.warning(f"Discarding undecodable value for {key}: {e}")
            return None

    def set_item(self, key: str, value: Any) -> int:
        """
        Encode and store a JSON value

        Returns:
            Number of bytes written

        Raises:
            StorageQuotaError: the write would push total usage over the quota
        """
        payload = json.dumps(value, separators=(',', ':'), ensure_ascii=False)
        size_bytes = len(key.encode('utf-8')) + len(payload.encode('utf-8'))

        with self.get_connection() as connection:
            others = connection.execute(
                text("SELECT COALESCE(SUM(size_bytes), 0) FROM kv_store WHERE key != :key"),
                {'key': key}
            ).scalar()

            projected = int(others) + size_bytes
            if projected > self.config.quota_bytes:
                raise StorageQuotaError(
                    f"QUOTA_BYTES quota exceeded: {projected} > {self.config.quota_bytes} bytes"
                )

            connection.execute(
                text("""
                    INSERT INTO kv_store (key, value, size_bytes, updated_at)
                    VALUES (:key, :value, :size_bytes, :updated_at)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        size_bytes = excluded.size_bytes,
                        updated_at = excluded.updated_at
                """),
                {'key': key, 'value': payload, 'size_bytes': size_bytes, 'updated_at': time.time()}
            )

        return size_bytes

    def remove_item(self, key: str) -> bool:
        """Delete a single key"""
        try:
            with self.get_connection() as connection:
                connection.execute(text("DELETE FROM kv_store WHERE key = :key"), {'key': key})
            return True
        except Exception as e:
            self.logger.error(f"Failed to remove {key}: {e}")
            return False

    def clear(self) -> bool:
        """Delete every stored key"""
        try:
            with self.get_connection() as connection:
                connection.execute(text("DELETE FROM kv_store"))
            return True
        except Exception as e:
            self.logger.error(f"Failed to clear storage: {e}")
            return False

    def bytes_in_use(self, key: Optional[str] = None) -> int:
        """Get stored byte count, for one key or the whole store"""
        try:
            with self.get_connection() as connection:
                if key is None:
                    result = connection.execute(
                        text("SELECT COALESCE(SUM(size_bytes), 0) FROM kv_store")
                    ).scalar()
                else:
                    result = connection.execute(
                        text("SELECT COALESCE(SUM(size_bytes), 0) FROM kv_store WHERE key = :key"),
                        {'key': key}
                    ).scalar()
                return int(result)
        except Exception as e:
            self.logger.error(f"Failed to compute storage usage: {e}")
            return 0

    def __enter__(self):
        """Support for with statement"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Support for with statement"""
        self.disconnect()


# Global storage manager instance
_storage_manager = None


def get_storage_manager() -> StorageManager:
    """Get global storage manager instance"""
    global _storage_manager
    if _storage_manager is None:
        _storage_manager = StorageManager()
    return _storage_manager


def reset_storage_manager():
    """Reset global storage manager instance"""
    global _storage_manager
    if _storage_manager:
        _storage_manager.disconnect()
    _storage_manager = None
