"""
DATABASE PACKAGE

Reference SecretStore adapters: MemorySecretStore for tests and demos,
SqliteSecretStore for a single-node deployment.
"""
from .db_manager import SqliteSecretStore
from .memory_store import MemorySecretStore
from .setup_database import setup_database

__all__ = ['MemorySecretStore', 'SqliteSecretStore', 'setup_database']
