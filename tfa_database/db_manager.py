"""
sqlite3-backed SecretStore.

One connection per call, so the path must be a file (":memory:" would lose
data between calls).

Values are stored as JSON text in users_data; accounts are stored as text,
so integer and string ids with the same digits share a row.
"""
import json
import logging
import sqlite3
from typing import Any, Mapping

from tfa_core.exceptions import StoreError
from tfa_core.store import AccountId
from tfa_database.setup_database import setup_database

logger = logging.getLogger(__name__)


class SqliteSecretStore:
    def __init__(self, path: str):
        self.path = path
        setup_database(path)

    def get_db_connection(self) -> sqlite3.Connection:
        """Open a connection; rows come back as sqlite3.Row."""
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def get(self, namespace: str, key: str, account: AccountId) -> Any | None:
        try:
            conn = self.get_db_connection()
            try:
                row = conn.execute(
                    "SELECT value FROM users_data WHERE namespace = ? AND account = ? AND name = ?",
                    (namespace, str(account), key),
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Failed reading %s/%s for account %s: %s", namespace, key, account, e)
            raise StoreError(f"Failed reading '{key}'") from e

        if row is None:
            return None
        return json.loads(row["value"])

    def set(self, namespace: str, values: Mapping[str, Any], account: AccountId) -> None:
        rows = [(namespace, str(account), key, json.dumps(value)) for key, value in values.items()]
        try:
            conn = self.get_db_connection()
            try:
                with conn:
                    conn.executemany(
                        """INSERT INTO users_data (namespace, account, name, value)
                           VALUES (?, ?, ?, ?)
                           ON CONFLICT (namespace, account, name)
                           DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP""",
                        rows,
                    )
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Failed writing %s for account %s: %s", namespace, account, e)
            raise StoreError(f"Failed writing {', '.join(values)}") from e

    def delete(self, namespace: str, key: str, account: AccountId) -> None:
        try:
            conn = self.get_db_connection()
            try:
                with conn:
                    conn.execute(
                        "DELETE FROM users_data WHERE namespace = ? AND account = ? AND name = ?",
                        (namespace, str(account), key),
                    )
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Failed deleting %s/%s for account %s: %s", namespace, key, account, e)
            raise StoreError(f"Failed deleting '{key}'") from e
