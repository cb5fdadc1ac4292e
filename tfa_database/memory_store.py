"""In-memory SecretStore, used by tests and single-process demos."""
import copy
import threading
from typing import Any, Mapping

from tfa_core.store import AccountId


class MemorySecretStore:
    def __init__(self):
        self._data: dict[tuple[str, AccountId, str], Any] = {}
        self._lock = threading.Lock()

    def get(self, namespace: str, key: str, account: AccountId) -> Any | None:
        with self._lock:
            return copy.deepcopy(self._data.get((namespace, account, key)))

    def set(self, namespace: str, values: Mapping[str, Any], account: AccountId) -> None:
        with self._lock:
            for key, value in values.items():
                self._data[(namespace, account, key)] = copy.deepcopy(value)

    def delete(self, namespace: str, key: str, account: AccountId) -> None:
        with self._lock:
            self._data.pop((namespace, account, key), None)

    def keys(self, namespace: str, account: AccountId) -> list[str]:
        """All keys stored for an account (for inspection in tests)."""
        with self._lock:
            return sorted(k for (ns, acc, k) in self._data if ns == namespace and acc == account)
