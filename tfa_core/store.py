"""
The narrow storage interface the engine persists through.

Every record lives in namespace "tfa", scoped by account. Values must be
JSON-serialisable (ints, strings, dicts).
"""
from typing import Any, Hashable, Mapping, Protocol, runtime_checkable

NAMESPACE = "tfa"

AccountId = Hashable


@runtime_checkable
class SecretStore(Protocol):
    """Per-account key/value storage provided by the host."""

    def get(self, namespace: str, key: str, account: AccountId) -> Any | None:
        """Return the stored value, or None if absent."""
        ...

    def set(self, namespace: str, values: Mapping[str, Any], account: AccountId) -> None:
        """Write every key in values, overwriting existing entries."""
        ...

    def delete(self, namespace: str, key: str, account: AccountId) -> None:
        """Remove a key. Removing an absent key is not an error."""
        ...
