"""Key-value persistence interface."""

from typing import Any, Protocol


class KeyValueStore(Protocol):
    """Durable mapping read and rewritten as a whole.

    Implementations may raise OSError or ValueError; callers decide how
    fatal that is.
    """

    def load(self) -> dict[str, Any]:
        """Return the full mapping (empty if nothing stored yet)."""
        ...

    def save(self, mapping: dict[str, Any]) -> None:
        """Replace the stored mapping."""
        ...

    def delete(self, key: str) -> None:
        """Remove one key if present."""
        ...
