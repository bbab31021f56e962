"""Ordered, case-insensitive header collection."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict


class HeaderSet(BaseModel):
    """An immutable, ordered sequence of ``(name, value)`` header pairs.

    Lookup is case-insensitive on the name.  ``set`` keeps one value per
    name: an existing header keeps its position and takes the new value,
    so output order always matches first insertion order.  Headers read
    from the remote service may repeat a name; ``get`` returns the first.
    """

    model_config = ConfigDict(frozen=True)

    pairs: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_api(cls, headers: Iterable[Mapping[str, Any]] | None) -> HeaderSet:
        """Build a set from the Gmail ``[{"name": ..., "value": ...}]`` list."""
        if not headers:
            return cls()
        return cls(
            pairs=tuple(
                (h.get("name") or "", h.get("value") or "") for h in headers if h.get("name")
            )
        )

    @classmethod
    def of(cls, headers: Mapping[str, str]) -> HeaderSet:
        """Build a set from a mapping, in the mapping's order."""
        return cls().set_many(headers)

    def get(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.pairs:
            if key.lower() == wanted:
                return value
        return None

    def get_all(self, name: str) -> list[str]:
        wanted = name.lower()
        return [value for key, value in self.pairs if key.lower() == wanted]

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def set(self, name: str, value: str) -> HeaderSet:
        """Return a copy with *name* set to *value* (last write wins)."""
        wanted = name.lower()
        replaced = False
        pairs: list[tuple[str, str]] = []
        for key, existing in self.pairs:
            if key.lower() == wanted:
                if not replaced:
                    pairs.append((key, value))
                    replaced = True
                continue
            pairs.append((key, existing))
        if not replaced:
            pairs.append((name, value))
        return HeaderSet(pairs=tuple(pairs))

    def set_many(self, headers: Mapping[str, str]) -> HeaderSet:
        result = self
        for name, value in headers.items():
            result = result.set(name, value)
        return result

    def names(self) -> list[str]:
        return [key for key, _ in self.pairs]

    def lines(self) -> list[str]:
        """Render each pair as a ``Name: value`` header line."""
        return [f"{key}: {value}" for key, value in self.pairs]
