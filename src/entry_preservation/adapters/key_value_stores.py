"""Key-value namespaces used as local preservation tiers."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from entry_preservation.domain.errors import StorageQuotaExceededError
from entry_preservation.services.preservation import KeyValueStore


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """Session-lifetime namespace with an optional byte quota."""

    quota_bytes: int | None = None
    _items: dict[str, str] = field(default_factory=dict)

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(
                len(k) + len(v) for k, v in self._items.items() if k != key
            )
            if used + len(key) + len(value) > self.quota_bytes:
                raise StorageQuotaExceededError(
                    f"Writing {key!r} exceeds quota of {self.quota_bytes} bytes"
                )
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


@dataclass
class JsonFileKeyValueStore(KeyValueStore):
    """Persistent-until-cleared namespace stored as a JSON object on disk."""

    path: Path

    def get_item(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)

    def _read(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, items: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(items), encoding="utf-8")
        tmp_path.replace(self.path)
