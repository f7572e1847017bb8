"""Machine-readable export of a finished probe run."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import cbor2


@dataclass(frozen=True, slots=True)
class ProbeReport:
    dependency: str
    available: bool
    setup: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    homebrew: bool = False
    pkg_config: bool = False
    error: Mapping[str, object] | None = None
    schema_version: int = 1

    def to_json(self, path: str | Path | None = None) -> str:
        payload = self._payload()
        encoded = json.dumps(payload, indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        payload = self._payload()
        encoded = cbor2.dumps(payload, canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def write(self, path: str | Path) -> Path:
        """Write CBOR for a ``.cbor`` suffix and JSON otherwise."""
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if output_path.suffix == ".cbor":
            self.to_cbor(output_path)
        else:
            self.to_json(output_path)
        return output_path

    def _payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "schema_version": self.schema_version,
            "dependency": self.dependency,
            "available": self.available,
            "homebrew": self.homebrew,
            "pkg_config": self.pkg_config,
            "setup": {key: list(tokens) for key, tokens in self.setup.items()},
        }
        if self.error is not None:
            payload["error"] = dict(self.error)
        return payload
