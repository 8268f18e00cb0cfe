"""Cache Entry — versioned TTL record and the global version token.

Invariants:
    - An entry is valid iff (now - timestamp) < ttl AND version == current global version
    - A version mismatch is indistinguishable from expiry to callers
    - The global version changes when the coarse time bucket changes or when busted
    - to_json/from_json round-trip exactly; from_json raises ValueError on any malformed record

Design Decisions:
    - Version = "v<bucket>_<nonce>": the bucket gives time-quantum rotation, the nonce
      gives explicit busting without touching stored entries (lazy eviction)
    - Timestamps and ttl in float epoch seconds: comparable across both tiers
"""

import json
from dataclasses import dataclass, asdict
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    timestamp: float
    ttl: float
    version: str

    def is_expired(self, now: float) -> bool:
        return (now - self.timestamp) >= self.ttl

    def is_valid(self, now: float, current_version: str) -> bool:
        return not self.is_expired(now) and self.version == current_version

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        try:
            data = json.loads(raw)
            return cls(
                key=str(data["key"]),
                payload=data["payload"],
                timestamp=float(data["timestamp"]),
                ttl=float(data["ttl"]),
                version=str(data["version"]),
            )
        except (TypeError, KeyError, json.JSONDecodeError) as e:
            raise ValueError(f"malformed cache entry: {e}") from e


def version_bucket(now: float, quantum_seconds: float) -> int:
    """Coarse time bucket; all entries written in one bucket share a version."""
    return int(now // quantum_seconds)


def make_version(bucket: int, nonce: str) -> str:
    return f"v{bucket}_{nonce}"
