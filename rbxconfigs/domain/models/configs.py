"""Domain models for the universe-configs web API.

The API speaks camelCase JSON; ``from_dict``/``to_dict`` translate between
that wire format and these dataclasses.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .common import ConfigVersion, DraftHash, FlagKey


@dataclass
class Flag:
    """A single config entry as the API stores it."""
    key: FlagKey
    entry_value: Any
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Flag":
        return cls(
            key=FlagKey(data["key"]),
            entry_value=data.get("entryValue"),
            description=data.get("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "description": self.description,
            "entryValue": self.entry_value,
        }


@dataclass
class ConfigEntry:
    """A remote config entry together with its access metadata."""
    entry: Flag
    last_modified_time: Optional[str] = None
    last_accessed_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigEntry":
        return cls(
            entry=Flag.from_dict(data["entry"]),
            last_modified_time=data.get("lastModifiedTime"),
            last_accessed_time=data.get("lastAccessedTime"),
        )


@dataclass
class GetConfigResponse:
    """The latest published configuration of a universe."""
    config_version: ConfigVersion
    entries: List[ConfigEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GetConfigResponse":
        return cls(
            config_version=ConfigVersion(str(data.get("configVersion", ""))),
            entries=[ConfigEntry.from_dict(item) for item in data.get("entries") or []],
        )

    def flags(self) -> Dict[FlagKey, Flag]:
        return {item.entry.key: item.entry for item in self.entries}


@dataclass
class ConfigResult:
    """Outcome of a draft mutation (create, update or discard)."""
    is_error: bool
    draft_hash: Optional[DraftHash] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigResult":
        payload = data.get("data") or {}
        error = data.get("error") or {}
        draft_hash = payload.get("draftHash")
        return cls(
            is_error=bool(data.get("isError", False)),
            draft_hash=DraftHash(draft_hash) if draft_hash is not None else None,
            error_code=error.get("errorCode"),
            error_message=error.get("message"),
        )


@dataclass
class LocalConfigEntry:
    """An entry of the local config snapshot file."""
    value: Any
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalConfigEntry":
        if not isinstance(data, dict) or "value" not in data:
            raise ValueError(f"Config entry must be an object with a 'value' field, got: {data!r}")
        return cls(value=data["value"], description=data.get("description"))

    def to_dict(self) -> Dict[str, Any]:
        return {"description": self.description, "value": self.value}

    def to_flag(self, key: FlagKey) -> Flag:
        return Flag(key=key, entry_value=self.value, description=self.description)


@dataclass
class UploadSummary:
    """What an upload did: which keys were written, skipped or failed."""
    uploaded: List[FlagKey] = field(default_factory=list)
    unchanged: List[FlagKey] = field(default_factory=list)
    failed: List[FlagKey] = field(default_factory=list)
    publishes: int = 0


@dataclass
class PurgeSummary:
    """What a purge did."""
    deleted: List[FlagKey] = field(default_factory=list)
    failed: List[FlagKey] = field(default_factory=list)
    publishes: int = 0
