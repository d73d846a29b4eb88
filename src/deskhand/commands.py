"""Command model - the structured form of a resolved instruction.

A ``Command`` is what the intent resolver produces and what handlers
consume. A ``CommandResult`` is what every handler (and the pipeline as a
whole) returns. Neither is persisted.

Wire format (as produced by the language model):
    {"commandType": "ui", "target": "notepad", "action": "type",
     "parameters": {"text": "hello"}}
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union

logger = logging.getLogger(__name__)

# Values a parameter may hold once normalised from JSON
ParamValue = Union[str, int, float, bool, None, list["ParamValue"], "ParameterBag"]

# Target used when an instruction does not name an application
ACTIVE_APP = "active"


# =============================================================================
# Command Kinds
# =============================================================================


class CommandKind(Enum):
    """Closed set of command kinds understood by the dispatcher.

    UNKNOWN stands for any tag nothing is registered for; the raw tag stays
    on the Command so failures can still name it.
    """

    LAUNCH = "launch"
    CLOSE = "close"
    UI = "ui"
    READ_FILE = "readfile"
    WRITE_FILE = "writefile"
    SERVICE = "servicecontrol"
    SEARCH = "search"
    PROJECT = "project"
    SYSTEM_INFO = "systeminfo"
    COMPOSITE = "composite"
    SMART = "smart"
    CUSTOM = "custom"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, tag: str | None) -> "CommandKind":
        """Map a case-insensitive type tag (or alias) to a kind."""
        if not tag:
            return cls.UNKNOWN
        key = tag.strip().lower()
        if key in _ALIASES:
            return _ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


_ALIASES: dict[str, CommandKind] = {
    "open": CommandKind.LAUNCH,
    "start": CommandKind.LAUNCH,
    "exit": CommandKind.CLOSE,
    "quit": CommandKind.CLOSE,
    "kill": CommandKind.CLOSE,
    "click": CommandKind.UI,
    "type": CommandKind.UI,
    "read": CommandKind.READ_FILE,
    "write": CommandKind.WRITE_FILE,
    "service": CommandKind.SERVICE,
    "research": CommandKind.SEARCH,
    "runscript": CommandKind.PROJECT,
    "run": CommandKind.PROJECT,
    "system": CommandKind.SYSTEM_INFO,
    "sysinfo": CommandKind.SYSTEM_INFO,
}


# =============================================================================
# Parameter Bag
# =============================================================================


def _normalize(value: Any) -> ParamValue:
    """Coerce a JSON-derived value into the closed set of parameter types."""
    if value is None or isinstance(value, (str, bool, int, float, ParameterBag)):
        return value
    if isinstance(value, Mapping):
        return ParameterBag(value)
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return str(value)


class ParameterBag(Mapping[str, ParamValue]):
    """Immutable mapping with case-insensitive string keys.

    Keys keep their original spelling for display, lookups ignore case.
    Nested mappings become nested ParameterBags.
    """

    __slots__ = ("_items",)

    def __init__(self, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        items: dict[str, tuple[str, ParamValue]] = {}
        for source in (data or {}, kwargs):
            for key, value in source.items():
                name = str(key)
                items[name.lower()] = (name, _normalize(value))
        self._items = items

    def __getitem__(self, key: str) -> ParamValue:
        return self._items[key.lower()][1]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterBag):
            return {k: v for k, (_, v) in self._items.items()} == {
                k: v for k, (_, v) in other._items.items()
            }
        if isinstance(other, Mapping):
            return self == ParameterBag(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._items)))

    def __repr__(self) -> str:
        return f"ParameterBag({self.to_dict()!r})"

    def get_str(self, key: str, default: str | None = None) -> str | None:
        """Return a parameter as a string, or default if absent/empty."""
        value = self.get(key)
        if value is None or isinstance(value, (ParameterBag, list)):
            return default
        text = str(value).strip()
        return text if text else default

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Return a parameter as a bool, accepting "true"/"yes"/"1" strings."""
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"1", "true", "yes", "y", "on"}:
                return True
            if lowered in {"0", "false", "no", "n", "off"}:
                return False
        return default

    def get_int(self, key: str, default: int | None = None) -> int | None:
        value = self.get(key)
        if isinstance(value, bool):
            return default
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value)
        if isinstance(value, str):
            try:
                return int(float(value.strip()))
            except ValueError:
                return default
        return default

    def get_float(self, key: str, default: float | None = None) -> float | None:
        value = self.get(key)
        if isinstance(value, bool):
            return default
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return default
        return default

    def get_map(self, key: str) -> "ParameterBag":
        value = self.get(key)
        return value if isinstance(value, ParameterBag) else ParameterBag()

    def merged(self, data: Mapping[str, Any] | None = None, **extra: Any) -> "ParameterBag":
        """Return a new bag with extra entries added or replaced."""
        combined: dict[str, Any] = dict(self.items())
        merged = ParameterBag(combined)
        for source in (data or {}, extra):
            for key, value in source.items():
                merged._items[str(key).lower()] = (str(key), _normalize(value))
        return merged

    def to_dict(self) -> dict[str, Any]:
        """Plain dict form, nested bags included."""
        out: dict[str, Any] = {}
        for name, value in self._items.values():
            out[name] = _plain(value)
        return out


def _plain(value: ParamValue) -> Any:
    if isinstance(value, ParameterBag):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


# =============================================================================
# Command
# =============================================================================


@dataclass(frozen=True)
class Command:
    """A resolved instruction.

    Attributes:
        command_type: Raw type tag as resolved (compared case-insensitively).
        target: Primary subject - app name, path, query, service, or for
            composite commands the whole untouched instruction.
        action: Secondary qualifier for coarse types such as "ui".
        parameters: Case-insensitive parameter bag, never None.
    """

    command_type: str
    target: str = ""
    action: str | None = None
    parameters: ParameterBag = field(default_factory=ParameterBag)

    def __post_init__(self) -> None:
        if not isinstance(self.parameters, ParameterBag):
            object.__setattr__(self, "parameters", ParameterBag(self.parameters or {}))
        if self.target is None:
            object.__setattr__(self, "target", "")

    @property
    def kind(self) -> CommandKind:
        return CommandKind.parse(self.command_type)

    @property
    def type_name(self) -> str:
        """Lower-cased type tag for messages and comparisons."""
        return self.command_type.strip().lower()

    def with_type(self, command_type: str) -> "Command":
        """Copy with a different type, target and parameters carried through."""
        return replace(self, command_type=command_type)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Command":
        """Build a command from the JSON wire format.

        Missing ``parameters`` become an empty bag; key case is ignored.
        """
        fields = ParameterBag(data)
        params = fields.get("parameters")
        action = fields.get_str("action")
        return cls(
            command_type=fields.get_str("commandType", "") or "",
            target=fields.get_str("target", "") or "",
            action=action.lower() if action else None,
            parameters=params if isinstance(params, ParameterBag) else ParameterBag(),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "commandType": self.command_type,
            "target": self.target,
            "parameters": self.parameters.to_dict(),
        }
        if self.action:
            data["action"] = self.action
        return data


# =============================================================================
# Command Result
# =============================================================================

_GENERIC_FAILURE = "The command could not be completed"


@dataclass
class CommandResult:
    """Outcome of executing a command or a whole instruction.

    A failed result always carries a non-empty message; suggestions are
    advisory text only.
    """

    success: bool = True
    message: str = ""
    suggestions: list[str] = field(default_factory=list)
    additional_data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.success and not (self.message or "").strip():
            self.message = _GENERIC_FAILURE

    @classmethod
    def ok(cls, message: str, **data: Any) -> "CommandResult":
        """Create a successful result with optional structured payload."""
        return cls(success=True, message=message, additional_data=dict(data))

    @classmethod
    def fail(
        cls,
        message: str,
        suggestions: list[str] | None = None,
        **data: Any,
    ) -> "CommandResult":
        """Create a failed result."""
        return cls(
            success=False,
            message=message,
            suggestions=list(suggestions or []),
            additional_data=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "suggestions": list(self.suggestions),
            "additionalData": dict(self.additional_data),
        }
