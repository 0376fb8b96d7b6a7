"""Named trainer parameters that can be set as ``NAME=VALUE`` strings."""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .errors import InvalidParameterError


def param(name: str, default: Any, help: str, type: Optional[Callable[[str], Any]] = None) -> Any:
    """Declare a dataclass field exposed under the dotted parameter ``name``."""

    convert = type if type is not None else default.__class__
    return dataclasses.field(default=default, metadata={"name": name, "help": help, "type": convert})


def _parameter_fields(config) -> List[dataclasses.Field]:
    return [f for f in dataclasses.fields(config) if "name" in f.metadata]


def optional_int(value: str) -> Optional[int]:
    if value.strip().lower() in ("", "none", "inf"):
        return None
    return int(value)


def boolean(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in ("1", "true", "yes", "on"):
        return True
    if normalized in ("0", "false", "no", "off"):
        return False
    raise ValueError(value)


def set_param(config, name: str, value: str) -> None:
    for f in _parameter_fields(config):
        if f.metadata["name"] == name:
            try:
                setattr(config, f.name, f.metadata["type"](value))
            except ValueError as exc:
                raise InvalidParameterError(f"invalid value for {name}: {value!r}") from exc
            return
    raise InvalidParameterError(f"unknown parameter: {name}")


def set_params(config, assignments: Iterable[str]):
    """Apply ``NAME=VALUE`` strings to ``config`` and return it."""

    for assignment in assignments:
        name, sep, value = assignment.partition("=")
        if not sep:
            raise InvalidParameterError(f"parameter must be given as NAME=VALUE: {assignment!r}")
        set_param(config, name.strip(), value.strip())
    return config


def describe_params(config) -> List[Tuple[str, Any, str]]:
    return [(f.metadata["name"], getattr(config, f.name), f.metadata["help"]) for f in _parameter_fields(config)]


def format_params(config) -> str:
    lines = []
    for name, value, help_text in describe_params(config):
        lines.append(f"{name}: {value!r}")
        lines.extend("    " + text for text in help_text.splitlines())
    return "\n".join(lines)
