from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Union

from adocli.ado_client.errors import UsageError

OptionValue = Union[str, bool]


@dataclass(frozen=True)
class ParsedOptions:
    options: Dict[str, OptionValue] = field(default_factory=dict)
    positionals: List[str] = field(default_factory=list)


def parse_option_args(args: Sequence[str]) -> ParsedOptions:
    """
    Split raw CLI arguments into ``--key`` options and positionals.

    ``--key=value`` and ``--key value`` both set a string value; a bare
    ``--flag`` followed by another option (or nothing) is ``True``.
    """
    options: Dict[str, OptionValue] = {}
    positionals: List[str] = []

    i = 0
    while i < len(args):
        arg = args[i]
        i += 1

        if not arg.startswith("--"):
            positionals.append(arg)
            continue

        key, sep, value = arg[2:].partition("=")
        if sep:
            options[key] = value
            continue

        if i < len(args) and not args[i].startswith("--"):
            options[key] = args[i]
            i += 1
        else:
            options[key] = True

    return ParsedOptions(options=options, positionals=positionals)


def ensure_allowed_options(
    options: Dict[str, OptionValue],
    allowed: Iterable[str],
    command: str,
    usage: Optional[str] = None,
) -> None:
    allowed_set = set(allowed)
    for key in options:
        if key not in allowed_set:
            raise UsageError(f"Unknown option for {command}: --{key}", usage=usage)


def option_string(options: Dict[str, OptionValue], key: str) -> Optional[str]:
    """Stripped string value of ``--key``, or None when absent, empty or a bare flag."""
    value = options.get(key)
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def is_truthy_flag(value: Optional[OptionValue]) -> bool:
    return value is True or value in ("true", "1")


def to_bounded_top(value: Optional[OptionValue], default: int = 10, maximum: int = 50) -> int:
    if value is None:
        return default
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(numeric) or numeric <= 0:
        return default
    top = int(numeric)
    if top < 1:
        return default
    return min(top, maximum)


def parse_positive_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        numeric = float(raw.strip())
    except ValueError:
        return None
    if not math.isfinite(numeric) or numeric <= 0 or not numeric.is_integer():
        return None
    return int(numeric)


def require_id(raw: Optional[str], usage: str) -> int:
    value = parse_positive_int(raw)
    if value is None:
        raise UsageError(f"Invalid or missing id: {raw!r}" if raw is not None else "Missing id.", usage=usage)
    return value
