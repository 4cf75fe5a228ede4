"""Small helpers shared across the package: memory sizes, labels, logging comparisons, scope."""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

_log = logging.getLogger(__name__)

ANNOTATION_SCOPE = "redis.kun/scope"
ANNOTATION_CLUSTER_SCOPED = "cluster-scoped"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

# Order matters: single-letter suffixes are checked before their "b" variants,
# and a bare "b" is checked last.
_MEM_SUFFIXES: tuple[tuple[str, int], ...] = (
    ("k", 1000),
    ("kb", 1024),
    ("m", 1000 * 1000),
    ("mb", 1024 * 1024),
    ("g", 1000 * 1000 * 1000),
    ("gb", 1024 * 1024 * 1024),
    ("b", 1),
)

_SCOPE: dict[str, bool] = {"cluster_scoped": True}


def parse_redis_mem_conf(value: str) -> str:
    """Convert a Redis memory size such as ``12mb`` into a plain byte count string.

    Raises ValueError when the numeric part is not a valid 64-bit integer.
    """
    lowered = value.lower()
    digits = lowered
    multiplier = 1
    for suffix, factor in _MEM_SUFFIXES:
        if lowered.endswith(suffix):
            digits = lowered[: -len(suffix)]
            multiplier = factor
            break

    if not _INTEGER_RE.fullmatch(digits):
        raise ValueError(f"invalid memory value {value!r}")
    number = int(digits)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"memory value {value!r} out of range")
    return str(number * multiplier)


def merge_labels(*args: Mapping[str, str] | None) -> dict[str, str]:
    """Merge label mappings into a new dict; later mappings win, None is skipped."""
    merged: dict[str, str] = {}
    for labels in args:
        if labels is not None:
            merged.update(labels)
    return merged


def round_half_away(num: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(num + math.copysign(0.5, num))


def compare_int_value(
    name: str, old: int | None, new: int | None, logger: logging.Logger | None = None
) -> bool:
    """Compare two optional integers.

    Returns True when both are missing or when both are set and differ,
    False when only one is set or both are equal.
    """
    if old is None and new is None:
        return True
    if old is None or new is None:
        return False
    if old != new:
        (logger or _log).debug("compare status.%s: %d - %d", name, old, new)
        return True
    return False


def compare_int32(name: str, old: int, new: int, logger: logging.Logger | None = None) -> bool:
    """Return True (and log) when the two values differ."""
    if old != new:
        (logger or _log).debug("compare status.%s: %d - %d", name, old, new)
        return True
    return False


def compare_string_value(
    name: str, old: str, new: str, logger: logging.Logger | None = None
) -> bool:
    """Return True (and log) when the two strings differ."""
    if old != new:
        (logger or _log).debug("compare %s: %s - %s", name, old, new)
        return True
    return False


def build_command_replace_mapping(file_path: str) -> dict[str, str]:
    """Read ``rename-command`` lines from a config file into a mapping.

    Keys are upper-cased original command names. Bad lines are ignored; an
    unreadable file is logged and yields whatever was read so far.
    """
    mapping: dict[str, str] = {}
    try:
        with open(file_path, encoding="utf-8", errors="replace") as handle:
            for line in handle:
                fields = line.split()
                if len(fields) == 3 and fields[0].lower() == "rename-command":
                    mapping[fields[1].upper()] = fields[2]
    except OSError:
        _log.exception("cannot read %s", file_path)
    return mapping


def slice_join(items: Iterable[Any], sep: str) -> str:
    """Join the string forms of the items with a separator."""
    return sep.join(str(item) for item in items)


def int32_value(value: int | None) -> int:
    """Return the value, or 0 when it is None."""
    return 0 if value is None else value


def is_cluster_scoped() -> bool:
    """Whether the operator manages resources cluster-wide."""
    return _SCOPE["cluster_scoped"]


def set_cluster_scoped(namespace: str) -> None:
    """Switch to namespace scope when a namespace is given."""
    if namespace:
        _SCOPE["cluster_scoped"] = False


def should_manage(annotations: Mapping[str, str] | None) -> bool:
    """Decide from an object's annotations whether it should be managed."""
    annotations = annotations or {}
    if ANNOTATION_SCOPE in annotations:
        if is_cluster_scoped():
            return annotations[ANNOTATION_SCOPE] == ANNOTATION_CLUSTER_SCOPED
    elif not is_cluster_scoped():
        return True
    return False