"""Redis Cluster hash slots: parsing, ranges and list operations."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

SLOT_SEPARATOR = "-"
IMPORTING_SEPARATOR = "-<-"
MIGRATING_SEPARATOR = "->-"

_UINT64_MAX = 2**64 - 1
_DIGITS_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class SlotRange:
    """An inclusive range of slots."""

    min: int
    max: int

    def __str__(self) -> str:
        return f"{self.min}{SLOT_SEPARATOR}{self.max}"

    def total(self) -> int:
        """Number of slots in the range."""
        return self.max - self.min + 1


@dataclass(frozen=True)
class ImportingSlot:
    """A slot that this node is receiving from another node."""

    slot: int
    from_node_id: str

    def __str__(self) -> str:
        return f"{self.slot}{IMPORTING_SEPARATOR}{self.from_node_id}"


@dataclass(frozen=True)
class MigratingSlot:
    """A slot that this node is handing over to another node."""

    slot: int
    to_node_id: str

    def __str__(self) -> str:
        return f"{self.slot}{MIGRATING_SEPARATOR}{self.to_node_id}"


def decode_slot(text: str) -> int:
    """Parse an unsigned decimal slot number; raise ValueError otherwise."""
    if not _DIGITS_RE.fullmatch(text):
        raise ValueError(f"invalid slot {text!r}")
    slot = int(text)
    if slot > _UINT64_MAX:
        raise ValueError(f"slot {text!r} out of range")
    return slot


def decode_slot_range(
    text: str,
) -> tuple[list[int], ImportingSlot | None, MigratingSlot | None]:
    """Decode one slot entry of CLUSTER NODES output.

    Accepted forms: ``42``, ``42-52``, ``[42->-<node id>]`` (outgoing) and
    ``[42-<-<node id>]`` (incoming). Returns the plain slots together with the
    incoming or outgoing slot transfer, if any. Raises ValueError on bad input.
    """
    parts = text.split(SLOT_SEPARATOR)
    if len(parts) == 3:
        separator = SLOT_SEPARATOR + parts[1] + SLOT_SEPARATOR
        slot = decode_slot(parts[0].removeprefix("["))
        node_id = parts[2].removesuffix("]")
        if separator == IMPORTING_SEPARATOR:
            return [], ImportingSlot(slot, node_id), None
        if separator == MIGRATING_SEPARATOR:
            return [], None, MigratingSlot(slot, node_id)
        raise ValueError(f"impossible to decode slot {text}")

    low = decode_slot(parts[0])
    high = decode_slot(parts[1]) if len(parts) > 1 else low
    return build_slot_slice(low, high), None, None


def slot_ranges_from_slots(slots: Iterable[int]) -> list[SlotRange]:
    """Group slots into contiguous ranges, in increasing order."""
    ranges: list[SlotRange] = []
    ordered = sorted(slots)
    if not ordered:
        return ranges
    low = high = ordered[0]
    for slot in ordered[1:]:
        if slot > high + 1:
            ranges.append(SlotRange(low, high))
            low = slot
        high = slot
    ranges.append(SlotRange(low, high))
    return ranges


def format_slots(slots: Iterable[int]) -> str:
    """Render slots as their ranges, e.g. ``[0-2 5-5]``."""
    return "[" + " ".join(str(r) for r in slot_ranges_from_slots(slots)) + "]"


def remove_slots(slots: Sequence[int], removed_slots: Iterable[int]) -> list[int]:
    """Return the slots without any of the removed ones."""
    removed = set(removed_slots)
    return [slot for slot in slots if slot not in removed]


def remove_slot(slots: Sequence[int], removed_slot: int) -> list[int]:
    """Return the slots without the first occurrence of one slot."""
    result = list(slots)
    if removed_slot in result:
        result.remove(removed_slot)
    return result


def add_slots(slots: Sequence[int], added_slots: Iterable[int]) -> list[int]:
    """Return the slots with new ones appended, skipping duplicates."""
    result = list(slots)
    for slot in added_slots:
        if slot not in result:
            result.append(slot)
    return result


def contains(slots: Iterable[int], slot: int) -> bool:
    """True if the slot is in the collection."""
    return slot in slots


def build_slot_slice(min_slot: int, max_slot: int) -> list[int]:
    """All slots from min_slot to max_slot inclusive."""
    return list(range(min_slot, max_slot + 1))