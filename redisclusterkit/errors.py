"""Errors raised while inspecting a Redis cluster."""

from __future__ import annotations

from collections.abc import Mapping


class NodeNotFoundError(LookupError):
    """A node is not present in the cluster."""

    def __init__(self, message: str = "node not founded") -> None:
        super().__init__(message)


class ClusterInfosError(Exception):
    """Cluster information is partial or inconsistent between nodes."""

    def __init__(
        self,
        errs: Mapping[str, BaseException] | None = None,
        partial: bool = False,
        inconsistent: bool = False,
    ) -> None:
        super().__init__()
        self.errs: dict[str, BaseException] = dict(errs or {})
        self.partial = partial
        self.inconsistent = inconsistent

    def __str__(self) -> str:
        if self.partial:
            details = "".join(f"{addr}: '{err}'" for addr, err in self.errs.items())
            return "Cluster infos partial: " + details
        if self.inconsistent:
            return "Cluster view is inconsistent"
        return ""


def is_node_not_found_error(err: BaseException | None) -> bool:
    """True if the error reports a missing node."""
    return isinstance(err, NodeNotFoundError)


def is_partial_error(err: BaseException | None) -> bool:
    """True if the error is due to nodes that did not answer."""
    return isinstance(err, ClusterInfosError) and err.partial


def is_inconsistent_error(err: BaseException | None) -> bool:
    """True if the error is due to nodes disagreeing with each other."""
    return isinstance(err, ClusterInfosError) and err.inconsistent