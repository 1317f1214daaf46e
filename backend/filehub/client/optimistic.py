"""Optimistic file view — pending mutations layered over the last server listing."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

FileItem = dict[str, Any]


class MutationType(str, Enum):
    DELETE = "delete"
    ADD = "add"
    RENAME = "rename"


class ViewState(str, Enum):
    IDLE = "idle"
    OPTIMISTIC_APPLIED = "optimistic_applied"
    RELOADING = "reloading"


VALID_TRANSITIONS: dict[ViewState, set[ViewState]] = {
    ViewState.IDLE: {ViewState.OPTIMISTIC_APPLIED, ViewState.RELOADING},
    ViewState.OPTIMISTIC_APPLIED: {ViewState.RELOADING, ViewState.IDLE},
    ViewState.RELOADING: {ViewState.IDLE, ViewState.OPTIMISTIC_APPLIED},
}


@dataclass
class PendingMutation:
    id: int
    type: MutationType
    path: str
    payload: dict = field(default_factory=dict)
    inverse: PendingMutation | None = None
    settled: bool = False


def entry_sort_key(item: FileItem) -> tuple[bool, str]:
    return (not item.get("isDirectory", False), str(item.get("name", "")).casefold())


def apply_mutation(entries: list[FileItem], mutation: PendingMutation) -> list[FileItem]:
    """Pure transform of a listing by one mutation."""
    if mutation.type == MutationType.DELETE:
        return [e for e in entries if e.get("path") != mutation.path]
    if mutation.type == MutationType.ADD:
        return sorted([*entries, mutation.payload["file"]], key=entry_sort_key)
    if mutation.type == MutationType.RENAME:
        new_name = mutation.payload["newName"]
        new_path = mutation.payload["newPath"]
        return [
            {**e, "name": new_name, "path": new_path} if e.get("path") == mutation.path else e
            for e in entries
        ]
    return entries


def invert(mutation: PendingMutation, before: list[FileItem]) -> PendingMutation | None:
    """Mutation that undoes ``mutation`` on the listing it was applied to."""
    if mutation.type == MutationType.DELETE:
        removed = next((e for e in before if e.get("path") == mutation.path), None)
        if removed is None:
            return None
        return PendingMutation(-mutation.id, MutationType.ADD, mutation.path, {"file": removed})
    if mutation.type == MutationType.ADD:
        return PendingMutation(-mutation.id, MutationType.DELETE, mutation.payload["file"]["path"])
    if mutation.type == MutationType.RENAME:
        original = next((e for e in before if e.get("path") == mutation.path), None)
        if original is None:
            return None
        return PendingMutation(
            -mutation.id,
            MutationType.RENAME,
            mutation.payload["newPath"],
            {"newName": original.get("name"), "newPath": mutation.path},
        )
    return None


class OptimisticFileView:
    """Authoritative listing plus an ordered list of pending mutations.

    The visible listing is always ``view()``: the authoritative entries with
    every pending mutation applied in order. A failed mutation is dropped at
    once, which is the same as applying its inverse. Settled mutations stay
    applied until the next authoritative reload replaces the listing.
    """

    def __init__(self, entries: list[FileItem] | None = None):
        self.authoritative: list[FileItem] = list(entries or [])
        self.pending: list[PendingMutation] = []
        self._state = ViewState.IDLE
        self._ids = itertools.count(1)

    @property
    def state(self) -> ViewState:
        return self._state

    def transition(self, new_state: ViewState) -> bool:
        """Returns True if valid, False if rejected."""
        if new_state == self._state:
            return True

        valid = VALID_TRANSITIONS.get(self._state, set())
        if new_state not in valid:
            logger.warning(
                "Invalid view state transition: %s -> %s (valid: %s)",
                self._state, new_state, valid,
            )
            return False

        logger.debug("View state: %s -> %s", self._state, new_state)
        self._state = new_state
        return True

    def view(self) -> list[FileItem]:
        entries = list(self.authoritative)
        for mutation in self.pending:
            entries = apply_mutation(entries, mutation)
        return entries

    def apply(self, kind: MutationType, path: str, payload: dict | None = None) -> PendingMutation:
        before = self.view()
        mutation = PendingMutation(next(self._ids), MutationType(kind), path, payload or {})
        mutation.inverse = invert(mutation, before)
        self.pending.append(mutation)
        self.transition(ViewState.OPTIMISTIC_APPLIED)
        return mutation

    def _find(self, mutation_id: int) -> PendingMutation | None:
        return next((m for m in self.pending if m.id == mutation_id), None)

    def succeed(self, mutation_id: int) -> None:
        """Server accepted; keep it applied until the reload lands."""
        mutation = self._find(mutation_id)
        if mutation is not None:
            mutation.settled = True

    def fail(self, mutation_id: int) -> PendingMutation | None:
        """Server rejected; drop the mutation and return its inverse."""
        mutation = self._find(mutation_id)
        if mutation is None:
            return None
        self.pending.remove(mutation)
        logger.info(
            "Rolled back %s %s (inverse: %s)",
            mutation.type.value, mutation.path,
            mutation.inverse.type.value if mutation.inverse else "none",
        )
        if not self.pending:
            self.transition(ViewState.IDLE)
        return mutation.inverse

    def begin_reload(self) -> None:
        self.transition(ViewState.RELOADING)

    def replace(self, entries: list[FileItem]) -> None:
        """Authoritative reload; settled mutations are now part of ``entries``."""
        self.authoritative = list(entries)
        self.pending = [m for m in self.pending if not m.settled]
        self.transition(ViewState.OPTIMISTIC_APPLIED if self.pending else ViewState.IDLE)

    def reload_failed(self) -> None:
        self.transition(ViewState.OPTIMISTIC_APPLIED if self.pending else ViewState.IDLE)
