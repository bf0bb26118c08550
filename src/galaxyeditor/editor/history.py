from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from galaxyeditor.editor.model import Region, System
from galaxyeditor.editor.state import EditorState

logger = logging.getLogger(__name__)

MAX_HISTORY_SIZE = 50
INITIAL_HISTORY_DESCRIPTION = "Initial Empty State"


@dataclass(frozen=True)
class HistorySnapshot:
    """Detached copy of the model and selection at one point in history.

    The payload rows are produced by ``to_dict`` and never handed back to the
    live model; restoring always rebuilds fresh objects from them.
    """

    systems: tuple[dict[str, Any], ...]
    regions: tuple[dict[str, Any], ...]
    selected_keys: tuple[str, ...]
    description: str
    timestamp: float
    group_key: str

    @classmethod
    def capture(cls, state: EditorState, description: str, *, group_key: str | None, timestamp: float) -> "HistorySnapshot":
        return cls(
            systems=tuple(system.to_dict() for system in state.model.systems),
            regions=tuple(region.to_dict() for region in state.model.regions),
            selected_keys=tuple(state.selected_keys),
            description=description,
            timestamp=timestamp,
            group_key=group_key if group_key is not None else description,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "timestamp": self.timestamp,
            "group_key": self.group_key,
            "selected_keys": list(self.selected_keys),
            "systems": copy.deepcopy(list(self.systems)),
            "regionDefinitions": copy.deepcopy(list(self.regions)),
        }


class HistoryManager:
    """Bounded snapshot stack with a movable cursor.

    ``states[current_index]`` always mirrors the live model after any commit,
    undo, redo or jump. Entries above the cursor are redo states and are
    discarded by the next commit.
    """

    def __init__(
        self,
        state: EditorState,
        *,
        max_size: int = MAX_HISTORY_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size < 1:
            raise ValueError(f"history max_size must be >= 1: {max_size}")
        self.state = state
        self.max_size = max_size
        self._clock = clock
        self.states: list[HistorySnapshot] = []
        self.current_index = -1

    def __len__(self) -> int:
        return len(self.states)

    @property
    def current(self) -> HistorySnapshot | None:
        if 0 <= self.current_index < len(self.states):
            return self.states[self.current_index]
        return None

    def commit(
        self,
        description: str,
        *,
        group_with_previous: bool = False,
        group_key: str | None = None,
    ) -> HistorySnapshot:
        """Snapshot the live state.

        With ``group_with_previous`` the entry under the cursor is replaced
        instead of appended when its group key matches; the group key defaults
        to the description.
        """
        snapshot = HistorySnapshot.capture(
            self.state,
            description,
            group_key=group_key,
            timestamp=self._clock(),
        )
        del self.states[self.current_index + 1 :]
        top = self.current
        if group_with_previous and top is not None and top.group_key == snapshot.group_key:
            self.states[self.current_index] = snapshot
            logger.debug("history grouped index=%d description=%s", self.current_index, description)
            return snapshot

        self.states.append(snapshot)
        self.current_index = len(self.states) - 1
        while len(self.states) > self.max_size:
            self.states.pop(0)
            self.current_index -= 1
        logger.debug("history commit index=%d size=%d description=%s", self.current_index, len(self.states), description)
        return snapshot

    def can_undo(self) -> bool:
        return self.current_index > 0

    def can_redo(self) -> bool:
        return self.current_index < len(self.states) - 1

    def undo(self) -> bool:
        if not self.can_undo():
            return False
        self.current_index -= 1
        self._restore(self.states[self.current_index])
        return True

    def redo(self) -> bool:
        if not self.can_redo():
            return False
        self.current_index += 1
        self._restore(self.states[self.current_index])
        return True

    def jump_to(self, index: int) -> bool:
        if not 0 <= index < len(self.states):
            return False
        self.current_index = index
        self._restore(self.states[index])
        return True

    def clear(self, description: str = INITIAL_HISTORY_DESCRIPTION) -> HistorySnapshot:
        self.states = []
        self.current_index = -1
        return self.commit(description)

    def descriptions(self) -> list[str]:
        return [snapshot.description for snapshot in self.states]

    def _restore(self, snapshot: HistorySnapshot) -> None:
        model = self.state.model
        model.replace_contents(
            [System.from_dict(row) for row in snapshot.systems],
            [Region.from_dict(row) for row in snapshot.regions],
        )
        self.state.reset_transient()
        self.state.set_selection(list(snapshot.selected_keys))
        logger.debug("history restore index=%d description=%s", self.current_index, snapshot.description)
