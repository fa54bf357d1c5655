"""
Tap Application and Undo Records

The solver only decides what to tap. Callers that own the board use these
helpers to apply the taps and to keep enough state to revert them exactly.
"""

from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Union

from .autotap import AutoTapResult
from .types import BoardObject, ManaPool


MAX_UNDO_HISTORY = 20

TAPPED_ROTATION = 90


@dataclass(frozen=True)
class ObjectTapState:
    id: str
    rotation: int
    tapped_quantity: int


@dataclass(frozen=True)
class TapCardUndo:
    object_id: str
    player_id: str
    previous_rotation: int
    previous_tapped_quantity: int
    previous_floating: ManaPool
    type: str = 'TAP_CARD'


@dataclass(frozen=True)
class UntapAllUndo:
    objects: tuple[ObjectTapState, ...]
    type: str = 'UNTAP_ALL'


@dataclass(frozen=True)
class AutoTapUndo:
    tapped_ids: tuple[str, ...]
    previous_states: tuple[ObjectTapState, ...]
    previous_floating: ManaPool
    player_id: str = ""
    type: str = 'AUTO_TAP'


UndoAction = Union[TapCardUndo, UntapAllUndo, AutoTapUndo]


def snapshot(obj: BoardObject) -> ObjectTapState:
    return ObjectTapState(id=obj.id, rotation=obj.rotation, tapped_quantity=obj.tapped_quantity)


def build_undo_record(
    result: AutoTapResult,
    board: Iterable[BoardObject],
    previous_floating: ManaPool,
    player_id: str = ""
) -> AutoTapUndo:
    """Capture the pre-tap state of every object an auto-tap touches."""
    touched = set(result.tapped_ids)
    states = tuple(snapshot(obj) for obj in board if obj.id in touched)
    return AutoTapUndo(
        tapped_ids=result.tapped_ids,
        previous_states=states,
        previous_floating=previous_floating,
        player_id=player_id,
    )


def tap_object(obj: BoardObject, count: int = 1) -> BoardObject:
    """Tap `count` instances of a (possibly stacked) object."""
    tapped = min(obj.quantity, obj.tapped_quantity + count)
    rotation = TAPPED_ROTATION if tapped >= obj.quantity else obj.rotation
    return replace(obj, tapped_quantity=tapped, rotation=rotation)


def untap_object(obj: BoardObject) -> BoardObject:
    return replace(obj, tapped_quantity=0, rotation=0)


def apply_taps(board: Iterable[BoardObject], tap_counts: Mapping[str, int]) -> list[BoardObject]:
    """Return a new board with the given objects tapped."""
    return [
        tap_object(obj, tap_counts[obj.id]) if obj.id in tap_counts else obj
        for obj in board
    ]


def restore_states(board: Iterable[BoardObject], states: Iterable[ObjectTapState]) -> list[BoardObject]:
    """Return a new board with rotation/tap counts put back from snapshots."""
    by_id = {state.id: state for state in states}
    restored = []
    for obj in board:
        state = by_id.get(obj.id)
        if state is not None:
            obj = replace(obj, rotation=state.rotation, tapped_quantity=state.tapped_quantity)
        restored.append(obj)
    return restored
