"""
Table Session Management

Holds the board, custom rules, floating mana and undo history for each
open table. All engine calls are synchronous; sessions only add state.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4
import logging

from src.engine import (
    AbilityType, AutoTapResult, AutoTapUndo, BoardObject, ManaAvailability, ManaColor,
    ManaPool, ManaRule, ObjectTapState, TapCardUndo, UndoAction, UntapAllUndo,
    EMPTY_POOL, MAX_UNDO_HISTORY,
    add_to_pool, apply_taps, auto_tap_candidates, auto_tap_for_cost,
    build_undo_record, calculate_available_mana, parse_mana_cost,
    restore_states, tap_object, untap_object,
)
from src.engine.history import snapshot
from src.engine.pool import option_colors

from .config import config

logger = logging.getLogger(__name__)


def generate_id() -> str:
    """Generate a short unique ID."""
    return str(uuid4())[:8]


class TableActionError(Exception):
    """A manual table action that can't be carried out."""


@dataclass
class TableSession:
    """
    A single tabletop's mana state.

    Provides:
    - Board snapshot and custom rules (keyed by card identity)
    - Commander colors and floating mana per player
    - Auto-tap casting, manual taps, untap-all
    - Bounded undo history
    """
    id: str
    board: list[BoardObject] = field(default_factory=list)
    rules: dict[str, ManaRule] = field(default_factory=dict)
    commander_colors: dict[str, tuple[ManaColor, ...]] = field(default_factory=dict)
    floating: dict[str, ManaPool] = field(default_factory=dict)
    max_undo_history: int = MAX_UNDO_HISTORY
    history: deque = field(init=False)

    def __post_init__(self):
        self.history = deque(maxlen=self.max_undo_history)

    # -------------------------------------------------------------------------
    # Players and state
    # -------------------------------------------------------------------------

    @property
    def player_ids(self) -> set[str]:
        players = {obj.controller_id for obj in self.board}
        players.update(self.commander_colors)
        players.update(self.floating)
        return players

    def has_player(self, player_id: str) -> bool:
        return player_id in self.player_ids

    def get_floating(self, player_id: str) -> ManaPool:
        return self.floating.get(player_id, EMPTY_POOL)

    def set_board(self, board: list[BoardObject]) -> None:
        self.board = list(board)

    def set_rule(self, identity: str, rule: ManaRule) -> None:
        self.rules[identity] = rule

    def remove_rule(self, identity: str) -> bool:
        return self.rules.pop(identity, None) is not None

    def _push(self, action: UndoAction) -> None:
        self.history.append(action)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(self, player_id: str, alternatives: tuple[str, ...] = ()) -> ManaAvailability:
        """Available and potential mana for one player."""
        return calculate_available_mana(
            self.board,
            player_id,
            commander_colors=self.commander_colors.get(player_id),
            rules=self.rules,
            alternatives=alternatives,
        )

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def cast(self, player_id: str, cost_text: str, x_value: int = 0,
             alternatives: tuple[str, ...] = ()) -> AutoTapResult:
        """
        Auto-tap to pay a cost.

        On success the taps are applied, the player's floating pool is
        updated and an undo record is pushed. On failure nothing changes.
        """
        cost = parse_mana_cost(cost_text)
        availability = self.evaluate(player_id, alternatives)
        previous_floating = self.get_floating(player_id)

        result = auto_tap_for_cost(
            cost,
            auto_tap_candidates(availability),
            initial_floating=previous_floating,
            x_value=x_value,
            commander_colors=self.commander_colors.get(player_id),
        )
        if not result.success:
            logger.info("Table %s: %s could not pay %s", self.id, player_id, cost.to_string())
            return result

        self._push(build_undo_record(result, self.board, previous_floating, player_id))
        self.board = apply_taps(self.board, result.tap_counts)
        self.floating[player_id] = result.floating_remaining
        logger.info(
            "Table %s: %s paid %s tapping %d source(s)",
            self.id, player_id, cost.to_string(), len(result.tapped_ids)
        )
        return result

    def _find_object(self, object_id: str) -> Optional[BoardObject]:
        for obj in self.board:
            if obj.id == object_id:
                return obj
        return None

    def tap_for_mana(self, player_id: str, object_id: str,
                     chosen_color: Optional[ManaColor] = None) -> ManaPool:
        """
        Manually tap one instance of a permanent and float its mana.

        Raises:
            TableActionError: Object missing, not the player's, fully tapped,
                not a mana source, a passive source, or a flexible source
                without a valid color.
        """
        obj = self._find_object(object_id)
        if obj is None or obj.controller_id != player_id:
            raise TableActionError(f"{player_id} controls no object {object_id}")
        if obj.untapped_count <= 0:
            raise TableActionError(f"{obj.card.name} is already tapped")

        availability = self.evaluate(player_id)
        source = next(
            (s for s in availability.sources + availability.potential_sources if s.object_id == object_id),
            None
        )
        if source is None:
            raise TableActionError(f"{obj.card.name} doesn't produce mana")
        if source.ability_type == AbilityType.PASSIVE:
            # Already counted in the pool whether tapped or not
            raise TableActionError(f"{obj.card.name} produces mana without tapping")
        if source.is_flexible:
            options = option_colors(source, self.commander_colors.get(player_id))
            if chosen_color is None or chosen_color not in options:
                raise TableActionError(
                    f"Choose one of {'/'.join(c.value for c in options)} for {obj.card.name}"
                )

        previous_floating = self.get_floating(player_id)
        self._push(TapCardUndo(
            object_id=obj.id,
            player_id=player_id,
            previous_rotation=obj.rotation,
            previous_tapped_quantity=obj.tapped_quantity,
            previous_floating=previous_floating,
        ))
        self.board = [tap_object(o) if o.id == object_id else o for o in self.board]
        self.floating[player_id] = add_to_pool(previous_floating, source, chosen_color)
        return self.floating[player_id]

    def untap_all(self, player_id: str) -> int:
        """Untap every permanent the player controls. Returns how many changed."""
        changed = [
            obj for obj in self.board
            if obj.controller_id == player_id and (obj.tapped_quantity > 0 or obj.rotation != 0)
        ]
        if not changed:
            return 0

        self._push(UntapAllUndo(objects=tuple(snapshot(obj) for obj in changed)))
        changed_ids = {obj.id for obj in changed}
        self.board = [untap_object(o) if o.id in changed_ids else o for o in self.board]
        return len(changed)

    def undo(self) -> Optional[UndoAction]:
        """Revert the most recent action. Returns None when history is empty."""
        if not self.history:
            return None

        action = self.history.pop()
        if isinstance(action, TapCardUndo):
            state = ObjectTapState(
                id=action.object_id,
                rotation=action.previous_rotation,
                tapped_quantity=action.previous_tapped_quantity,
            )
            self.board = restore_states(self.board, [state])
            self.floating[action.player_id] = action.previous_floating
        elif isinstance(action, AutoTapUndo):
            self.board = restore_states(self.board, action.previous_states)
            self.floating[action.player_id] = action.previous_floating
        elif isinstance(action, UntapAllUndo):
            self.board = restore_states(self.board, action.objects)

        logger.info("Table %s: undid %s", self.id, action.type)
        return action


class TableManager:
    """
    Manages all open table sessions.
    """

    def __init__(self, max_undo_history: int = MAX_UNDO_HISTORY):
        self.tables: dict[str, TableSession] = {}
        self.max_undo_history = max_undo_history
        self._lock = asyncio.Lock()

    async def create_table(
        self,
        board: Optional[list[BoardObject]] = None,
        rules: Optional[dict[str, ManaRule]] = None,
        commander_colors: Optional[dict[str, tuple[ManaColor, ...]]] = None
    ) -> TableSession:
        """Create a new table session."""
        async with self._lock:
            table_id = generate_id()
            table = TableSession(
                id=table_id,
                board=list(board or []),
                rules=dict(rules or {}),
                commander_colors=dict(commander_colors or {}),
                max_undo_history=self.max_undo_history,
            )
            self.tables[table_id] = table
            logger.info("Created table %s with %d object(s)", table_id, len(table.board))
            return table

    def get_table(self, table_id: str) -> Optional[TableSession]:
        """Get a table by ID."""
        return self.tables.get(table_id)

    async def remove_table(self, table_id: str) -> bool:
        """Remove a table."""
        async with self._lock:
            if table_id in self.tables:
                del self.tables[table_id]
                logger.info("Removed table %s", table_id)
                return True
            return False


# Global table manager instance
table_manager = TableManager(max_undo_history=config.max_undo_history)
