"""
Auto-Tap Solver

Picks which sources to tap to pay a mana cost.

Algorithm:
1. Expand the cost into one requirement per pip (X becomes X generic pips)
2. Pay what we can from floating mana, colored then hybrid then generic
3. Tap sources for what's left, in three phases: colored, hybrid, generic.
   Hard color requirements claim sources before fungible generic mana does,
   and sources are tried in priority order (basics first).

Solving is all-or-nothing: if any requirement can't be met the caller gets
back its original floating pool and no taps.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .mana import ManaCost, SymbolKind
from .pool import option_colors
from .rules import normalize_commander_colors
from .types import (
    AbilityType, ManaColor, ManaPool, ManaSource,
    FIVE_COLORS, EMPTY_POOL, ColorLike,
)

logger = logging.getLogger(__name__)


# Order generic requirements draw on floating mana once sources are involved
_GENERIC_FLOAT_ORDER = FIVE_COLORS + (ManaColor.COLORLESS,)

# Hard color requirements settle before fungible ones, floating or tapped
_PHASE_ORDER = (SymbolKind.COLORED, SymbolKind.HYBRID, SymbolKind.GENERIC)


@dataclass(frozen=True)
class Requirement:
    """One pip of a cost."""
    kind: SymbolKind  # COLORED, HYBRID or GENERIC
    color: Optional[ManaColor] = None
    options: tuple[ManaColor, ...] = ()


@dataclass(frozen=True)
class AutoTapResult:
    tapped_ids: tuple[str, ...]
    success: bool
    floating_remaining: ManaPool
    mana_produced: ManaPool = EMPTY_POOL  # By tapping, for display
    mana_spent: ManaPool = EMPTY_POOL     # Per color, floating included

    @property
    def tap_counts(self) -> dict[str, int]:
        """How many instances of each object were tapped (stacks can repeat)."""
        counts: dict[str, int] = {}
        for object_id in self.tapped_ids:
            counts[object_id] = counts.get(object_id, 0) + 1
        return counts


def expand_requirements(cost: ManaCost, x_value: int = 0) -> list[Requirement]:
    requirements = []
    for sym in cost.symbols:
        if sym.kind == SymbolKind.COLORED:
            requirements.append(Requirement(SymbolKind.COLORED, color=sym.color))
        elif sym.kind == SymbolKind.HYBRID:
            requirements.append(Requirement(SymbolKind.HYBRID, options=sym.options))
        elif sym.kind == SymbolKind.GENERIC:
            requirements.extend(Requirement(SymbolKind.GENERIC) for _ in range(sym.count))
        elif sym.kind == SymbolKind.VARIABLE:
            requirements.extend(Requirement(SymbolKind.GENERIC) for _ in range(max(0, x_value)))
    return requirements


class _InfeasibleCost(Exception):
    """A requirement had nothing left to pay it."""


class _TapSession:
    """
    Mutable bookkeeping for one solve.

    Sources live in a priority-sorted arena; consumed entries are tombstoned
    rather than removed so iteration order never shifts.
    """

    def __init__(
        self,
        sources: Sequence[ManaSource],
        floating: Mapping,
        commander_colors: Optional[tuple[ManaColor, ...]]
    ):
        self.arena: list[ManaSource] = sorted(sources, key=lambda s: s.priority)
        self.consumed: list[bool] = [False] * len(self.arena)
        self.commander_colors = commander_colors
        self.floating: dict[ManaColor, int] = {ManaColor.coerce(c): n for c, n in floating.items()}
        self.produced: dict[ManaColor, int] = {}
        self.spent: dict[ManaColor, int] = {}
        self.tapped_ids: list[str] = []

    # -------------------------------------------------------------------------
    # Floating mana
    # -------------------------------------------------------------------------

    def has_floating(self, color: ManaColor) -> bool:
        return self.floating.get(color, 0) > 0

    def pay_floating(self, color: ManaColor) -> None:
        self.floating[color] -= 1
        self._bump(self.spent, color)

    def pay_from_floating(self, req: Requirement) -> bool:
        """Initial pass: settle a requirement with mana already floating."""
        if req.kind == SymbolKind.COLORED:
            if self.has_floating(req.color):
                self.pay_floating(req.color)
                return True
            return False

        if req.kind == SymbolKind.HYBRID:
            # Whichever option we have the most of; ties go to option order
            best = None
            for option in req.options:
                if best is None or self.floating.get(option, 0) > self.floating.get(best, 0):
                    best = option
            if best is not None and self.has_floating(best):
                self.pay_floating(best)
                return True
            return False

        if self.has_floating(ManaColor.COLORLESS):
            self.pay_floating(ManaColor.COLORLESS)
            return True
        for color in FIVE_COLORS:
            if self.has_floating(color):
                self.pay_floating(color)
                return True
        return False

    # -------------------------------------------------------------------------
    # Tapping
    # -------------------------------------------------------------------------

    def produces(self, source: ManaSource, color: ManaColor) -> bool:
        produced = source.produced_mana
        if color in produced:
            return True
        if color == ManaColor.ANY and any(c != ManaColor.COLORLESS for c in produced):
            return True
        if ManaColor.ANY in produced and color in FIVE_COLORS:
            return True
        if ManaColor.COMMANDER in produced and self.commander_colors and color in self.commander_colors:
            return True
        return False

    def _consume(self, index: int) -> ManaSource:
        self.consumed[index] = True
        source = self.arena[index]
        # Passive mana needs no tap action
        if source.ability_type != AbilityType.PASSIVE:
            self.tapped_ids.append(source.object_id)
        return source

    def _concrete_color(self, source: ManaSource, wanted: Optional[ManaColor]) -> ManaColor:
        if wanted is not None and not wanted.is_meta:
            return wanted
        options = option_colors(source, self.commander_colors)
        return options[0] if options else source.produced_mana[0]

    def _use(self, source: ManaSource, wanted: Optional[ManaColor]) -> None:
        """Apply a consumed source's output and spend one unit of it."""
        if not source.is_flexible:
            color = source.produced_mana[0]
            count = len(source.produced_mana)
            self._bump(self.produced, color, count)
            self.floating[color] = self.floating.get(color, 0) + count
            self.pay_floating(color)
        else:
            # Flexible mana is made in exactly the color we need
            color = self._concrete_color(source, wanted)
            self._bump(self.produced, color)
            self._bump(self.spent, color)

    def tap_for_color(self, color: ManaColor) -> bool:
        for index, source in enumerate(self.arena):
            if not self.consumed[index] and self.produces(source, color):
                self._use(self._consume(index), color)
                return True
        return False

    def tap_any(self) -> bool:
        for index, source in enumerate(self.arena):
            if not self.consumed[index]:
                self._use(self._consume(index), None)
                return True
        return False

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def pay_colored(self, req: Requirement) -> None:
        # Fixed multi-mana taps can leave usable mana floating
        if self.has_floating(req.color):
            self.pay_floating(req.color)
        elif not self.tap_for_color(req.color):
            raise _InfeasibleCost(f"no source for {{{req.color.value}}}")

    def pay_hybrid(self, req: Requirement) -> None:
        for option in req.options:
            if self.has_floating(option):
                self.pay_floating(option)
                return
        for option in req.options:
            if self.tap_for_color(option):
                return
        raise _InfeasibleCost(
            "no source for {" + '/'.join(c.value for c in req.options) + "}"
        )

    def pay_generic(self) -> None:
        for color in _GENERIC_FLOAT_ORDER:
            if self.has_floating(color):
                self.pay_floating(color)
                return
        if not self.tap_any():
            raise _InfeasibleCost("no source left for generic mana")

    @staticmethod
    def _bump(target: dict, color: ManaColor, amount: int = 1) -> None:
        target[color] = target.get(color, 0) + amount


def auto_tap_for_cost(
    cost: ManaCost,
    sources: Sequence[ManaSource],
    initial_floating: Optional[ManaPool] = None,
    x_value: int = 0,
    commander_colors: Optional[Iterable[ColorLike]] = None
) -> AutoTapResult:
    """
    Decide which sources to tap to pay `cost`.

    Args:
        cost: Parsed mana cost
        sources: Available sources (one entry per untapped instance)
        initial_floating: Mana already in the pool; never modified
        x_value: Value chosen for X
        commander_colors: Commander color identity, for commander-mana sources

    Returns:
        AutoTapResult. On failure no ids are returned and floating_remaining
        is the `initial_floating` passed in.
    """
    if initial_floating is None:
        initial_floating = EMPTY_POOL

    session = _TapSession(sources, initial_floating, normalize_commander_colors(commander_colors))

    requirements = expand_requirements(cost, x_value)
    remaining = []
    for kind in _PHASE_ORDER:
        remaining.extend(
            req for req in requirements
            if req.kind == kind and not session.pay_from_floating(req)
        )
    if not remaining:
        return AutoTapResult(
            tapped_ids=(),
            success=True,
            floating_remaining=ManaPool(session.floating),
            mana_produced=EMPTY_POOL,
            mana_spent=ManaPool(session.spent),
        )

    try:
        for req in remaining:
            if req.kind == SymbolKind.COLORED:
                session.pay_colored(req)
        for req in remaining:
            if req.kind == SymbolKind.HYBRID:
                session.pay_hybrid(req)
        for req in remaining:
            if req.kind == SymbolKind.GENERIC:
                session.pay_generic()
    except _InfeasibleCost as e:
        logger.debug("Auto-tap failed for %s: %s", cost.to_string(), e)
        return AutoTapResult(
            tapped_ids=(),
            success=False,
            floating_remaining=initial_floating,
        )

    return AutoTapResult(
        tapped_ids=tuple(session.tapped_ids),
        success=True,
        floating_remaining=ManaPool(session.floating),
        mana_produced=ManaPool(session.produced),
        mana_spent=ManaPool(session.spent),
    )
