"""
Pool Aggregator

Turns scanned sources into the two pools shown to the player:

- available: free to tap right now (plain {T} lands, passive effects)
- potential: needs an extra cost or a deliberate tap (creatures, artifacts,
  activated and complex abilities)

Flexible lands collapse into a single "any" count in the available pool,
while flexible potential sources are fanned out across every option color.
The totals only line up with the tapped-source counts this way.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from .rules import ScannedSource, expand_color, normalize_commander_colors, scan_sources
from .types import (
    AbilityType, BoardObject, ManaColor, ManaPool, ManaRule, ManaSource,
    EMPTY_POOL, NO_AUTO_TAP_PRIORITY, ColorLike,
)


@dataclass(frozen=True)
class ManaAvailability:
    """Everything a player could spend right now."""
    pool: ManaPool = EMPTY_POOL
    potential_pool: ManaPool = EMPTY_POOL
    sources: tuple[ManaSource, ...] = ()
    potential_sources: tuple[ManaSource, ...] = ()
    total_available: int = 0
    total_potential: int = 0


def option_colors(
    source: ManaSource,
    commander_colors: Optional[tuple[ManaColor, ...]]
) -> list[ManaColor]:
    """Distinct concrete colors a flexible source could make."""
    colors: list[ManaColor] = []
    for color in source.distinct_colors:
        for member in expand_color(color, commander_colors):
            if member not in colors:
                colors.append(member)
    return colors


def _fixed_counts(source: ManaSource) -> dict[ManaColor, int]:
    counts: dict[ManaColor, int] = {}
    for color in source.produced_mana:
        counts[color] = counts.get(color, 0) + 1
    return counts


def _fanned_counts(source: ManaSource, commander_colors) -> dict[ManaColor, int]:
    return {color: 1 for color in option_colors(source, commander_colors)}


def aggregate_sources(
    scanned: Iterable[ScannedSource],
    commander_colors: Optional[Iterable[ColorLike]] = None
) -> ManaAvailability:
    """Build the available and potential pools from scanned sources."""
    commander_colors = normalize_commander_colors(commander_colors)

    available: dict[ManaColor, int] = {}
    potential: dict[ManaColor, int] = {}
    sources: list[ManaSource] = []
    potential_sources: list[ManaSource] = []

    def _add(target: dict, counts: Mapping[ManaColor, int], times: int = 1) -> None:
        for color, count in counts.items():
            target[color] = target.get(color, 0) + count * times

    for entry in scanned:
        source = entry.source

        # Passive sources count once, whatever the stack size
        if source.ability_type == AbilityType.PASSIVE:
            sources.append(source)
            if source.is_flexible:
                _add(available, _fanned_counts(source, commander_colors))
            else:
                _add(available, _fixed_counts(source))
            continue

        if entry.untapped <= 0:
            continue

        if source.ability_type == AbilityType.TAP and entry.is_land_object:
            sources.extend([source] * entry.untapped)
            if source.is_flexible:
                _add(available, {ManaColor.ANY: 1}, entry.untapped)
            else:
                _add(available, _fixed_counts(source), entry.untapped)
        else:
            potential_sources.extend([source] * entry.untapped)
            if source.is_flexible:
                _add(potential, _fanned_counts(source, commander_colors), entry.untapped)
            else:
                _add(potential, _fixed_counts(source), entry.untapped)

    return ManaAvailability(
        pool=ManaPool(available),
        potential_pool=ManaPool(potential),
        sources=tuple(sources),
        potential_sources=tuple(potential_sources),
        total_available=sum(s.mana_count or 1 for s in sources),
        total_potential=sum(s.mana_count or 1 for s in potential_sources),
    )


def calculate_available_mana(
    board: Iterable[BoardObject],
    controller_id: str,
    commander_colors: Optional[Iterable[ColorLike]] = None,
    rules: Optional[Mapping[str, ManaRule]] = None,
    alternatives: Iterable[str] = ()
) -> ManaAvailability:
    """Scan a player's permanents and aggregate their mana."""
    commander_colors = normalize_commander_colors(commander_colors)
    scanned = scan_sources(board, controller_id, rules, commander_colors, alternatives)
    return aggregate_sources(scanned, commander_colors)


def auto_tap_candidates(availability: ManaAvailability) -> list[ManaSource]:
    """
    Sources the solver may tap on the player's behalf.

    Everything in the available list, plus potential sources that tap without
    an extra mana payment. Activated, multi and complex abilities and sources
    opted out of auto-tap stay manual.
    """
    candidates = list(availability.sources)
    for source in availability.potential_sources:
        if source.priority >= NO_AUTO_TAP_PRIORITY:
            continue
        if source.ability_type in (AbilityType.TAP, AbilityType.PASSIVE) and not source.activation_cost:
            candidates.append(source)
    return candidates
