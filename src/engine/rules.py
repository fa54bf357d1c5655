"""
Rule Evaluator

Scans the permanents a player controls and resolves each one into a single
normalized ManaSource, combining:

- intrinsic production (card database data, or the estimator),
- player-authored custom rules (scaling, production modes, alt colors),
- global grants ("creatures you control have '{T}: Add {G}'"),
- global multipliers ("basic lands tap for three times as much").

The scan runs as two explicit passes: collect_global_effects() gathers the
grant and multiplier rules, then scan_sources() resolves every permanent.
"""

import logging
import re
from dataclasses import dataclass
from functools import cached_property
from typing import Callable, Iterable, Mapping, Optional

from .estimate import BASIC_LAND_TYPES, estimate_produced_mana, is_basic_land
from .mana import parse_produced_mana
from .types import (
    AbilityType, BoardObject, CalcMode, Category, ManaColor, ManaRule,
    ManaSource, ProdMode, BASE_COLORS, FIVE_COLORS, NO_AUTO_TAP_PRIORITY,
    ColorLike, is_flexible_production,
)

logger = logging.getLogger(__name__)


# Lands that only make mana in the commander's colors
COMMANDER_FILTERED_LANDS = frozenset({'Command Tower', 'Path of Ancestry'})

_POWER_PREFIX_RE = re.compile(r'^\s*(\d+)')


@dataclass(frozen=True)
class ScannedSource:
    """A resolved source plus what the aggregator needs to place it."""
    source: ManaSource
    untapped: int
    is_land_object: bool  # Land that is not also a creature or artifact


@dataclass(frozen=True)
class GrantEffect:
    grantor_id: str
    identity: str
    rule: ManaRule


@dataclass(frozen=True)
class MultiplierEffect:
    grantor_id: str
    factor: int
    targets: frozenset


@dataclass(frozen=True)
class GlobalEffects:
    grants: tuple[GrantEffect, ...] = ()
    multipliers: tuple[MultiplierEffect, ...] = ()


@dataclass
class _Resolution:
    """Intermediate per-permanent result, before grants and multipliers."""
    produced: list[ManaColor]
    ability_type: AbilityType
    priority: float
    activation_cost: Optional[str] = None
    hide_button: bool = False


def normalize_commander_colors(colors: Optional[Iterable[ColorLike]]) -> Optional[tuple[ManaColor, ...]]:
    if colors is None:
        return None
    return tuple(ManaColor.coerce(c) for c in colors)


# =============================================================================
# Board Scan Context
# =============================================================================

class BoardScan:
    """
    The slice of the board one player's evaluation looks at.

    Board-wide counts are computed lazily and at most once per scan.
    """

    def __init__(
        self,
        board: Iterable[BoardObject],
        controller_id: str,
        commander_colors: Optional[Iterable[ColorLike]] = None
    ):
        self.controller_id = controller_id
        self.commander_colors = normalize_commander_colors(commander_colors)
        self.permanents: list[BoardObject] = [
            obj for obj in board
            if obj.type == 'CARD' and obj.controller_id == controller_id
        ]

    @cached_property
    def creature_count(self) -> int:
        return sum(obj.quantity for obj in self.permanents if 'creature' in obj.type_line)

    @cached_property
    def basic_land_count(self) -> int:
        return sum(obj.quantity for obj in self.permanents if is_basic_land(obj.card))

    @cached_property
    def land_colors(self) -> tuple[ManaColor, ...]:
        """Colors the player's own lands can produce, in WUBRGC order."""
        found: set[ManaColor] = set()
        for obj in self.permanents:
            if 'land' not in obj.type_line:
                continue
            for subtype, color in BASIC_LAND_TYPES:
                if subtype in obj.type_line:
                    found.add(color)
            for color in parse_produced_mana(obj.card.produced_mana):
                found.update(expand_color(color, self.commander_colors))
        return tuple(c for c in BASE_COLORS if c in found)


def object_categories(obj: BoardObject) -> set[Category]:
    categories = set()
    if 'creature' in obj.type_line:
        categories.add(Category.CREATURES)
    if 'land' in obj.type_line:
        categories.add(Category.LANDS)
        if is_basic_land(obj.card) or 'basic' in obj.type_line:
            categories.add(Category.BASICS)
    return categories


def is_land_object(obj: BoardObject) -> bool:
    type_line = obj.type_line
    return 'land' in type_line and 'creature' not in type_line and 'artifact' not in type_line


def has_counters(obj: BoardObject) -> bool:
    return any(count > 0 for count in obj.counters.values())


# =============================================================================
# Custom Rule Production
# =============================================================================

def expand_color(color: ManaColor, commander_colors: Optional[tuple[ManaColor, ...]]) -> list[ManaColor]:
    """Expand a meta-color into its member colors."""
    if color == ManaColor.ANY:
        return list(FIVE_COLORS)
    if color == ManaColor.COMMANDER:
        return list(commander_colors) if commander_colors else [ManaColor.COMMANDER]
    return [color]


def _printed_power(power: Optional[str]) -> int:
    match = _POWER_PREFIX_RE.match(power or '')
    return int(match.group(1)) if match else 0


def calc_amount(rule: ManaRule, obj: BoardObject, scan: BoardScan) -> int:
    """How many times the rule's production is applied for `obj`."""
    if rule.calc_mode == CalcMode.SET:
        return 1

    if rule.calc_mode == CalcMode.COUNTERS:
        base = obj.counters.get('+1/+1') or obj.counters.get('counter') or 0
        if rule.include_base_power:
            base += _printed_power(obj.card.power)
    elif rule.calc_mode == CalcMode.CREATURES:
        base = scan.creature_count
    elif rule.calc_mode == CalcMode.BASIC_LANDS:
        base = scan.basic_land_count
    else:
        base = 0

    return int(base * (rule.calc_multiplier or 1))


def _scaled(rule: ManaRule, amount: int, scan: BoardScan) -> list[ManaColor]:
    produced = []
    for color in BASE_COLORS + (ManaColor.ANY, ManaColor.COMMANDER):
        base = rule.produced.get(color, 0)
        if base <= 0:
            continue
        for member in expand_color(color, scan.commander_colors):
            produced.extend([member] * (base * amount))
    return produced


def _produce_standard(rule: ManaRule, amount: int, scan: BoardScan) -> list[ManaColor]:
    produced = _scaled(rule, amount, scan)
    # Alternatives add distinct options, they are not scaled
    for color, count in (rule.produced_alt or {}).items():
        if count <= 0:
            continue
        for member in expand_color(color, scan.commander_colors):
            if member not in produced:
                produced.append(member)
    return produced


def _produce_available(rule: ManaRule, amount: int, scan: BoardScan) -> list[ManaColor]:
    produced = []
    for color in scan.land_colors:
        produced.extend([color] * amount)
    return produced


def _produce_choose_color(rule: ManaRule, amount: int, scan: BoardScan) -> list[ManaColor]:
    produced = []
    for color in FIVE_COLORS:
        produced.extend([color] * amount)
    return produced


def _produce_commander(rule: ManaRule, amount: int, scan: BoardScan) -> list[ManaColor]:
    if not scan.commander_colors:
        return [ManaColor.COLORLESS] * amount
    produced = []
    for color in scan.commander_colors:
        produced.extend([color] * amount)
    return produced


_PRODUCERS: dict[ProdMode, Callable[[ManaRule, int, BoardScan], list[ManaColor]]] = {
    ProdMode.STANDARD: _produce_standard,
    ProdMode.MULTIPLIED: _scaled,
    ProdMode.AVAILABLE: _produce_available,
    ProdMode.CHOOSE_COLOR: _produce_choose_color,
    ProdMode.COMMANDER: _produce_commander,
}


def build_production(rule: ManaRule, obj: BoardObject, scan: BoardScan) -> list[ManaColor]:
    """Produced-mana list for `rule` evaluated against `obj`."""
    amount = calc_amount(rule, obj, scan)
    if amount <= 0:
        return []
    producer = _PRODUCERS.get(rule.prod_mode, _scaled)
    return producer(rule, amount, scan)


def rule_ability_type(rule: ManaRule) -> AbilityType:
    if rule.trigger in (AbilityType.PASSIVE, AbilityType.ACTIVATED, AbilityType.TAP):
        return rule.trigger
    return AbilityType.TAP


def rule_priority(rule: ManaRule) -> float:
    return rule.auto_tap_priority if rule.auto_tap else NO_AUTO_TAP_PRIORITY


def default_priority(produced: list[ManaColor], is_basic: bool) -> float:
    if is_basic:
        return 0
    if is_flexible_production(produced):
        return 3
    if len(produced) == 1:
        return 1
    return 2


def select_rule(
    obj: BoardObject,
    rules: Mapping[str, ManaRule],
    alternatives: frozenset = frozenset()
) -> Optional[ManaRule]:
    """Custom rule for a permanent, switching to its alternative when chosen."""
    rule = rules.get(obj.card.identity)
    if rule is not None and obj.card.identity in alternatives and rule.alternative_rule:
        return rule.alternative_rule
    return rule


# =============================================================================
# Pass 1: Global Effects
# =============================================================================

def collect_global_effects(
    scan: BoardScan,
    rules: Mapping[str, ManaRule],
    alternatives: frozenset = frozenset()
) -> GlobalEffects:
    """Find every grant and multiplier rule among the player's permanents."""
    grants: list[GrantEffect] = []
    multipliers: list[MultiplierEffect] = []

    for obj in scan.permanents:
        rule = select_rule(obj, rules, alternatives)
        if rule is None or rule.disabled:
            continue
        if rule.is_multiplier:
            targets = frozenset(rule.applies_to or (Category.LANDS,))
            multipliers.append(MultiplierEffect(
                grantor_id=obj.id,
                factor=rule.mana_multiplier ** max(1, obj.quantity),
                targets=targets,
            ))
        elif rule.is_grant:
            grants.append(GrantEffect(grantor_id=obj.id, identity=obj.card.identity, rule=rule))

    return GlobalEffects(grants=tuple(grants), multipliers=tuple(multipliers))


# =============================================================================
# Pass 2: Per-Permanent Resolution
# =============================================================================

def resolve_production(
    obj: BoardObject,
    rule: Optional[ManaRule],
    scan: BoardScan
) -> Optional[_Resolution]:
    """
    Resolve a permanent's own production.

    Returns None when the permanent must be skipped outright (disabled rule or
    a rule that produces nothing). A permanent without a rule and without
    production resolves to an empty passive result so grants can still apply.
    """
    is_basic = is_basic_land(obj.card)

    if rule is not None:
        if rule.disabled:
            return None
        if rule.is_grant and not grant_applies(rule, obj):
            # The grantor only gets the ability when it is one of its own targets
            return _Resolution(produced=[], ability_type=AbilityType.PASSIVE, priority=NO_AUTO_TAP_PRIORITY)
        produced = build_production(rule, obj, scan)
        if not produced:
            return None
        return _Resolution(
            produced=produced,
            ability_type=rule_ability_type(rule),
            priority=rule_priority(rule),
            activation_cost=rule.activation_cost_text(),
            hide_button=rule.hide_mana_button,
        )

    produced = parse_produced_mana(obj.card.produced_mana)
    if not produced:
        produced = parse_produced_mana(estimate_produced_mana(obj.card))
    if not produced:
        return _Resolution(produced=[], ability_type=AbilityType.PASSIVE, priority=NO_AUTO_TAP_PRIORITY)

    if obj.card.name in COMMANDER_FILTERED_LANDS and scan.commander_colors is not None:
        produced = [c for c in produced if c in scan.commander_colors]

    return _Resolution(
        produced=produced,
        ability_type=obj.card.mana_ability_type or AbilityType.TAP,
        priority=default_priority(produced, is_basic),
        activation_cost=obj.card.mana_activation_cost,
    )


def grant_applies(rule: ManaRule, obj: BoardObject) -> bool:
    """Whether a grant rule's categories (and counters condition) cover `obj`."""
    if not object_categories(obj).intersection(rule.applies_to):
        return False
    return rule.applies_to_condition != 'counters' or has_counters(obj)


def apply_grants(obj: BoardObject, resolution: _Resolution, effects: GlobalEffects, scan: BoardScan) -> None:
    had_production = bool(resolution.produced)
    applied: set[str] = set()

    for grant in effects.grants:
        if grant.identity == obj.card.identity or grant.identity in applied:
            continue
        if not grant_applies(grant.rule, obj):
            continue

        granted = build_production(grant.rule, obj, scan)
        if not granted:
            continue
        applied.add(grant.identity)
        resolution.produced.extend(granted)

        if not had_production:
            had_production = True
            if grant.rule.trigger == AbilityType.ACTIVATED:
                resolution.ability_type = AbilityType.ACTIVATED
            else:
                resolution.ability_type = AbilityType.TAP
            resolution.priority = rule_priority(grant.rule)
            resolution.activation_cost = grant.rule.activation_cost_text()


def multiplier_factor(obj: BoardObject, effects: GlobalEffects) -> int:
    categories = object_categories(obj)
    factor = 1
    for multiplier in effects.multipliers:
        if multiplier.grantor_id != obj.id and categories.intersection(multiplier.targets):
            factor *= multiplier.factor
    return factor


def scan_sources(
    board: Iterable[BoardObject],
    controller_id: str,
    rules: Optional[Mapping[str, ManaRule]] = None,
    commander_colors: Optional[Iterable[ColorLike]] = None,
    alternatives: Iterable[str] = ()
) -> list[ScannedSource]:
    """
    Resolve every permanent `controller_id` controls into mana sources.

    Permanents that can't produce mana right now are left out.
    """
    rules = rules or {}
    alternatives = frozenset(alternatives)
    scan = BoardScan(board, controller_id, commander_colors)
    effects = collect_global_effects(scan, rules, alternatives)

    scanned: list[ScannedSource] = []
    for obj in scan.permanents:
        resolution = resolve_production(obj, select_rule(obj, rules, alternatives), scan)
        if resolution is None:
            logger.debug("Skipping %s (%s): rule disabled or empty", obj.card.name, obj.id)
            continue

        apply_grants(obj, resolution, effects, scan)
        if not resolution.produced:
            continue

        flexible = is_flexible_production(resolution.produced)
        produced = list(resolution.produced)
        mana_count = 1 if flexible else len(produced)

        if not flexible:
            factor = multiplier_factor(obj, effects)
            if factor > 1:
                produced = produced * factor
                mana_count *= factor

        untapped = obj.untapped_count
        if untapped == 0 and resolution.ability_type != AbilityType.PASSIVE:
            continue

        source = ManaSource(
            object_id=obj.id,
            card_name=obj.card.name,
            produced_mana=tuple(produced),
            is_basic=is_basic_land(obj.card),
            is_flexible=flexible,
            priority=resolution.priority,
            ability_type=resolution.ability_type,
            activation_cost=resolution.activation_cost,
            mana_count=mana_count,
            hide_button=resolution.hide_button,
        )
        scanned.append(ScannedSource(source=source, untapped=untapped, is_land_object=is_land_object(obj)))

    return scanned


# =============================================================================
# Display
# =============================================================================

def rule_summary(rule: ManaRule) -> str:
    """Short description of a rule, e.g. 'Tap: {G}{G} x counters (auto 1)'."""
    if rule.disabled:
        return 'Disabled'

    if rule.prod_mode == ProdMode.AVAILABLE:
        produced = 'any color your lands make'
    elif rule.prod_mode == ProdMode.CHOOSE_COLOR:
        produced = 'one color of choice'
    elif rule.prod_mode == ProdMode.COMMANDER:
        produced = "commander's colors"
    else:
        produced = ''.join(
            f'{{{color.value}}}' * count
            for color, count in rule.produced.items() if count > 0
        ) or 'nothing'
        if rule.produced_alt:
            alt = '/'.join(c.value for c, n in rule.produced_alt.items() if n > 0)
            if alt:
                produced += f' or {alt}'

    parts = [f'{rule.trigger.value.capitalize()}: {produced}']
    if rule.calc_mode != CalcMode.SET:
        scale = rule.calc_mode.value
        if rule.calc_multiplier != 1:
            scale = f'{rule.calc_multiplier:g} * {scale}'
        parts.append(f'x {scale}')
    cost = rule.activation_cost_text()
    if cost:
        parts.append(f'for {cost}')
    if rule.applies_to:
        parts.append('to ' + ', '.join(c.value for c in rule.applies_to))
    if rule.is_multiplier:
        parts.append(f'multiplies by {rule.mana_multiplier}')
    parts.append(f'(auto {rule.auto_tap_priority:g})' if rule.auto_tap else '(manual)')
    return ' '.join(parts)
