"""
Hyperdraft Mana Engine

Works out what mana a player has on the table and which permanents to tap
to pay a cost.

Core systems:
- Costs: Parse brace-delimited mana costs
- Estimator: Guess production for cards without database data
- Rule Evaluator: Resolve permanents (and custom rules) into mana sources
- Pool Aggregator: Build the available and potential pools
- Auto-Tap Solver: Pick sources to pay a cost, all-or-nothing
- History: Apply taps and keep undo records
"""

from .types import (
    # Colors and pools
    ManaColor, ManaPool, EMPTY_POOL,
    FIVE_COLORS, BASE_COLORS, ALL_COLORS,

    # Classification
    AbilityType, CalcMode, ProdMode, Category, NO_AUTO_TAP_PRIORITY,

    # Board and rules
    CardData, BoardObject, ManaRule, ManaSource,
    is_flexible_production,
)

from .mana import (
    ManaCost, ManaSymbol, SymbolKind,
    parse_mana_cost, parse_produced_mana,
    pool_total, add_to_pool, subtract_from_pool,
)

from .estimate import (
    estimate_produced_mana, detect_mana_ability_type,
    is_basic_land, basic_land_color,
)

from .rules import (
    BoardScan, ScannedSource, GlobalEffects, GrantEffect, MultiplierEffect,
    collect_global_effects, resolve_production, scan_sources, rule_summary,
)

from .pool import (
    ManaAvailability, aggregate_sources, calculate_available_mana, auto_tap_candidates,
)

from .autotap import (
    AutoTapResult, Requirement, auto_tap_for_cost, expand_requirements,
)

from .history import (
    MAX_UNDO_HISTORY,
    ObjectTapState, TapCardUndo, UntapAllUndo, AutoTapUndo, UndoAction,
    build_undo_record, apply_taps, tap_object, untap_object, restore_states,
)

__all__ = [
    # Colors and pools
    'ManaColor', 'ManaPool', 'EMPTY_POOL',
    'FIVE_COLORS', 'BASE_COLORS', 'ALL_COLORS',

    # Classification
    'AbilityType', 'CalcMode', 'ProdMode', 'Category', 'NO_AUTO_TAP_PRIORITY',

    # Board and rules
    'CardData', 'BoardObject', 'ManaRule', 'ManaSource',
    'is_flexible_production',

    # Costs and pool helpers
    'ManaCost', 'ManaSymbol', 'SymbolKind',
    'parse_mana_cost', 'parse_produced_mana',
    'pool_total', 'add_to_pool', 'subtract_from_pool',

    # Estimator
    'estimate_produced_mana', 'detect_mana_ability_type',
    'is_basic_land', 'basic_land_color',

    # Rule evaluator
    'BoardScan', 'ScannedSource', 'GlobalEffects', 'GrantEffect', 'MultiplierEffect',
    'collect_global_effects', 'resolve_production', 'scan_sources', 'rule_summary',

    # Pool aggregator
    'ManaAvailability', 'aggregate_sources', 'calculate_available_mana', 'auto_tap_candidates',

    # Auto-tap
    'AutoTapResult', 'Requirement', 'auto_tap_for_cost', 'expand_requirements',

    # History
    'MAX_UNDO_HISTORY',
    'ObjectTapState', 'TapCardUndo', 'UntapAllUndo', 'AutoTapUndo', 'UndoAction',
    'build_undo_record', 'apply_taps', 'tap_object', 'untap_object', 'restore_states',
]
