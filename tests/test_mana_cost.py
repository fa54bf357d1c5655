"""
Tests for Mana Costs and Pool Helpers

- Cost parsing (colored, generic, hybrid, X, malformed)
- Produced-mana normalization
- Pool arithmetic
"""

import pytest

from src.engine import (
    AbilityType, ManaColor, ManaCost, ManaPool, ManaSource, SymbolKind,
    EMPTY_POOL,
    add_to_pool, parse_mana_cost, parse_produced_mana, pool_total, subtract_from_pool,
)


def make_source(produced, flexible=False, object_id="src"):
    return ManaSource(
        object_id=object_id,
        card_name="Test Source",
        produced_mana=tuple(ManaColor.coerce(c) for c in produced),
        is_basic=False,
        is_flexible=flexible,
        priority=1,
        ability_type=AbilityType.TAP,
        mana_count=1 if flexible else len(produced),
    )


# =============================================================================
# Cost Parsing
# =============================================================================

class TestManaCostParsing:
    """Test mana cost parsing."""

    def test_parse_generic_and_colored(self):
        cost = ManaCost.parse("{2}{G}{G}")
        kinds = [sym.kind for sym in cost.symbols]
        assert kinds == [SymbolKind.GENERIC, SymbolKind.COLORED, SymbolKind.COLORED]
        assert cost.symbols[0].count == 2
        assert cost.symbols[1].color == ManaColor.GREEN
        assert cost.total == 4
        assert not cost.has_x

    def test_parse_x_cost(self):
        cost = ManaCost.parse("{X}{R}")
        assert cost.has_x
        assert cost.total == 1  # X counts as 0 until chosen
        assert cost.pip_count(x_value=3) == 4

    def test_parse_colorless(self):
        cost = ManaCost.parse("{C}{C}")
        assert all(sym.color == ManaColor.COLORLESS for sym in cost.symbols)
        assert cost.total == 2

    def test_parse_hybrid(self):
        cost = ManaCost.parse("{W/U}")
        assert len(cost.symbols) == 1
        assert cost.symbols[0].kind == SymbolKind.HYBRID
        assert cost.symbols[0].options == (ManaColor.WHITE, ManaColor.BLUE)
        assert cost.total == 1

    def test_parse_monocolored_hybrid_keeps_color(self):
        cost = ManaCost.parse("{2/W}")
        assert cost.symbols[0].kind == SymbolKind.HYBRID
        assert cost.symbols[0].options == (ManaColor.WHITE,)
        assert cost.total == 1

    def test_parse_lowercase(self):
        cost = ManaCost.parse("{1}{g}")
        assert cost.symbols[1].color == ManaColor.GREEN

    def test_unknown_symbols_are_dropped(self):
        cost = ManaCost.parse("{Q}{G}")
        assert len(cost.symbols) == 1
        assert cost.total == 1

    def test_parse_empty(self):
        cost = parse_mana_cost("")
        assert cost.is_free()
        assert cost.total == 0
        assert cost.to_string() == "{0}"

    def test_parse_none(self):
        assert parse_mana_cost(None).is_free()

    def test_to_string(self):
        assert ManaCost.parse("{2}{G}{G}").to_string() == "{2}{G}{G}"
        assert ManaCost.parse("{X}{W/U}").to_string() == "{X}{W/U}"


class TestProducedMana:
    """Test produced-mana normalization."""

    def test_unknown_entries_dropped(self):
        assert parse_produced_mana(["G", "x", "WUBRG"]) == [ManaColor.GREEN, ManaColor.ANY]

    def test_empty(self):
        assert parse_produced_mana(None) == []
        assert parse_produced_mana([]) == []


# =============================================================================
# Pools
# =============================================================================

class TestManaPool:
    """Test mana pool operations."""

    def test_every_color_present(self):
        assert len(EMPTY_POOL) == len(ManaColor)
        assert EMPTY_POOL[ManaColor.COMMANDER] == 0

    def test_string_keys(self):
        pool = ManaPool({"g": 2, "C": 1})
        assert pool["G"] == 2
        assert pool[ManaColor.COLORLESS] == 1
        assert pool_total(pool) == 3

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError):
            ManaPool({"G": -1})

    def test_unknown_color_rejected(self):
        with pytest.raises(ValueError):
            ManaPool({"Q": 1})

    def test_add_returns_new_pool(self):
        pool = ManaPool({"R": 1})
        bigger = pool.add("R", 2)
        assert pool["R"] == 1
        assert bigger["R"] == 3


class TestPoolHelpers:
    """Test pool arithmetic helpers."""

    def test_add_fixed_source(self):
        pool = add_to_pool(EMPTY_POOL, make_source(["C", "C"]))
        assert pool["C"] == 2

    def test_add_flexible_source_needs_choice(self):
        source = make_source(["W", "U", "B", "R", "G"], flexible=True)
        assert add_to_pool(EMPTY_POOL, source) is EMPTY_POOL
        assert add_to_pool(EMPTY_POOL, source, "G")["G"] == 1

    def test_subtract_generic_uses_colorless_first(self):
        pool = ManaPool({"G": 2, "C": 1, "R": 1})
        remaining = subtract_from_pool(pool, ManaCost.parse("{1}{G}"))
        assert remaining["G"] == 1
        assert remaining["C"] == 0
        assert remaining["R"] == 1

    def test_subtract_generic_from_most_abundant(self):
        remaining = subtract_from_pool(ManaPool({"R": 3, "U": 1}), ManaCost.parse("{2}"))
        assert remaining["R"] == 1
        assert remaining["U"] == 1

    def test_subtract_x(self):
        remaining = subtract_from_pool(ManaPool({"R": 3}), ManaCost.parse("{X}{R}"), x_value=2)
        assert remaining.total() == 0

    def test_subtract_short_returns_none(self):
        assert subtract_from_pool(ManaPool({"G": 1}), ManaCost.parse("{G}{G}")) is None
        assert subtract_from_pool(ManaPool({"G": 1}), ManaCost.parse("{1}{G}")) is None
