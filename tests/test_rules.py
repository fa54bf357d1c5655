"""
Tests for the rule evaluator: intrinsic production, custom rules, global
grants and multipliers.
"""

from src.engine import (
    AbilityType, BoardObject, BoardScan, CalcMode, CardData, Category, ManaColor,
    ManaRule, ProdMode, NO_AUTO_TAP_PRIORITY,
    collect_global_effects, rule_summary, scan_sources,
)


G = ManaColor.GREEN
FIVE = [ManaColor.WHITE, ManaColor.BLUE, ManaColor.BLACK, ManaColor.RED, ManaColor.GREEN]


def forest(obj_id, controller="p1", **kwargs):
    card = CardData(
        name="Forest", scryfall_id="forest", type_line="Basic Land — Forest",
        produced_mana=("G",), is_basic=True,
    )
    return BoardObject(id=obj_id, controller_id=controller, card=card, **kwargs)


def permanent(obj_id, name, type_line, produced=None, scryfall_id=None, controller="p1", **kwargs):
    card = CardData(
        name=name,
        scryfall_id=scryfall_id or name.lower().replace(" ", "-"),
        type_line=type_line,
        produced_mana=tuple(produced) if produced is not None else None,
        power=kwargs.pop("power", None),
    )
    return BoardObject(id=obj_id, controller_id=controller, card=card, **kwargs)


def sources_by_id(scanned):
    return {entry.source.object_id: entry.source for entry in scanned}


# =============================================================================
# Intrinsic Production
# =============================================================================

class TestIntrinsicProduction:
    """Test production from card data alone."""

    def test_basic_land(self):
        scanned = scan_sources([forest("f1")], "p1")
        assert len(scanned) == 1
        source = scanned[0].source
        assert source.produced_mana == (G,)
        assert source.priority == 0
        assert source.is_basic
        assert not source.is_flexible
        assert source.ability_type == AbilityType.TAP
        assert scanned[0].is_land_object

    def test_only_controller_permanents(self):
        scanned = scan_sources([forest("f1"), forest("f2", controller="p2")], "p1")
        assert [entry.source.object_id for entry in scanned] == ["f1"]

    def test_counter_objects_ignored(self):
        token = BoardObject(id="c1", controller_id="p1", card=CardData(name="Forest"), type="COUNTER")
        assert scan_sources([token], "p1") == []

    def test_tapped_permanent_skipped(self):
        assert scan_sources([forest("f1", tapped_quantity=1)], "p1") == []

    def test_stack_reports_untapped_count(self):
        scanned = scan_sources([forest("f1", quantity=3, tapped_quantity=1)], "p1")
        assert scanned[0].untapped == 2

    def test_default_priorities(self):
        board = [
            permanent("elf", "Llanowar Elves", "Creature — Elf Druid", ["G"]),
            permanent("ring", "Sol Ring", "Artifact", ["C", "C"]),
            permanent("city", "City of Brass", "Land", ["W", "U", "B", "R", "G"]),
        ]
        sources = sources_by_id(scan_sources(board, "p1"))
        assert sources["elf"].priority == 1
        assert sources["ring"].priority == 2
        assert sources["ring"].mana_count == 2
        assert sources["city"].priority == 3
        assert sources["city"].is_flexible
        assert sources["city"].mana_count == 1

    def test_estimated_when_database_is_silent(self):
        """Land subtypes stand in for missing produced_mana."""
        board = [permanent("dual", "Breeding Pool", "Land — Forest Island")]
        source = scan_sources(board, "p1")[0].source
        assert source.produced_mana == (ManaColor.BLUE, G)
        assert source.is_flexible

    def test_non_source_skipped(self):
        assert scan_sources([permanent("bear", "Grizzly Bears", "Creature — Bear")], "p1") == []

    def test_command_tower_filtered_by_commander(self):
        board = [permanent("tower", "Command Tower", "Land", ["W", "U", "B", "R", "G"])]
        source = scan_sources(board, "p1", commander_colors=["G", "U"])[0].source
        assert source.produced_mana == (ManaColor.BLUE, G)

    def test_command_tower_single_color_is_fixed(self):
        board = [permanent("tower", "Command Tower", "Land", ["W", "U", "B", "R", "G"])]
        source = scan_sources(board, "p1", commander_colors=["G"])[0].source
        assert source.produced_mana == (G,)
        assert not source.is_flexible
        assert source.priority == 1

    def test_command_tower_unfiltered_without_commander(self):
        """Unknown commander colors leave the tower at all five."""
        board = [permanent("tower", "Command Tower", "Land", ["W", "U", "B", "R", "G"])]
        source = scan_sources(board, "p1")[0].source
        assert list(source.produced_mana) == FIVE


# =============================================================================
# Custom Rules
# =============================================================================

class TestCustomRules:
    """Test per-card custom mana rules."""

    def test_standard_rule(self):
        board = [permanent("stone", "Worn Powerstone", "Artifact", scryfall_id="wp")]
        rules = {"wp": ManaRule(produced={ManaColor.COLORLESS: 2}, auto_tap=False)}
        source = scan_sources(board, "p1", rules)[0].source
        assert source.produced_mana == (ManaColor.COLORLESS, ManaColor.COLORLESS)
        assert source.mana_count == 2
        assert source.priority == NO_AUTO_TAP_PRIORITY
        assert source.hide_button

    def test_disabled_rule_skips_permanent(self):
        rules = {"forest": ManaRule(disabled=True)}
        assert scan_sources([forest("f1")], "p1", rules) == []

    def test_rule_keyed_by_name_without_scryfall_id(self):
        card = CardData(name="Mystery Rock", type_line="Artifact")
        board = [BoardObject(id="rock", controller_id="p1", card=card)]
        rules = {"Mystery Rock": ManaRule(produced={ManaColor.RED: 1})}
        assert scan_sources(board, "p1", rules)[0].source.produced_mana == (ManaColor.RED,)

    def test_counters_scaling(self):
        board = [permanent("hydra", "Hydra", "Creature — Hydra", counters={"+1/+1": 3})]
        rules = {"hydra": ManaRule(calc_mode=CalcMode.COUNTERS, produced={G: 1})}
        source = scan_sources(board, "p1", rules)[0].source
        assert source.produced_mana == (G, G, G)
        assert source.mana_count == 3

    def test_counters_with_base_power(self):
        board = [permanent("hydra", "Hydra", "Creature — Hydra", counters={"+1/+1": 3}, power="2")]
        rules = {"hydra": ManaRule(calc_mode=CalcMode.COUNTERS, include_base_power=True, produced={G: 1})}
        assert scan_sources(board, "p1", rules)[0].source.mana_count == 5

    def test_creature_count_scaling(self):
        board = [
            permanent("cradle", "Gaea's Cradle", "Legendary Land"),
            permanent("elf", "Elvish Visionary", "Creature — Elf", quantity=2),
            permanent("bear", "Grizzly Bears", "Creature — Bear"),
        ]
        rules = {"gaea's-cradle": ManaRule(calc_mode=CalcMode.CREATURES, produced={G: 1})}
        source = sources_by_id(scan_sources(board, "p1", rules))["cradle"]
        assert source.produced_mana == (G, G, G)

    def test_basic_land_count_scaling_with_multiplier(self):
        board = [
            forest("f1"), forest("f2"),
            permanent("temple", "Temple", "Land", scryfall_id="temple"),
        ]
        rules = {"temple": ManaRule(calc_mode=CalcMode.BASIC_LANDS, calc_multiplier=2, produced={G: 1})}
        assert sources_by_id(scan_sources(board, "p1", rules))["temple"].mana_count == 4

    def test_zero_scale_produces_nothing(self):
        board = [permanent("hydra", "Hydra", "Creature — Hydra")]
        rules = {"hydra": ManaRule(calc_mode=CalcMode.COUNTERS, produced={G: 1})}
        assert scan_sources(board, "p1", rules) == []

    def test_alt_colors_make_source_flexible(self):
        board = [permanent("rock", "Rock", "Artifact")]
        rules = {"rock": ManaRule(produced={G: 1}, produced_alt={ManaColor.BLUE: 1})}
        source = scan_sources(board, "p1", rules)[0].source
        assert source.produced_mana == (G, ManaColor.BLUE)
        assert source.is_flexible

    def test_available_mode_matches_lands(self):
        board = [
            forest("f1"),
            permanent("island", "Island", "Basic Land — Island", ["U"]),
            permanent("fountain", "Fountain", "Artifact"),
        ]
        rules = {"fountain": ManaRule(prod_mode=ProdMode.AVAILABLE)}
        source = sources_by_id(scan_sources(board, "p1", rules))["fountain"]
        assert source.produced_mana == (ManaColor.BLUE, G)

    def test_choose_color_mode(self):
        board = [permanent("prism", "Prism", "Artifact")]
        rules = {"prism": ManaRule(prod_mode=ProdMode.CHOOSE_COLOR)}
        source = scan_sources(board, "p1", rules)[0].source
        assert list(source.produced_mana) == FIVE
        assert source.is_flexible

    def test_commander_mode(self):
        board = [permanent("signet", "Arcane Signet", "Artifact")]
        rules = {"arcane-signet": ManaRule(prod_mode=ProdMode.COMMANDER)}
        with_commander = scan_sources(board, "p1", rules, commander_colors=["R", "W"])[0].source
        assert with_commander.produced_mana == (ManaColor.RED, ManaColor.WHITE)
        without = scan_sources(board, "p1", rules)[0].source
        assert without.produced_mana == (ManaColor.COLORLESS,)

    def test_passive_rule_counts_while_tapped(self):
        """Passive sources ignore tap state."""
        board = [permanent("glyph", "Glyph", "Enchantment", tapped_quantity=1)]
        rules = {"glyph": ManaRule(trigger=AbilityType.PASSIVE, produced={ManaColor.COLORLESS: 1})}
        source = scan_sources(board, "p1", rules)[0].source
        assert source.ability_type == AbilityType.PASSIVE

    def test_activated_rule_cost(self):
        board = [permanent("rock", "Rock", "Artifact")]
        rules = {"rock": ManaRule(
            trigger=AbilityType.ACTIVATED,
            generic_activation_cost=1,
            activation_cost={G: 1},
            produced={G: 2},
        )}
        source = scan_sources(board, "p1", rules)[0].source
        assert source.ability_type == AbilityType.ACTIVATED
        assert source.activation_cost == "{1}{G}"

    def test_alternative_rule_selected(self):
        board = [permanent("rock", "Rock", "Artifact")]
        rules = {"rock": ManaRule(
            produced={ManaColor.RED: 1},
            alternative_rule=ManaRule(produced={G: 2}),
        )}
        assert scan_sources(board, "p1", rules)[0].source.produced_mana == (ManaColor.RED,)
        alt = scan_sources(board, "p1", rules, alternatives=["rock"])[0].source
        assert alt.produced_mana == (G, G)


# =============================================================================
# Global Effects
# =============================================================================

class TestGlobalEffects:
    """Test grants and multipliers from other permanents."""

    def test_collect_effects(self):
        board = [
            permanent("rite", "Cryptolith Rite", "Enchantment"),
            permanent("zendikar", "Zendikar Resurgent", "Enchantment"),
        ]
        rules = {
            "cryptolith-rite": ManaRule(produced={ManaColor.ANY: 1}, applies_to=(Category.CREATURES,)),
            "zendikar-resurgent": ManaRule(mana_multiplier=2),
        }
        effects = collect_global_effects(BoardScan(board, "p1"), rules)
        assert len(effects.grants) == 1
        assert effects.grants[0].grantor_id == "rite"
        assert len(effects.multipliers) == 1
        assert effects.multipliers[0].targets == frozenset({Category.LANDS})
        assert effects.multipliers[0].factor == 2

    def test_grant_gives_creature_an_ability(self):
        board = [
            permanent("rite", "Cryptolith Rite", "Enchantment"),
            permanent("bear", "Grizzly Bears", "Creature — Bear"),
        ]
        rules = {"cryptolith-rite": ManaRule(produced={ManaColor.ANY: 1}, applies_to=(Category.CREATURES,))}
        sources = sources_by_id(scan_sources(board, "p1", rules))
        assert "rite" not in sources
        bear = sources["bear"]
        assert list(bear.produced_mana) == FIVE
        assert bear.ability_type == AbilityType.TAP
        assert bear.priority == 1

    def test_activated_grant_promotes_ability_type(self):
        """A permanent with no mana of its own takes the grant's activated ability."""
        board = [
            permanent("mantle", "Paradise Mantle", "Enchantment"),
            permanent("bear", "Grizzly Bears", "Creature — Bear"),
        ]
        rules = {"paradise-mantle": ManaRule(
            trigger=AbilityType.ACTIVATED,
            generic_activation_cost=1,
            produced={G: 1},
            applies_to=(Category.CREATURES,),
        )}
        sources = sources_by_id(scan_sources(board, "p1", rules))
        assert "mantle" not in sources
        bear = sources["bear"]
        assert bear.produced_mana == (G,)
        assert bear.ability_type == AbilityType.ACTIVATED
        assert bear.activation_cost == "{1}"

    def test_grant_requires_counters_when_conditioned(self):
        rule = ManaRule(produced={G: 1}, applies_to=(Category.CREATURES,), applies_to_condition="counters")
        board = [
            permanent("rishkar", "Rishkar", "Legendary Creature — Elf Druid", counters={"+1/+1": 1}),
            permanent("bear", "Grizzly Bears", "Creature — Bear"),
            permanent("elf", "Elvish Visionary", "Creature — Elf", counters={"+1/+1": 1}),
        ]
        sources = sources_by_id(scan_sources(board, "p1", {"rishkar": rule}))
        assert "bear" not in sources
        assert sources["elf"].produced_mana == (G,)
        # The grantor is one of its own targets here
        assert sources["rishkar"].produced_mana == (G,)

    def test_grant_appends_to_existing_production(self):
        board = [
            permanent("rite", "Cryptolith Rite", "Enchantment"),
            permanent("elf", "Llanowar Elves", "Creature — Elf Druid", ["G"]),
        ]
        rules = {"cryptolith-rite": ManaRule(produced={ManaColor.RED: 1}, applies_to=(Category.CREATURES,))}
        elf = sources_by_id(scan_sources(board, "p1", rules))["elf"]
        assert elf.produced_mana == (G, ManaColor.RED)
        assert elf.is_flexible

    def test_multiplier_scales_basics(self):
        board = [
            forest("f1"),
            permanent("city", "City of Brass", "Land", ["W", "U", "B", "R", "G"]),
            permanent("amp", "Amplifier", "Enchantment"),
        ]
        rules = {"amplifier": ManaRule(mana_multiplier=2, applies_to=(Category.BASICS,))}
        sources = sources_by_id(scan_sources(board, "p1", rules))
        assert "amp" not in sources
        assert sources["f1"].produced_mana == (G, G)
        assert sources["f1"].mana_count == 2
        # Flexible and non-basic sources are left alone
        assert sources["city"].mana_count == 1

    def test_multiplier_stacks_with_quantity(self):
        """Two copies of a doubler quadruple output."""
        board = [forest("f1"), permanent("amp", "Amplifier", "Enchantment", quantity=2)]
        rules = {"amplifier": ManaRule(mana_multiplier=2)}
        assert sources_by_id(scan_sources(board, "p1", rules))["f1"].mana_count == 4


# =============================================================================
# Display
# =============================================================================

def test_rule_summary():
    rule = ManaRule(calc_mode=CalcMode.COUNTERS, produced={G: 2})
    assert rule_summary(rule) == "Tap: {G}{G} x counters (auto 1)"


def test_rule_summary_manual_and_disabled():
    assert rule_summary(ManaRule(produced={ManaColor.COLORLESS: 1}, auto_tap=False)) == "Tap: {C} (manual)"
    assert rule_summary(ManaRule(disabled=True)) == "Disabled"
