"""
Pydantic Models for the Mana API

Data transfer objects for the REST API, with conversions to and from the
engine's frozen dataclasses.
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from src.engine import (
    AbilityType, AutoTapResult, BoardObject, CalcMode, CardData, Category,
    ManaAvailability, ManaColor, ManaCost, ManaPool, ManaRule, ManaSource,
    ProdMode, SymbolKind,
)


# =============================================================================
# Enums
# =============================================================================

class ColorSymbol(str, Enum):
    """Mana color symbols accepted over the wire."""
    W = "W"
    U = "U"
    B = "B"
    R = "R"
    G = "G"
    C = "C"
    ANY = "WUBRG"
    CMD = "CMD"


def _engine_counts(counts: dict[ColorSymbol, int]) -> dict[ManaColor, int]:
    return {ManaColor(color.value): amount for color, amount in counts.items()}


def pool_to_dict(pool: ManaPool) -> dict[str, int]:
    return pool.to_dict()


# =============================================================================
# Card and Board Models
# =============================================================================

class CardModel(BaseModel):
    """Card identity payload."""
    name: str
    scryfall_id: str = ""
    type_line: str = ""
    oracle_text: str = ""
    power: Optional[str] = None
    produced_mana: Optional[list[str]] = Field(default=None, description="Database produced mana, e.g. ['C', 'C']")
    mana_ability_type: Optional[AbilityType] = None
    mana_activation_cost: Optional[str] = None
    is_basic: bool = False
    is_token: bool = False

    def to_engine(self) -> CardData:
        return CardData(
            name=self.name,
            scryfall_id=self.scryfall_id,
            type_line=self.type_line,
            oracle_text=self.oracle_text,
            power=self.power,
            produced_mana=tuple(self.produced_mana) if self.produced_mana is not None else None,
            mana_ability_type=self.mana_ability_type,
            mana_activation_cost=self.mana_activation_cost,
            is_basic=self.is_basic,
            is_token=self.is_token,
        )

    @classmethod
    def from_engine(cls, card: CardData) -> 'CardModel':
        return cls(
            name=card.name,
            scryfall_id=card.scryfall_id,
            type_line=card.type_line,
            oracle_text=card.oracle_text,
            power=card.power,
            produced_mana=list(card.produced_mana) if card.produced_mana is not None else None,
            mana_ability_type=card.mana_ability_type,
            mana_activation_cost=card.mana_activation_cost,
            is_basic=card.is_basic,
            is_token=card.is_token,
        )


class BoardObjectModel(BaseModel):
    """A permanent (or stack of identical permanents) on the table."""
    id: str
    controller_id: str
    card: CardModel
    type: str = Field(default="CARD", description="CARD or COUNTER")
    quantity: int = Field(default=1, ge=1)
    tapped_quantity: int = Field(default=0, ge=0)
    counters: dict[str, int] = Field(default_factory=dict)
    rotation: int = 0
    x: float = 0.0
    y: float = 0.0

    def to_engine(self) -> BoardObject:
        return BoardObject(
            id=self.id,
            controller_id=self.controller_id,
            card=self.card.to_engine(),
            type=self.type,
            quantity=self.quantity,
            tapped_quantity=min(self.tapped_quantity, self.quantity),
            counters=dict(self.counters),
            rotation=self.rotation,
            x=self.x,
            y=self.y,
        )

    @classmethod
    def from_engine(cls, obj: BoardObject) -> 'BoardObjectModel':
        return cls(
            id=obj.id,
            controller_id=obj.controller_id,
            card=CardModel.from_engine(obj.card),
            type=obj.type,
            quantity=obj.quantity,
            tapped_quantity=obj.tapped_quantity,
            counters=dict(obj.counters),
            rotation=obj.rotation,
            x=obj.x,
            y=obj.y,
        )


# =============================================================================
# Custom Rules
# =============================================================================

class ManaRuleModel(BaseModel):
    """Player-authored production rule."""
    disabled: bool = False
    trigger: AbilityType = AbilityType.TAP
    activation_cost: dict[ColorSymbol, int] = Field(default_factory=dict)
    generic_activation_cost: int = Field(default=0, ge=0)
    calc_mode: CalcMode = CalcMode.SET
    calc_multiplier: float = 1
    include_base_power: bool = False
    prod_mode: ProdMode = ProdMode.STANDARD
    produced: dict[ColorSymbol, int] = Field(default_factory=dict)
    produced_alt: Optional[dict[ColorSymbol, int]] = None
    alternative_rule: Optional['ManaRuleModel'] = None
    persistence: str = "permanent"
    applies_to: list[Category] = Field(default_factory=list)
    applies_to_condition: Optional[str] = Field(default=None, description="'counters' to require counters")
    mana_multiplier: int = Field(default=1, ge=1)
    auto_tap: bool = True
    auto_tap_priority: float = 1
    hide_mana_button: bool = True

    def to_engine(self) -> ManaRule:
        return ManaRule(
            disabled=self.disabled,
            trigger=self.trigger,
            activation_cost=_engine_counts(self.activation_cost),
            generic_activation_cost=self.generic_activation_cost,
            calc_mode=self.calc_mode,
            calc_multiplier=self.calc_multiplier,
            include_base_power=self.include_base_power,
            prod_mode=self.prod_mode,
            produced=_engine_counts(self.produced),
            produced_alt=_engine_counts(self.produced_alt) if self.produced_alt is not None else None,
            alternative_rule=self.alternative_rule.to_engine() if self.alternative_rule else None,
            persistence=self.persistence,
            applies_to=tuple(self.applies_to),
            applies_to_condition=self.applies_to_condition,
            mana_multiplier=self.mana_multiplier,
            auto_tap=self.auto_tap,
            auto_tap_priority=self.auto_tap_priority,
            hide_mana_button=self.hide_mana_button,
        )


def rules_to_engine(rules: dict[str, ManaRuleModel]) -> dict[str, ManaRule]:
    return {identity: rule.to_engine() for identity, rule in rules.items()}


# =============================================================================
# Request Models
# =============================================================================

class ParseCostRequest(BaseModel):
    """Request to parse a mana cost."""
    cost: str = Field(default="", description="Brace-delimited cost, e.g. '{2}{G}{G}'")


class EstimateRequest(BaseModel):
    """Request to estimate a card's production."""
    card: CardModel


class PoolRequest(BaseModel):
    """Board snapshot to evaluate for one player."""
    player_id: str
    board: list[BoardObjectModel] = Field(default_factory=list)
    rules: dict[str, ManaRuleModel] = Field(default_factory=dict, description="Custom rules by card identity")
    commander_colors: Optional[list[ColorSymbol]] = None
    alternatives: list[str] = Field(default_factory=list, description="Identities using their alternative rule")

    def engine_commander_colors(self) -> Optional[list[ManaColor]]:
        if self.commander_colors is None:
            return None
        return [ManaColor(c.value) for c in self.commander_colors]


class AutoTapRequest(PoolRequest):
    """Board snapshot plus a cost to pay."""
    cost: str
    x_value: int = Field(default=0, ge=0)
    floating: dict[ColorSymbol, int] = Field(default_factory=dict)


class CreateTableRequest(BaseModel):
    """Request to create a table session."""
    board: list[BoardObjectModel] = Field(default_factory=list)
    rules: dict[str, ManaRuleModel] = Field(default_factory=dict)
    commander_colors: dict[str, list[ColorSymbol]] = Field(default_factory=dict, description="Player id -> colors")


class BoardUpdateRequest(BaseModel):
    """Replace a table's board."""
    board: list[BoardObjectModel]


class CastRequest(BaseModel):
    """Auto-tap for a cost at a table."""
    player_id: str
    cost: str
    x_value: int = Field(default=0, ge=0)
    alternatives: list[str] = Field(default_factory=list)


class TapRequest(BaseModel):
    """Manually tap one instance of a permanent for mana."""
    player_id: str
    object_id: str
    chosen_color: Optional[ColorSymbol] = Field(default=None, description="Required for flexible sources")


# =============================================================================
# Response Models
# =============================================================================

class ManaSymbolData(BaseModel):
    kind: SymbolKind
    color: Optional[str] = None
    count: int = 0
    options: list[str] = Field(default_factory=list)


class ParseCostResponse(BaseModel):
    """Parsed mana cost."""
    cost: str
    symbols: list[ManaSymbolData]
    total: int
    has_x: bool

    @classmethod
    def from_engine(cls, cost: ManaCost) -> 'ParseCostResponse':
        return cls(
            cost=cost.to_string(),
            symbols=[
                ManaSymbolData(
                    kind=sym.kind,
                    color=sym.color.value if sym.color else None,
                    count=sym.count,
                    options=[c.value for c in sym.options],
                )
                for sym in cost.symbols
            ],
            total=cost.total,
            has_x=cost.has_x,
        )


class EstimateResponse(BaseModel):
    """Estimated production for a card."""
    name: str
    produced_mana: Optional[list[str]] = None
    ability_type: Optional[AbilityType] = None
    activation_cost: Optional[str] = None
    is_basic: bool = False


class ManaSourceData(BaseModel):
    """Mana source data for API responses."""
    object_id: str
    card_name: str
    produced_mana: list[str]
    is_basic: bool
    is_flexible: bool
    priority: float
    ability_type: AbilityType
    activation_cost: Optional[str] = None
    mana_count: int = 1
    hide_button: bool = False

    @classmethod
    def from_engine(cls, source: ManaSource) -> 'ManaSourceData':
        return cls(
            object_id=source.object_id,
            card_name=source.card_name,
            produced_mana=[c.value for c in source.produced_mana],
            is_basic=source.is_basic,
            is_flexible=source.is_flexible,
            priority=source.priority,
            ability_type=source.ability_type,
            activation_cost=source.activation_cost,
            mana_count=source.mana_count,
            hide_button=source.hide_button,
        )


class ManaAvailabilityResponse(BaseModel):
    """Available and potential mana for one player."""
    pool: dict[str, int]
    potential_pool: dict[str, int]
    sources: list[ManaSourceData]
    potential_sources: list[ManaSourceData]
    total_available: int
    total_potential: int
    floating: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_engine(
        cls,
        availability: ManaAvailability,
        floating: Optional[ManaPool] = None
    ) -> 'ManaAvailabilityResponse':
        return cls(
            pool=pool_to_dict(availability.pool),
            potential_pool=pool_to_dict(availability.potential_pool),
            sources=[ManaSourceData.from_engine(s) for s in availability.sources],
            potential_sources=[ManaSourceData.from_engine(s) for s in availability.potential_sources],
            total_available=availability.total_available,
            total_potential=availability.total_potential,
            floating=pool_to_dict(floating) if floating is not None else {},
        )


class AutoTapResponse(BaseModel):
    """Result of an auto-tap."""
    success: bool
    tapped_ids: list[str]
    floating_remaining: dict[str, int]
    mana_produced: dict[str, int]
    mana_spent: dict[str, int]
    message: str = ""

    @classmethod
    def from_engine(cls, result: AutoTapResult, message: str = "") -> 'AutoTapResponse':
        return cls(
            success=result.success,
            tapped_ids=list(result.tapped_ids),
            floating_remaining=pool_to_dict(result.floating_remaining),
            mana_produced=pool_to_dict(result.mana_produced),
            mana_spent=pool_to_dict(result.mana_spent),
            message=message,
        )


class TableResponse(BaseModel):
    """Table session state."""
    table_id: str
    board: list[BoardObjectModel]
    rules: dict[str, str] = Field(default_factory=dict, description="Rule summaries by card identity")
    commander_colors: dict[str, list[str]] = Field(default_factory=dict)
    floating: dict[str, dict[str, int]] = Field(default_factory=dict)
    undo_depth: int = 0


class ActionResultResponse(BaseModel):
    """Result of a manual table action."""
    success: bool
    message: str = ""
    floating: dict[str, int] = Field(default_factory=dict)
    undo_type: Optional[str] = None
