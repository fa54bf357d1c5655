"""
Mana Engine Core Types

Colors, pools, board objects, custom production rules and mana sources.
Everything the engine consumes or returns is defined here.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Union


# =============================================================================
# Colors
# =============================================================================

class ManaColor(Enum):
    WHITE = 'W'
    BLUE = 'U'
    BLACK = 'B'
    RED = 'R'
    GREEN = 'G'
    COLORLESS = 'C'

    # Meta-colors
    ANY = 'WUBRG'       # Any one color
    COMMANDER = 'CMD'   # Commander's color identity

    @classmethod
    def coerce(cls, value: Union['ManaColor', str]) -> 'ManaColor':
        """Accept an enum member or its symbol ('g', 'WUBRG', 'CMD')."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown mana color: {value!r}") from None

    @property
    def is_meta(self) -> bool:
        return self in (ManaColor.ANY, ManaColor.COMMANDER)


# Fixed enumeration orders used throughout the engine
FIVE_COLORS: tuple[ManaColor, ...] = (
    ManaColor.WHITE, ManaColor.BLUE, ManaColor.BLACK, ManaColor.RED, ManaColor.GREEN,
)
BASE_COLORS: tuple[ManaColor, ...] = FIVE_COLORS + (ManaColor.COLORLESS,)
ALL_COLORS: tuple[ManaColor, ...] = tuple(ManaColor)

ColorLike = Union[ManaColor, str]


# =============================================================================
# Mana Pool
# =============================================================================

class ManaPool(Mapping):
    """
    Immutable count of mana per color.

    Every color of the enumeration (meta-colors included) is always present.
    Operations return new pools; nothing mutates in place.
    """

    __slots__ = ('_counts',)

    def __init__(self, counts: Optional[Mapping] = None):
        values = {color: 0 for color in ALL_COLORS}
        for key, amount in (counts or {}).items():
            color = ManaColor.coerce(key)
            amount = int(amount)
            if amount < 0:
                raise ValueError(f"Mana pool count for {color.value} cannot be negative")
            values[color] += amount
        self._counts = values

    def __getitem__(self, key: ColorLike) -> int:
        return self._counts[ManaColor.coerce(key)]

    def __iter__(self) -> Iterator[ManaColor]:
        return iter(ALL_COLORS)

    def __len__(self) -> int:
        return len(ALL_COLORS)

    def __hash__(self) -> int:
        return hash(tuple(self._counts[c] for c in ALL_COLORS))

    def __repr__(self) -> str:
        nonzero = {c.value: n for c, n in self._counts.items() if n}
        return f"ManaPool({nonzero})"

    def add(self, color: ColorLike, amount: int = 1) -> 'ManaPool':
        """Return a new pool with `amount` more of `color`."""
        counts = dict(self._counts)
        counts[ManaColor.coerce(color)] += amount
        return ManaPool(counts)

    def merge(self, other: Mapping) -> 'ManaPool':
        counts = dict(self._counts)
        for key, amount in other.items():
            counts[ManaColor.coerce(key)] += amount
        return ManaPool(counts)

    def total(self) -> int:
        return sum(self._counts.values())

    def to_dict(self) -> dict[str, int]:
        return {c.value: self._counts[c] for c in ALL_COLORS}


EMPTY_POOL = ManaPool()


# =============================================================================
# Classifications
# =============================================================================

class AbilityType(str, Enum):
    """How a source produces its mana."""
    TAP = 'tap'              # Plain {T}: Add
    ACTIVATED = 'activated'  # Needs an extra mana payment
    MULTI = 'multi'          # Several mana abilities to choose from
    COMPLEX = 'complex'      # Variable output, sacrifice, etc.
    PASSIVE = 'passive'      # Always contributes, no tap required


class CalcMode(str, Enum):
    SET = 'set'
    COUNTERS = 'counters'
    CREATURES = 'creatures'
    BASIC_LANDS = 'basicLands'


class ProdMode(str, Enum):
    STANDARD = 'standard'
    MULTIPLIED = 'multiplied'
    AVAILABLE = 'available'        # Any color your lands could produce
    CHOOSE_COLOR = 'chooseColor'   # Player picks at runtime
    COMMANDER = 'commander'        # Commander's color identity


class Category(str, Enum):
    """Object categories a global rule can target."""
    CREATURES = 'creatures'
    LANDS = 'lands'
    BASICS = 'basics'


# Auto-tap priority for sources the player opted out of
NO_AUTO_TAP_PRIORITY = 999


# =============================================================================
# Board State
# =============================================================================

@dataclass(frozen=True)
class CardData:
    """Card identity payload as resolved by the card database."""
    name: str
    scryfall_id: str = ""
    type_line: str = ""
    oracle_text: str = ""
    power: Optional[str] = None
    produced_mana: Optional[tuple[str, ...]] = None  # e.g. ('G',), ('C', 'C')
    mana_ability_type: Optional[AbilityType] = None
    mana_activation_cost: Optional[str] = None      # e.g. '{1}'
    is_basic: bool = False
    is_token: bool = False

    @property
    def identity(self) -> str:
        """Key used to look up custom rules (falls back to the name)."""
        return self.scryfall_id or self.name


@dataclass(frozen=True)
class BoardObject:
    """
    A permanent (or stack of identical permanents) on the table.

    Display fields (x, y, rotation) are carried only so undo records can
    restore them.
    """
    id: str
    controller_id: str
    card: CardData
    type: str = 'CARD'  # CARD or COUNTER
    quantity: int = 1
    tapped_quantity: int = 0
    counters: dict[str, int] = field(default_factory=dict)
    rotation: int = 0
    x: float = 0.0
    y: float = 0.0

    @property
    def untapped_count(self) -> int:
        return max(0, self.quantity - self.tapped_quantity)

    @property
    def type_line(self) -> str:
        return (self.card.type_line or '').lower()


# =============================================================================
# Custom Production Rules
# =============================================================================

@dataclass(frozen=True)
class ManaRule:
    """
    Player-authored override for how a card produces mana.

    Attached to a card identity, not an instance.
    """
    disabled: bool = False
    trigger: AbilityType = AbilityType.TAP

    # Cost to activate the mana ability
    activation_cost: dict[ManaColor, int] = field(default_factory=dict)
    generic_activation_cost: int = 0

    # How much mana
    calc_mode: CalcMode = CalcMode.SET
    calc_multiplier: float = 1
    include_base_power: bool = False

    # Which mana
    prod_mode: ProdMode = ProdMode.STANDARD
    produced: dict[ManaColor, int] = field(default_factory=dict)
    produced_alt: Optional[dict[ManaColor, int]] = None

    # Player picks this instead at runtime
    alternative_rule: Optional['ManaRule'] = None
    persistence: str = 'permanent'

    # Global effects
    applies_to: tuple[Category, ...] = ()
    applies_to_condition: Optional[str] = None  # 'counters'
    mana_multiplier: int = 1

    # Auto-tap / UI
    auto_tap: bool = True
    auto_tap_priority: float = 1
    hide_mana_button: bool = True

    @property
    def is_grant(self) -> bool:
        return bool(self.applies_to)

    @property
    def is_multiplier(self) -> bool:
        return self.mana_multiplier > 1

    def activation_cost_text(self) -> Optional[str]:
        """Render the rule's activation cost as brace text, e.g. '{1}{G}'."""
        parts = []
        if self.generic_activation_cost > 0:
            parts.append(f'{{{self.generic_activation_cost}}}')
        for color in ALL_COLORS:
            count = self.activation_cost.get(color, 0)
            parts.extend(f'{{{color.value}}}' for _ in range(count))
        return ''.join(parts) or None


# =============================================================================
# Mana Sources
# =============================================================================

@dataclass(frozen=True)
class ManaSource:
    """One board object's capacity to produce mana right now."""
    object_id: str
    card_name: str
    produced_mana: tuple[ManaColor, ...]
    is_basic: bool
    is_flexible: bool
    priority: float  # 0=basic, 1=single, 2=fixed multi, 3=flexible
    ability_type: AbilityType
    activation_cost: Optional[str] = None
    mana_count: int = 1
    hide_button: bool = False

    @property
    def distinct_colors(self) -> tuple[ManaColor, ...]:
        seen: list[ManaColor] = []
        for color in self.produced_mana:
            if color not in seen:
                seen.append(color)
        return tuple(seen)


def is_flexible_production(produced) -> bool:
    """Two or more distinct colors, or any meta-color."""
    colors = set(produced)
    return len(colors) > 1 or any(c.is_meta for c in colors)
