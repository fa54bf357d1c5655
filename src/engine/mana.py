"""
Mana Costs and Pool Helpers

Parses brace-delimited mana costs: {W}, {U}, {B}, {R}, {G}, {C}, {X}, {1}, {2}, ...
Hybrid symbols such as {W/U} or {2/W} keep only their color options.
Unrecognized symbols are dropped rather than rejected.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .types import (
    ManaColor, ManaPool, ManaSource, BASE_COLORS, ColorLike,
)


_SYMBOL_RE = re.compile(r'\{([^}]+)\}')

# Colors a cost symbol may name
_COST_COLORS = {c.value: c for c in BASE_COLORS}


class SymbolKind(Enum):
    COLORED = 'colored'
    GENERIC = 'generic'
    HYBRID = 'hybrid'
    VARIABLE = 'x'


@dataclass(frozen=True)
class ManaSymbol:
    """A single requirement symbol in a mana cost."""
    kind: SymbolKind
    color: Optional[ManaColor] = None
    count: int = 0
    options: tuple[ManaColor, ...] = ()

    @classmethod
    def colored(cls, color: ManaColor) -> 'ManaSymbol':
        return cls(SymbolKind.COLORED, color=color)

    @classmethod
    def generic(cls, count: int) -> 'ManaSymbol':
        return cls(SymbolKind.GENERIC, count=count)

    @classmethod
    def hybrid(cls, options: Iterable[ManaColor]) -> 'ManaSymbol':
        return cls(SymbolKind.HYBRID, options=tuple(options))

    @classmethod
    def variable(cls) -> 'ManaSymbol':
        return cls(SymbolKind.VARIABLE)

    def to_string(self) -> str:
        if self.kind == SymbolKind.COLORED:
            return f'{{{self.color.value}}}'
        if self.kind == SymbolKind.GENERIC:
            return f'{{{self.count}}}'
        if self.kind == SymbolKind.HYBRID:
            return '{' + '/'.join(c.value for c in self.options) + '}'
        return '{X}'


@dataclass(frozen=True)
class ManaCost:
    """Parsed mana cost: symbols in source order plus the precomputed total."""
    symbols: tuple[ManaSymbol, ...] = ()
    total: int = 0
    has_x: bool = False

    @classmethod
    def parse(cls, cost_string: Optional[str]) -> 'ManaCost':
        """
        Parse a mana cost string.

        Examples:
            "{2}{G}{G}" -> generic(2), colored(G), colored(G); total 4
            "{X}{R}"    -> variable, colored(R); total 1, has_x
            "{W/U}"     -> hybrid(W, U); total 1
            "{Q}"       -> dropped
        """
        if not cost_string:
            return cls()

        symbols: list[ManaSymbol] = []
        total = 0
        has_x = False

        for raw in _SYMBOL_RE.findall(cost_string):
            value = raw.strip().upper()

            if value == 'X':
                symbols.append(ManaSymbol.variable())
                has_x = True
            elif value.isdigit():
                count = int(value)
                symbols.append(ManaSymbol.generic(count))
                total += count
            elif '/' in value:
                options = [_COST_COLORS[p] for p in value.split('/') if p in _COST_COLORS]
                if options:
                    symbols.append(ManaSymbol.hybrid(options))
                    total += 1
            elif value in _COST_COLORS:
                symbols.append(ManaSymbol.colored(_COST_COLORS[value]))
                total += 1

        return cls(symbols=tuple(symbols), total=total, has_x=has_x)

    def pip_count(self, x_value: int = 0) -> int:
        """Number of discrete requirements once X is known."""
        count = 0
        for sym in self.symbols:
            if sym.kind == SymbolKind.GENERIC:
                count += sym.count
            elif sym.kind == SymbolKind.VARIABLE:
                count += max(0, x_value)
            else:
                count += 1
        return count

    def is_free(self) -> bool:
        return not self.symbols or (self.total == 0 and not self.has_x)

    def to_string(self) -> str:
        """Convert back to mana cost text."""
        return ''.join(sym.to_string() for sym in self.symbols) or '{0}'


def parse_mana_cost(cost_string: Optional[str]) -> ManaCost:
    """Parse a mana cost string."""
    return ManaCost.parse(cost_string)


# =============================================================================
# Produced Mana
# =============================================================================

def parse_produced_mana(produced: Optional[Iterable[str]]) -> list[ManaColor]:
    """Normalize a card-database produced-mana list, dropping unknown entries."""
    if not produced:
        return []
    colors = []
    for entry in produced:
        try:
            colors.append(ManaColor.coerce(entry))
        except ValueError:
            continue
    return colors


# =============================================================================
# Pool Helpers
# =============================================================================

def pool_total(pool: Mapping) -> int:
    """Total mana in a pool."""
    return sum(pool.values())


def add_to_pool(
    pool: ManaPool,
    source: ManaSource,
    chosen_color: Optional[ColorLike] = None
) -> ManaPool:
    """
    Add the mana from manually tapping `source` to a floating pool.

    Fixed producers add their whole output. Flexible producers need the
    player's choice; without one the pool comes back unchanged.
    """
    if not source.is_flexible:
        if not source.produced_mana:
            return pool
        return pool.add(source.produced_mana[0], len(source.produced_mana))

    if chosen_color is None:
        return pool
    return pool.add(chosen_color, 1)


def subtract_from_pool(pool: ManaPool, cost: ManaCost, x_value: int = 0) -> Optional[ManaPool]:
    """
    Pay `cost` directly out of `pool`.

    Colored and hybrid symbols are paid first. Generic is paid with colorless
    first, then from whichever color is most abundant. Returns None if the pool
    is short.
    """
    counts = {c: pool[c] for c in BASE_COLORS}
    generic = 0

    for sym in cost.symbols:
        if sym.kind == SymbolKind.COLORED:
            if counts[sym.color] <= 0:
                return None
            counts[sym.color] -= 1
        elif sym.kind == SymbolKind.HYBRID:
            best = max(sym.options, key=lambda c: counts[c])
            if counts[best] <= 0:
                return None
            counts[best] -= 1
        elif sym.kind == SymbolKind.GENERIC:
            generic += sym.count
        elif sym.kind == SymbolKind.VARIABLE:
            generic += max(0, x_value)

    from_colorless = min(counts[ManaColor.COLORLESS], generic)
    counts[ManaColor.COLORLESS] -= from_colorless
    generic -= from_colorless

    while generic > 0:
        richest = max(BASE_COLORS, key=lambda c: counts[c])
        if counts[richest] <= 0:
            return None
        counts[richest] -= 1
        generic -= 1

    remaining = {c: pool[c] for c in pool if c not in counts}
    remaining.update(counts)
    return ManaPool(remaining)
