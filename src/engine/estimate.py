"""
Production Estimator

Heuristics for cards the card database has no produced-mana data for,
plus classification of how a card's mana ability is activated.
"""

import re
from typing import Optional

from .types import AbilityType, CardData, ManaColor, FIVE_COLORS


BASIC_LAND_NAMES = frozenset({
    'plains', 'island', 'swamp', 'mountain', 'forest', 'wastes',
    'snow-covered plains', 'snow-covered island', 'snow-covered swamp',
    'snow-covered mountain', 'snow-covered forest',
})

# Basic land subtype -> the color its intrinsic ability makes
BASIC_LAND_TYPES: tuple[tuple[str, ManaColor], ...] = (
    ('plains', ManaColor.WHITE),
    ('island', ManaColor.BLUE),
    ('swamp', ManaColor.BLACK),
    ('mountain', ManaColor.RED),
    ('forest', ManaColor.GREEN),
    ('wastes', ManaColor.COLORLESS),
)

# Fixed "any color" producers whose text doesn't say so plainly
ANY_COLOR_CARDS = frozenset({'Command Tower', 'Arcane Signet'})

_ADD_CLAUSE_RE = re.compile(r'add\s*((?:\{[wubrgc0-9]\})+)')
_ADD_TOKEN_RE = re.compile(r'\{([wubrgc0-9])\}')
_ANY_COLOR_PHRASES = ('one mana of any color', 'one mana of any type')

_TAP_COST_BEFORE_RE = re.compile(r'(\{[^}]+\}(?:\s*,\s*\{[^}]+\})*)\s*,\s*\{T\}\s*:\s*Add')
_TAP_COST_AFTER_RE = re.compile(r'\{T\}\s*,\s*(\{[^}]+\}(?:\s*,\s*\{[^}]+\})*)\s*:\s*Add')
_VARIABLE_OUTPUT_RES = (
    re.compile(r'add.*for each', re.IGNORECASE),
    re.compile(r'add.*equal to', re.IGNORECASE),
    re.compile(r'[Aa]dd.*\bX\b'),
)


def is_basic_land(card_or_name) -> bool:
    if isinstance(card_or_name, CardData):
        if card_or_name.is_basic:
            return True
        name = card_or_name.name
    else:
        name = card_or_name
    return (name or '').lower() in BASIC_LAND_NAMES


def basic_land_color(name: str) -> Optional[ManaColor]:
    """Color made by a basic land, by name."""
    lowered = (name or '').lower()
    if lowered not in BASIC_LAND_NAMES:
        return None
    for subtype, color in BASIC_LAND_TYPES:
        if lowered.endswith(subtype):
            return color
    return None


def _ensure_sol_ring(name: str, produced: list[str]) -> list[str]:
    # Database data for Sol Ring sometimes lists a single {C}
    if name == 'Sol Ring':
        while produced.count('C') < 2:
            produced.append('C')
    return produced


def estimate_produced_mana(card: CardData) -> Optional[list[str]]:
    """
    Estimate which mana a card produces.

    Authoritative data is trusted when present. Otherwise the result is built
    from basic land subtypes, "Add {..}" clauses and "any color" phrasing.
    Duplicates represent fixed multi-mana output: ['C', 'C'] for Sol Ring,
    while ['W', 'U', 'B', 'R', 'G'] lists the options of a flexible source.

    Returns None when the card doesn't look like a mana source.
    """
    if card.produced_mana:
        return _ensure_sol_ring(card.name, list(card.produced_mana))

    produced: list[str] = []
    type_line = (card.type_line or '').lower()
    text = (card.oracle_text or '').lower()

    # 1. Basic land types
    for subtype, color in BASIC_LAND_TYPES:
        if subtype in type_line:
            produced.append(color.value)

    # 2. "Add {G}{G}" clauses, one entry per symbol
    for clause in _ADD_CLAUSE_RE.findall(text):
        for token in _ADD_TOKEN_RE.findall(clause):
            if not token.isdigit():
                produced.append(token.upper())

    # 3. Any color
    if any(phrase in text for phrase in _ANY_COLOR_PHRASES) or card.name in ANY_COLOR_CARDS:
        for color in FIVE_COLORS:
            if color.value not in produced:
                produced.append(color.value)

    # 4. Known under-specified cards
    _ensure_sol_ring(card.name, produced)

    return produced or None


def detect_mana_ability_type(card: CardData) -> tuple[Optional[AbilityType], Optional[str]]:
    """
    Work out how a card's mana ability is activated.

    Returns (ability_type, activation_cost). Both are None for cards that
    don't produce mana.
    """
    text = card.oracle_text or ''
    type_line = (card.type_line or '').lower()

    if 'basic' in type_line and 'land' in type_line:
        return AbilityType.TAP, None

    if not card.produced_mana and 'Add {' not in text and '{T}: Add' not in text:
        return None, None

    # Nykthos, Cabal Coffers, ...
    if any(pattern.search(text) for pattern in _VARIABLE_OUTPUT_RES):
        return AbilityType.COMPLEX, None

    # Never auto-tap something that sacrifices itself
    if re.search(r'sacrifice.*:\s*add', text, re.IGNORECASE) or \
            re.search(r',\s*sacrifice.*\{T\}', text, re.IGNORECASE):
        return AbilityType.COMPLEX, None

    match = _TAP_COST_BEFORE_RE.search(text) or _TAP_COST_AFTER_RE.search(text)
    cost = match.group(1).strip() if match else ''

    tap_abilities = re.findall(r'\{T\}\s*:', text)
    if len(tap_abilities) > 1:
        if len(re.findall(r'\{T\}\s*:\s*Add', text)) > 1:
            return AbilityType.MULTI, None
        if cost:
            return AbilityType.ACTIVATED, cost
        return AbilityType.TAP, None

    if cost and cost != '{T}':
        return AbilityType.ACTIVATED, cost

    if '{T}: Add' in text or 'land' in type_line or card.produced_mana:
        return AbilityType.TAP, None

    return None, None
