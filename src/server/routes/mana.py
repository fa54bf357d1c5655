"""
Mana Routes

Stateless endpoints: every request carries its own board snapshot.
"""

from fastapi import APIRouter, HTTPException

from src.engine import (
    ManaPool, auto_tap_candidates, auto_tap_for_cost, calculate_available_mana,
    detect_mana_ability_type, estimate_produced_mana, is_basic_land, parse_mana_cost,
)

from ..models import (
    AutoTapRequest, AutoTapResponse, EstimateRequest, EstimateResponse,
    ManaAvailabilityResponse, ParseCostRequest, ParseCostResponse, PoolRequest,
    rules_to_engine,
)

router = APIRouter(prefix="/mana", tags=["mana"])


def _evaluate(request: PoolRequest):
    return calculate_available_mana(
        [obj.to_engine() for obj in request.board],
        request.player_id,
        commander_colors=request.engine_commander_colors(),
        rules=rules_to_engine(request.rules),
        alternatives=request.alternatives,
    )


@router.post("/parse", response_model=ParseCostResponse)
async def parse_cost(request: ParseCostRequest) -> ParseCostResponse:
    """Parse a mana cost string into symbols."""
    return ParseCostResponse.from_engine(parse_mana_cost(request.cost))


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_card(request: EstimateRequest) -> EstimateResponse:
    """
    Estimate what a card produces and how its mana ability is activated.
    """
    card = request.card.to_engine()
    ability_type, activation_cost = detect_mana_ability_type(card)
    return EstimateResponse(
        name=card.name,
        produced_mana=estimate_produced_mana(card),
        ability_type=ability_type,
        activation_cost=activation_cost,
        is_basic=is_basic_land(card),
    )


@router.post("/pool", response_model=ManaAvailabilityResponse)
async def get_pool(request: PoolRequest) -> ManaAvailabilityResponse:
    """Available and potential mana for a player on the given board."""
    return ManaAvailabilityResponse.from_engine(_evaluate(request))


@router.post("/autotap", response_model=AutoTapResponse)
async def auto_tap(request: AutoTapRequest) -> AutoTapResponse:
    """
    Work out which sources to tap for a cost.

    Nothing is stored; an unpayable cost comes back with success=false.
    """
    try:
        floating = ManaPool({c.value: n for c, n in request.floating.items()})
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    availability = _evaluate(request)
    result = auto_tap_for_cost(
        parse_mana_cost(request.cost),
        auto_tap_candidates(availability),
        initial_floating=floating,
        x_value=request.x_value,
        commander_colors=request.engine_commander_colors(),
    )
    message = "" if result.success else "Not enough mana"
    return AutoTapResponse.from_engine(result, message=message)
