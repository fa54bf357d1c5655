"""
Table Routes

Endpoints for table sessions: board state, custom rules, casting with
auto-tap, manual taps and undo.
"""

from fastapi import APIRouter, HTTPException

from src.engine import ManaColor, rule_summary

from ..session import table_manager, TableSession, TableActionError
from ..models import (
    ActionResultResponse, AutoTapResponse, BoardObjectModel, BoardUpdateRequest,
    CastRequest, CreateTableRequest, ManaAvailabilityResponse, ManaRuleModel,
    TableResponse, TapRequest, rules_to_engine,
)

router = APIRouter(prefix="/tables", tags=["tables"])


def _get_table(table_id: str) -> TableSession:
    table = table_manager.get_table(table_id)
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")
    return table


def _require_player(table: TableSession, player_id: str) -> None:
    if not table.has_player(player_id):
        raise HTTPException(status_code=404, detail="Player not found")


def _table_response(table: TableSession) -> TableResponse:
    return TableResponse(
        table_id=table.id,
        board=[BoardObjectModel.from_engine(obj) for obj in table.board],
        rules={identity: rule_summary(rule) for identity, rule in table.rules.items()},
        commander_colors={
            pid: [c.value for c in colors] for pid, colors in table.commander_colors.items()
        },
        floating={pid: pool.to_dict() for pid, pool in table.floating.items()},
        undo_depth=len(table.history),
    )


@router.post("/create", response_model=TableResponse)
async def create_table(request: CreateTableRequest) -> TableResponse:
    """Open a new table session."""
    table = await table_manager.create_table(
        board=[obj.to_engine() for obj in request.board],
        rules=rules_to_engine(request.rules),
        commander_colors={
            pid: tuple(ManaColor(c.value) for c in colors)
            for pid, colors in request.commander_colors.items()
        },
    )
    return _table_response(table)


@router.get("/{table_id}", response_model=TableResponse)
async def get_table(table_id: str) -> TableResponse:
    """Get the current table state."""
    return _table_response(_get_table(table_id))


@router.delete("/{table_id}")
async def delete_table(table_id: str) -> dict:
    """Close a table session."""
    if not await table_manager.remove_table(table_id):
        raise HTTPException(status_code=404, detail="Table not found")
    return {"status": "deleted", "table_id": table_id}


@router.put("/{table_id}/board", response_model=TableResponse)
async def update_board(table_id: str, request: BoardUpdateRequest) -> TableResponse:
    """Replace the table's board snapshot."""
    table = _get_table(table_id)
    table.set_board([obj.to_engine() for obj in request.board])
    return _table_response(table)


@router.put("/{table_id}/rules/{scryfall_id}", response_model=TableResponse)
async def set_rule(table_id: str, scryfall_id: str, rule: ManaRuleModel) -> TableResponse:
    """Attach a custom production rule to a card identity."""
    table = _get_table(table_id)
    table.set_rule(scryfall_id, rule.to_engine())
    return _table_response(table)


@router.delete("/{table_id}/rules/{scryfall_id}", response_model=TableResponse)
async def delete_rule(table_id: str, scryfall_id: str) -> TableResponse:
    """Remove a custom rule."""
    table = _get_table(table_id)
    if not table.remove_rule(scryfall_id):
        raise HTTPException(status_code=404, detail="Rule not found")
    return _table_response(table)


@router.get("/{table_id}/mana/{player_id}", response_model=ManaAvailabilityResponse)
async def get_mana(table_id: str, player_id: str) -> ManaAvailabilityResponse:
    """Available, potential and floating mana for a player."""
    table = _get_table(table_id)
    _require_player(table, player_id)
    return ManaAvailabilityResponse.from_engine(
        table.evaluate(player_id),
        floating=table.get_floating(player_id),
    )


@router.post("/{table_id}/cast", response_model=AutoTapResponse)
async def cast(table_id: str, request: CastRequest) -> AutoTapResponse:
    """
    Pay a cost by auto-tapping.

    An unpayable cost is reported with success=false and leaves the table
    untouched.
    """
    table = _get_table(table_id)
    _require_player(table, request.player_id)
    result = table.cast(
        request.player_id,
        request.cost,
        x_value=request.x_value,
        alternatives=tuple(request.alternatives),
    )
    message = "" if result.success else "Not enough mana"
    return AutoTapResponse.from_engine(result, message=message)


@router.post("/{table_id}/tap", response_model=ActionResultResponse)
async def tap(table_id: str, request: TapRequest) -> ActionResultResponse:
    """Tap one permanent for mana and float it."""
    table = _get_table(table_id)
    _require_player(table, request.player_id)
    chosen = ManaColor(request.chosen_color.value) if request.chosen_color else None
    try:
        floating = table.tap_for_mana(request.player_id, request.object_id, chosen)
    except TableActionError as e:
        return ActionResultResponse(
            success=False,
            message=str(e),
            floating=table.get_floating(request.player_id).to_dict(),
        )
    return ActionResultResponse(success=True, floating=floating.to_dict(), undo_type="TAP_CARD")


@router.post("/{table_id}/untap/{player_id}", response_model=ActionResultResponse)
async def untap_all(table_id: str, player_id: str) -> ActionResultResponse:
    """Untap everything a player controls."""
    table = _get_table(table_id)
    _require_player(table, player_id)
    count = table.untap_all(player_id)
    return ActionResultResponse(
        success=True,
        message=f"Untapped {count} permanent(s)",
        floating=table.get_floating(player_id).to_dict(),
        undo_type="UNTAP_ALL" if count else None,
    )


@router.post("/{table_id}/undo", response_model=ActionResultResponse)
async def undo(table_id: str) -> ActionResultResponse:
    """Revert the most recent tap, untap or cast."""
    table = _get_table(table_id)
    action = table.undo()
    if action is None:
        return ActionResultResponse(success=False, message="Nothing to undo")
    return ActionResultResponse(success=True, message=f"Undid {action.type}", undo_type=action.type)
