"""
Rehab program router.

- Latest plan of a program
- Full progression chain, oldest first
- Streaks and the weekly summary
"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_engine
from api.errors import to_http_exception
from application.exceptions import RehabEngineError
from models.rehab import ProgramAdherence, RehabPlan
from services.rehab_engine import RehabEngine

router = APIRouter(
    prefix="/rehab/programs",
    tags=["Rehab Programs"],
)


@router.get("/{program_id}/plans/latest", response_model=Optional[RehabPlan])
async def get_latest_plan(
    program_id: str,
    user_id: str = Depends(get_current_user),
    engine: RehabEngine = Depends(get_engine),
):
    """
    Get the most recent plan of a program.

    Returns:
        The latest plan by generation time, or null if none exists yet
    """
    try:
        return await engine.get_latest_plan(program_id, user_id)
    except RehabEngineError as e:
        raise to_http_exception(e)


@router.get("/{program_id}/plans", response_model=List[RehabPlan])
async def get_plan_chain(
    program_id: str,
    user_id: str = Depends(get_current_user),
    engine: RehabEngine = Depends(get_engine),
):
    """Get the progression chain of a program, oldest first."""
    try:
        return await engine.get_plan_chain(program_id, user_id)
    except RehabEngineError as e:
        raise to_http_exception(e)


@router.get("/{program_id}/adherence", response_model=ProgramAdherence)
async def get_program_adherence(
    program_id: str,
    user_id: str = Depends(get_current_user),
    engine: RehabEngine = Depends(get_engine),
):
    """
    Get streak counters and the weekly summary.

    The summary is regenerated at most once per summary period.
    """
    try:
        return await engine.get_program_adherence(program_id, user_id)
    except RehabEngineError as e:
        raise to_http_exception(e)
