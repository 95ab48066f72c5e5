"""
Rehab log router.

- Record a daily symptom log (generates the next plan)
- Update the notes of a log
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_engine, get_today
from api.errors import to_http_exception
from application.exceptions import RehabEngineError
from models.rehab import RehabLog, RehabLogCreate, RehabLogNotesUpdate, RehabLogResult
from services.rehab_engine import RehabEngine

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rehab/logs",
    tags=["Rehab Logs"],
)


@router.post("", response_model=RehabLogResult, status_code=201)
async def create_log(
    request: RehabLogCreate,
    user_id: str = Depends(get_current_user),
    today: date = Depends(get_today),
    engine: RehabEngine = Depends(get_engine),
):
    """
    Record a symptom log and return it with its plan and adherence.

    Without ``log_date`` the log is dated today in the caller's timezone
    (X-Timezone header).

    Raises:
        HTTPException 404: If the program does not exist
        HTTPException 409: If a log already exists for that date
        HTTPException 422: If the program is not active or the date is in
            the future
    """
    try:
        return await engine.record_log(user_id, request, today)
    except RehabEngineError as e:
        raise to_http_exception(e)


@router.patch("/{log_id}", response_model=RehabLog)
async def update_log_notes(
    log_id: str,
    request: RehabLogNotesUpdate,
    user_id: str = Depends(get_current_user),
    engine: RehabEngine = Depends(get_engine),
):
    """Update the notes of a log. Symptom scores are immutable."""
    try:
        return await engine.update_log_notes(user_id, log_id, request.notes)
    except RehabEngineError as e:
        raise to_http_exception(e)
