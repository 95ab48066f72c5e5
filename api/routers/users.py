"""
User router.

Switching away from rehab mode pauses the user's active programs.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_engine
from api.errors import to_http_exception
from application.exceptions import RehabEngineError
from models.rehab import ModeSwitchRequest, ModeSwitchResult
from services.rehab_engine import RehabEngine

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


@router.put("/me/mode", response_model=ModeSwitchResult)
async def switch_mode(
    request: ModeSwitchRequest,
    user_id: str = Depends(get_current_user),
    engine: RehabEngine = Depends(get_engine),
):
    """
    Switch the app mode of the current user.

    Raises:
        HTTPException 422: If the mode is disabled or already active
    """
    logger.info(f"Mode switch request: user={user_id}, mode={request.mode.value}")
    try:
        return await engine.switch_mode(user_id, request.mode)
    except RehabEngineError as e:
        raise to_http_exception(e)
