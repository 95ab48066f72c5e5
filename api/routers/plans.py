"""
Rehab plan router.

Plans are immutable; they are only created (from a log or an onboarding
profile) and read.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_engine
from api.errors import to_http_exception
from application.exceptions import RehabEngineError
from models.rehab import GeneratePlanRequest, RehabPlan
from services.rehab_engine import RehabEngine

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rehab/plans",
    tags=["Rehab Plans"],
)


@router.post("/generate", response_model=RehabPlan, status_code=201)
async def generate_plan(
    request: GeneratePlanRequest,
    user_id: str = Depends(get_current_user),
    engine: RehabEngine = Depends(get_engine),
):
    """
    Generate a plan for a log or an onboarding profile.

    A plan is returned even when AI augmentation fails or times out; its
    ``plan_type`` is then ``fallback``.

    Raises:
        HTTPException 404: If the log or profile does not exist
        HTTPException 409: If the log already has a plan (retryable)
        HTTPException 422: Unless exactly one of log_id or
            onboarding_profile_id is given
    """
    logger.info(
        f"Generate plan request: log={request.log_id}, "
        f"profile={request.onboarding_profile_id}"
    )
    try:
        return await engine.generate_plan(
            log_id=request.log_id,
            onboarding_profile_id=request.onboarding_profile_id,
            user_id=user_id,
        )
    except RehabEngineError as e:
        raise to_http_exception(e)


@router.get("/{plan_id}", response_model=RehabPlan)
async def get_plan(
    plan_id: str,
    user_id: str = Depends(get_current_user),
    engine: RehabEngine = Depends(get_engine),
):
    try:
        return await engine.get_plan(plan_id, user_id)
    except RehabEngineError as e:
        raise to_http_exception(e)
