"""
Onboarding router.

- Evaluate onboarding answers without persisting them
- Submit onboarding, which starts a rehab program when suggested
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_engine, get_today
from api.errors import to_http_exception
from application.exceptions import RehabEngineError
from models.onboarding import OnboardingInput, Suggestion
from models.rehab import OnboardingResult
from services.rehab_engine import RehabEngine

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/onboarding",
    tags=["Onboarding"],
)


@router.post("/evaluate", response_model=Suggestion)
def evaluate_onboarding(
    request: OnboardingInput,
    user_id: str = Depends(get_current_user),
    engine: RehabEngine = Depends(get_engine),
):
    """
    Suggest rehab or maintenance mode for onboarding answers.

    Deterministic and side-effect free.
    """
    return engine.evaluate_onboarding(request)


@router.post("", response_model=OnboardingResult, status_code=201)
async def submit_onboarding(
    request: OnboardingInput,
    user_id: str = Depends(get_current_user),
    today: date = Depends(get_today),
    engine: RehabEngine = Depends(get_engine),
):
    """
    Persist onboarding answers.

    For a rehab suggestion this also creates (or reuses) the active
    program, records the baseline log and returns the initial plan.

    Raises:
        HTTPException 409: If a concurrent onboarding conflicted (retryable)
    """
    logger.info(f"Onboarding submission: user={user_id}, area={request.area.value}")
    try:
        return await engine.submit_onboarding(user_id, request, today)
    except RehabEngineError as e:
        raise to_http_exception(e)
