"""
Onboarding API Endpoints.

Hosts one wizard engine per onboarding session so a browser UI can drive it.
Sessions are identified by the X-Onboarding-Session header; drafts are
namespaced per session so a reload (or a server restart, with the file
backend) resumes where the member left off.
"""

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from .config import get_settings
from .engine import CompletionHandler, FormEngine
from .errors import OnboardingError, StepOutOfRangeError, WizardBusyError, WizardCompleteError
from .options import get_all_options
from .payload import build_completion_payload
from .persistence import build_persistence
from .state import FormData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

# Simple in-memory engine registry (one wizard per session)
engines: dict[str, FormEngine] = {}


# =============================================================================
# Dependencies
# =============================================================================


async def log_completion(data: FormData) -> None:
    """Default completion handler: hosts override get_completion_handler."""
    payload = build_completion_payload(data)
    logger.info(f"Onboarding completed for {payload.display_name or 'unnamed member'}")


def get_completion_handler() -> CompletionHandler:
    return log_completion


def get_session_id(x_onboarding_session: str | None = Header(None)) -> str:
    if not x_onboarding_session:
        raise HTTPException(status_code=400, detail="Missing X-Onboarding-Session header")
    return x_onboarding_session


def _create_engine(
    session_id: str,
    handler: CompletionHandler,
    overrides: dict[str, Any] | None = None,
) -> FormEngine:
    namespace = f"{get_settings().storage_namespace}:{session_id}"
    engine = FormEngine(
        persistence=build_persistence(namespace),
        completion_handler=handler,
        overrides=overrides,
    )
    engines[session_id] = engine
    return engine


def get_engine(
    session_id: str = Depends(get_session_id),
    handler: CompletionHandler = Depends(get_completion_handler),
) -> FormEngine:
    """Load the session's engine, creating it (and resuming its draft) if needed."""
    engine = engines.get(session_id)
    if engine is None:
        engine = _create_engine(session_id, handler)
    return engine


@contextmanager
def intent_errors():
    """Map engine misuse to HTTP errors."""
    try:
        yield
    except (WizardBusyError, WizardCompleteError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (StepOutOfRangeError, TypeError) as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# Request/Response Models
# =============================================================================


class StartRequest(BaseModel):
    """Identity-derived starting values (e.g. from Google sign-in)."""
    first_name: str | None = None
    last_name: str | None = None
    avatar_url: str | None = None


class FieldsRequest(BaseModel):
    fields: dict[str, Any] = Field(default_factory=dict)


class StateResponse(BaseModel):
    """Current wizard state plus the derived values a UI renders."""
    current_step_id: int
    step_key: str
    step_title: str
    data: dict[str, Any]
    errors: dict[str, str]
    step_errors: dict[str, str]
    submitting: bool
    complete: bool
    visible_step_number: int
    total_visible_steps: int
    is_first_step: bool
    is_last_step: bool
    can_go_back: bool
    can_advance: bool
    can_submit: bool


class IntentResponse(BaseModel):
    success: bool
    state: StateResponse


class StepSummary(BaseModel):
    id: int
    key: str
    title: str
    fields: list[str]
    visible: bool


def state_response(engine: FormEngine) -> StateResponse:
    view = engine.step_view()
    return StateResponse(
        current_step_id=engine.current_step_id,
        step_key=view.key,
        step_title=view.title,
        data=engine.data,
        errors=engine.errors,
        step_errors=view.errors,
        submitting=engine.submitting,
        complete=engine.complete,
        visible_step_number=engine.visible_step_number,
        total_visible_steps=engine.total_visible_steps,
        is_first_step=engine.is_first_step,
        is_last_step=engine.is_last_step,
        can_go_back=engine.can_go_back,
        can_advance=engine.can_advance,
        can_submit=engine.can_submit,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/start", response_model=StateResponse)
async def start_onboarding(
    request: StartRequest,
    session_id: str = Depends(get_session_id),
    handler: CompletionHandler = Depends(get_completion_handler),
) -> StateResponse:
    """Start (or resume) a wizard with identity-derived values applied."""
    engine = _create_engine(session_id, handler, request.model_dump(exclude_none=True))
    return state_response(engine)


@router.get("/state", response_model=StateResponse)
async def get_state(engine: FormEngine = Depends(get_engine)) -> StateResponse:
    return state_response(engine)


@router.get("/steps", response_model=list[StepSummary])
async def list_steps(engine: FormEngine = Depends(get_engine)) -> list[StepSummary]:
    """All step slots with their visibility for the current answers."""
    data = engine.data
    return [
        StepSummary(
            id=step.id,
            key=step.key,
            title=step.title,
            fields=list(step.field_names),
            visible=engine.schema.is_visible(step.id, data),
        )
        for step in engine.schema
    ]


@router.get("/options")
async def get_options():
    """Option lists for every select field."""
    return get_all_options()


@router.patch("/fields", response_model=StateResponse)
async def update_fields(
    request: FieldsRequest,
    engine: FormEngine = Depends(get_engine),
) -> StateResponse:
    with intent_errors():
        engine.update_fields(request.fields)
    return state_response(engine)


@router.post("/advance", response_model=IntentResponse)
async def advance(engine: FormEngine = Depends(get_engine)) -> IntentResponse:
    with intent_errors():
        success = engine.advance()
    return IntentResponse(success=success, state=state_response(engine))


@router.post("/retreat", response_model=IntentResponse)
async def retreat(engine: FormEngine = Depends(get_engine)) -> IntentResponse:
    with intent_errors():
        engine.retreat()
    return IntentResponse(success=True, state=state_response(engine))


@router.post("/submit", response_model=IntentResponse)
async def submit(
    session_id: str = Depends(get_session_id),
    engine: FormEngine = Depends(get_engine),
) -> IntentResponse:
    """
    Validate and complete. Handler failures leave the draft for a retry.

    A completed session's engine is dropped from the registry; its draft is
    already cleared, so the next request for the session starts fresh.
    """
    with intent_errors():
        try:
            success = await engine.submit()
        except OnboardingError:
            raise
        except Exception as e:
            logger.error(f"Onboarding completion handler failed: {e}")
            raise HTTPException(status_code=502, detail="Failed to complete onboarding")
    if success:
        engines.pop(session_id, None)
    return IntentResponse(success=success, state=state_response(engine))


@router.delete("/draft", response_model=StateResponse)
async def discard_draft(engine: FormEngine = Depends(get_engine)) -> StateResponse:
    """Throw away the draft and start over."""
    with intent_errors():
        engine.reset()
    return state_response(engine)


def create_app() -> FastAPI:
    """Standalone app serving the onboarding router."""
    app = FastAPI(title="Onboarding", version="1.0.0")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    app.include_router(router)
    return app
