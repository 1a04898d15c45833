"""Flow API routes."""

import os
from fastapi import APIRouter, HTTPException, status
from services.api.domain.models import RunFlowRequest, ValidateFlowResponse
from services.editor.domain.validation import has_errors, validate_flow
from services.runtime.main import create_executor
from shared.types import Flow, RunOutcome, RunResult


router = APIRouter()
executor = create_executor(pacing_ms=float(os.getenv("FLOW_API_PACING_MS", 0)))


@router.post("/flows/validate", response_model=ValidateFlowResponse)
async def validate(flow: Flow):
    diagnostics = validate_flow(flow)
    return ValidateFlowResponse(valid=not has_errors(diagnostics), diagnostics=diagnostics)


@router.post("/flows/run", response_model=RunResult)
async def run_flow(request: RunFlowRequest, strict: bool = False):
    if strict:
        diagnostics = validate_flow(request.flow)
        if has_errors(diagnostics):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=[d.model_dump(mode="json") for d in diagnostics]
            )

    result = await executor.run(request.flow, request.variables)

    if result.outcome == RunOutcome.REJECTED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A flow is already running. Try again when it finishes."
        )

    return result
