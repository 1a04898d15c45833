"""API request/response models."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List
from shared.types import Diagnostic, Flow


class ValidateFlowResponse(BaseModel):
    valid: bool
    diagnostics: List[Diagnostic]


class RunFlowRequest(BaseModel):
    """Flow to run plus optional seed variables for its context"""
    flow: Flow
    variables: Dict[str, Any] = Field(default_factory=dict)
