"""Runtime service wiring for flow execution."""

import os
from typing import Optional
from services.runtime.engine.executor import FlowExecutor
from services.runtime.infra.http_client import RequestsHttpClient
from shared.constants import DEFAULT_HTTP_TIMEOUT_SECONDS, DEFAULT_MAX_STEPS, DEFAULT_PACING_MS


def create_executor(pacing_ms: Optional[float] = None) -> FlowExecutor:
    """Builds an executor configured from FLOW_* environment variables"""
    if pacing_ms is None:
        pacing_ms = float(os.getenv("FLOW_PACING_MS", DEFAULT_PACING_MS))

    return FlowExecutor(
        http_client=RequestsHttpClient(
            timeout=float(os.getenv("FLOW_HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS))
        ),
        pacing_ms=pacing_ms,
        max_steps=int(os.getenv("FLOW_MAX_STEPS", DEFAULT_MAX_STEPS)),
    )
