"""Shared utilities."""

import json
import uuid
from typing import Any, Dict
from pydantic import ValidationError
from shared.exceptions import FlowDocumentError
from shared.types import Flow


def generate_run_id(flow_id: str) -> str:
    return f"{flow_id}:{uuid.uuid4().hex[:12]}"


def flow_to_dict(flow: Flow) -> Dict[str, Any]:
    """Wire form of a flow: camelCase keys, absent optionals omitted"""
    return flow.model_dump(mode="json", by_alias=True, exclude_none=True)


def flow_from_dict(data: Dict[str, Any]) -> Flow:
    try:
        return Flow.model_validate(data)
    except ValidationError as e:
        raise FlowDocumentError(f"Invalid flow document: {e.error_count()} error(s)", errors=e.errors())


def flow_to_json(flow: Flow, indent: int = 2) -> str:
    return json.dumps(flow_to_dict(flow), indent=indent, ensure_ascii=False)


def flow_from_json(text: str) -> Flow:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise FlowDocumentError(f"Flow document is not valid JSON: {e.msg}", line=e.lineno, column=e.colno)

    if not isinstance(data, dict):
        raise FlowDocumentError("Flow document must be a JSON object")
    return flow_from_dict(data)
