"""Shared types for the editor, runtime and API services."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from shared.constants import SYSTEM_NODE_ID, SYSTEM_NODE_LABEL


class NodeType(str, Enum):
    START = "START"
    TASK = "TASK"
    DECISION = "DECISION"
    SCRIPT = "SCRIPT"
    API = "API"
    END = "END"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class LogStatus(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class RunOutcome(str, Enum):
    SUCCESS = "success"
    STOPPED = "stopped"
    ABORTED = "aborted"
    REJECTED = "rejected"


class Position(BaseModel):
    x: float
    y: float


class ApiConfig(BaseModel):
    url: str
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    headers: Optional[Dict[str, str]] = None
    body: Optional[str] = None


class NodeData(BaseModel):
    """Type-tagged payload; fields only matter for their node type"""
    model_config = ConfigDict(populate_by_name=True)

    label: str
    description: Optional[str] = None
    script: Optional[str] = None
    condition: Optional[str] = None
    api_config: Optional[ApiConfig] = Field(default=None, alias="apiConfig")


class FlowNode(BaseModel):
    id: str
    type: NodeType
    position: Position = Field(default_factory=lambda: Position(x=0, y=0))
    data: NodeData


class FlowConnection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str
    target: str
    source_port: Optional[str] = Field(default=None, alias="sourcePort")


class Flow(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    nodes: List[FlowNode] = Field(default_factory=list)
    connections: List[FlowConnection] = Field(default_factory=list)


class Diagnostic(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    severity: Severity
    node_id: Optional[str] = None


class ExecutionLog(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    node_id: str = SYSTEM_NODE_ID
    node_label: str = SYSTEM_NODE_LABEL
    message: str
    status: LogStatus


class RunResult(BaseModel):
    run_id: str
    outcome: RunOutcome
    steps: int = 0
    logs: List[ExecutionLog] = Field(default_factory=list)
