"""Node handler registry keyed by node type."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional
from services.runtime.infra.http_client import HttpClient
from shared.constants import RESPONSES_KEY
from shared.types import FlowNode, LogStatus, NodeType


class ExecutionContext:
    """Mutable per-run store; `responses` maps API node ids to parsed bodies"""

    def __init__(self, variables: Optional[Dict[str, Any]] = None):
        self.variables: Dict[str, Any] = dict(variables or {})
        self.variables[RESPONSES_KEY] = {}

    @property
    def responses(self) -> Dict[str, Any]:
        return self.variables[RESPONSES_KEY]


@dataclass
class Transition:
    """What the executor does after a node: stop, or follow an outgoing connection"""
    port: Optional[str] = None
    terminal: bool = False


@dataclass
class NodeInvocation:
    node: FlowNode
    context: ExecutionContext
    http_client: HttpClient
    emit: Callable[[str, LogStatus], None]


NodeHandler = Callable[[NodeInvocation], Awaitable[Transition]]
_node_registry: Dict[NodeType, NodeHandler] = {}


def register_node(*node_types: NodeType):
    def decorator(func: NodeHandler):
        for node_type in node_types:
            _node_registry[node_type] = func
        return func
    return decorator


def get_node_handler(node_type: NodeType) -> NodeHandler:
    if node_type not in _node_registry:
        raise ValueError(f"Unknown node type: {node_type}")
    return _node_registry[node_type]


def list_node_types() -> List[NodeType]:
    return list(_node_registry.keys())
