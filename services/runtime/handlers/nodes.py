"""Control and logic node handlers."""

from services.runtime.engine.expressions import evaluate, execute
from services.runtime.handlers.registry import NodeInvocation, Transition, register_node
from shared.constants import FALSE_PORT, RESPONSES_KEY, TRUE_PORT
from shared.types import LogStatus, NodeType

READONLY_NAMES = frozenset({RESPONSES_KEY})


@register_node(NodeType.START, NodeType.TASK)
async def passthrough_handler(invocation: NodeInvocation) -> Transition:
    return Transition()


@register_node(NodeType.SCRIPT)
async def script_handler(invocation: NodeInvocation) -> Transition:
    script = invocation.node.data.script
    if script and script.strip():
        execute(script, invocation.context.variables, READONLY_NAMES)
    return Transition()


@register_node(NodeType.DECISION)
async def decision_handler(invocation: NodeInvocation) -> Transition:
    condition = invocation.node.data.condition
    result = False
    if condition and condition.strip():
        result = bool(evaluate(condition, invocation.context.variables, READONLY_NAMES))

    port = TRUE_PORT if result else FALSE_PORT
    invocation.emit(f"Condition evaluated to: {port}", LogStatus.INFO)
    return Transition(port=port)


@register_node(NodeType.END)
async def end_handler(invocation: NodeInvocation) -> Transition:
    return Transition(terminal=True)
