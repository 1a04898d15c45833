"""Sequential flow executor."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
from services.runtime.engine.events import ActiveNodeSignal, Channel
from services.runtime.handlers.registry import ExecutionContext, NodeInvocation, get_node_handler
from services.runtime.infra.http_client import HttpClient, RequestsHttpClient
from shared.constants import DEFAULT_MAX_STEPS, DEFAULT_PACING_MS, SYSTEM_NODE_ID, SYSTEM_NODE_LABEL
from shared.exceptions import FlowError, NodeExecutionError, StepBudgetExceededError
from shared.logging_config import bind_correlation_id, bind_node
from shared.types import (
    ExecutionLog,
    Flow,
    FlowConnection,
    FlowNode,
    LogStatus,
    NodeType,
    RunOutcome,
    RunResult,
)
from shared.utils import generate_run_id
import services.runtime.handlers.nodes
import services.runtime.handlers.external


def find_start_node(flow: Flow) -> Optional[FlowNode]:
    return next((n for n in flow.nodes if n.type == NodeType.START), None)


def find_next_connection(flow: Flow, node_id: str, port: Optional[str] = None) -> Optional[FlowConnection]:
    """First connection leaving node_id; with a port, only connections tagged with it"""
    for connection in flow.connections:
        if connection.source != node_id:
            continue
        if port is None or connection.source_port == port:
            return connection
    return None


class FlowExecutor:
    """
    Walks a flow from its START node, one node at a time.

    Progress is published on two channels: `logs` receives every ExecutionLog
    and `active_node` tracks the node being executed. At most one run is in
    flight per executor; a run requested while another holds the lock is
    rejected without executing anything.
    """

    def __init__(
        self,
        http_client: Optional[HttpClient] = None,
        pacing_ms: float = DEFAULT_PACING_MS,
        max_steps: int = DEFAULT_MAX_STEPS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.http_client = http_client or RequestsHttpClient()
        self.pacing_ms = pacing_ms
        self.max_steps = max_steps
        self.sleep = sleep
        self.logs: Channel[ExecutionLog] = Channel("execution_logs")
        self.active_node = ActiveNodeSignal()
        self._run_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    async def run(self, flow: Flow, variables: Optional[Dict[str, Any]] = None) -> RunResult:
        if self._run_lock.locked():
            logging.warning("Run rejected, another run is in progress", extra={"flow_id": flow.id})
            return RunResult(run_id="", outcome=RunOutcome.REJECTED)

        run_id = generate_run_id(flow.id)
        async with self._run_lock:
            with bind_correlation_id(run_id):
                records: List[ExecutionLog] = []

                try:
                    outcome, steps = await self._traverse(flow, variables or {}, records)
                finally:
                    self.active_node.set(None)

                logging.info("Run finished", extra={"flow_id": flow.id, "outcome": outcome.value, "steps": steps})
            return RunResult(run_id=run_id, outcome=outcome, steps=steps, logs=records)

    async def _traverse(self, flow: Flow, variables: Dict[str, Any], records: List[ExecutionLog]):
        def emit(node_id: str, label: str, message: str, status: LogStatus) -> None:
            entry = ExecutionLog(node_id=node_id, node_label=label, message=message, status=status)
            records.append(entry)
            self.logs.publish(entry)

        def system(message: str, status: LogStatus) -> None:
            emit(SYSTEM_NODE_ID, SYSTEM_NODE_LABEL, message, status)

        start = find_start_node(flow)
        if start is None:
            system("No Start node found in flow", LogStatus.ERROR)
            return RunOutcome.ABORTED, 0

        logging.info("Starting flow run", extra={"flow_id": flow.id, "node_count": len(flow.nodes)})
        system("Starting execution", LogStatus.INFO)

        nodes_by_id = {}
        for node in flow.nodes:
            nodes_by_id.setdefault(node.id, node)

        context = ExecutionContext(variables)
        current = start
        steps = 0

        while True:
            node = current

            def node_emit(message: str, status: LogStatus) -> None:
                emit(node.id, node.data.label, message, status)

            try:
                if steps >= self.max_steps:
                    raise StepBudgetExceededError(
                        f"Step budget of {self.max_steps} exceeded; the flow may contain a cycle",
                        node_id=node.id
                    )
                steps += 1

                self.active_node.set(node.id)
                node_emit(f"Executing {node.type.value}", LogStatus.INFO)
                logging.info("Executing node", extra={"node_id": node.id, "node_type": node.type.value})

                invocation = NodeInvocation(
                    node=node,
                    context=context,
                    http_client=self.http_client,
                    emit=node_emit,
                )
                with bind_node(node.id):
                    transition = await get_node_handler(node.type)(invocation)

            except FlowError as e:
                logging.error("Node failed", extra={"node_id": node.id, "error": e.message})
                node_emit(f"Error: {e.message}", LogStatus.ERROR)
                return RunOutcome.ABORTED, steps

            except Exception as e:
                # Unexpected handler faults end the run the same way as node errors
                error = NodeExecutionError(str(e) or type(e).__name__, node_id=node.id)
                logging.exception("Node raised unexpectedly", extra={"node_id": node.id})
                node_emit(f"Error: {error.message}", LogStatus.ERROR)
                return RunOutcome.ABORTED, steps

            if transition.terminal:
                node_emit("Flow finished successfully", LogStatus.SUCCESS)
                return RunOutcome.SUCCESS, steps

            connection = find_next_connection(flow, node.id, transition.port)
            if connection is None:
                if transition.port is not None:
                    node_emit(f'No connection for port "{transition.port}"', LogStatus.WARNING)
                else:
                    node_emit("Flow stopped (no more connections)", LogStatus.WARNING)
                return RunOutcome.STOPPED, steps

            next_node = nodes_by_id.get(connection.target)
            if next_node is None:
                system(
                    f'Connection "{connection.id}" targets missing node "{connection.target}"',
                    LogStatus.WARNING
                )
                return RunOutcome.STOPPED, steps

            await self._pause()
            current = next_node

    async def _pause(self) -> None:
        if self.pacing_ms > 0:
            await self.sleep(self.pacing_ms / 1000)
