"""Structural validation of flow graphs."""

from typing import List, Set
from shared.types import Diagnostic, Flow, NodeType, Severity


def validate_flow(flow: Flow) -> List[Diagnostic]:
    """Returns advisory diagnostics in rule order, then node order"""
    diagnostics: List[Diagnostic] = []

    start_count = sum(1 for node in flow.nodes if node.type == NodeType.START)
    if start_count == 0:
        diagnostics.append(Diagnostic(message="Flow must have a Start node.", severity=Severity.ERROR))
    elif start_count > 1:
        diagnostics.append(Diagnostic(message="Flow can only have one Start node.", severity=Severity.ERROR))

    if not any(node.type == NodeType.END for node in flow.nodes):
        diagnostics.append(Diagnostic(message="Flow should have at least one End node.", severity=Severity.WARNING))

    targets: Set[str] = {c.target for c in flow.connections}
    sources: Set[str] = {c.source for c in flow.connections}

    for node in flow.nodes:
        if node.type != NodeType.START and node.id not in targets:
            diagnostics.append(Diagnostic(
                node_id=node.id,
                message=f'Node "{node.data.label}" is not reachable.',
                severity=Severity.WARNING
            ))

        if node.type != NodeType.END and node.id not in sources:
            diagnostics.append(Diagnostic(
                node_id=node.id,
                message=f'Node "{node.data.label}" has no output.',
                severity=Severity.WARNING
            ))

    return diagnostics


def has_errors(diagnostics: List[Diagnostic]) -> bool:
    return any(d.severity == Severity.ERROR for d in diagnostics)
