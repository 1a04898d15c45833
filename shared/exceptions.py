"""Structured exception hierarchy for the flow runtime."""

from typing import Optional


class FlowError(Exception):
    """Base exception for flow errors"""

    def __init__(self, message: str, node_id: str = "", **context):
        self.message = message
        self.node_id = node_id
        self.context = context
        super().__init__(message)


class NodeExecutionError(FlowError):
    pass


class ExpressionError(NodeExecutionError):
    pass


class ExpressionSyntaxError(ExpressionError):

    def __init__(self, message: str, column: Optional[int] = None, **context):
        self.column = column
        if column is not None:
            message = f"{message} (column {column})"
        super().__init__(message, **context)


class HttpCallError(NodeExecutionError):

    def __init__(self, message: str, status_code: Optional[int] = None, **context):
        self.status_code = status_code
        super().__init__(message, **context)


class StepBudgetExceededError(FlowError):
    pass


class FlowDocumentError(FlowError):
    pass
