"""JSON process logging tagged with the current run and node."""

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional, Union
from pythonjsonlogger import jsonlogger

correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='')
node_id_var: ContextVar[str] = ContextVar('node_id', default='')

LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(correlation_id)s %(node_id)s %(message)s'


class FlowContextFilter(logging.Filter):
    """Stamps records with the correlation id and the node being executed"""

    def filter(self, record):
        record.correlation_id = correlation_id_var.get('')
        # Explicit extra={"node_id": ...} wins over the bound node
        if not getattr(record, 'node_id', None):
            record.node_id = node_id_var.get('')
        return True


def setup_logging(service_name: str, level: Optional[Union[int, str]] = None) -> None:
    """Routes the root logger to stdout as JSON; level defaults to FLOW_LOG_LEVEL"""
    if level is None:
        level = os.getenv('FLOW_LOG_LEVEL', 'INFO').upper()

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers = []

    json_handler = logging.StreamHandler(sys.stdout)
    json_handler.setFormatter(jsonlogger.JsonFormatter(
        LOG_FORMAT,
        rename_fields={
            'asctime': 'timestamp',
            'name': 'logger',
            'levelname': 'level',
        }
    ))
    json_handler.addFilter(FlowContextFilter())
    logger.addHandler(json_handler)
    logging.info(f"{service_name} logging configured", extra={"service": service_name})


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    return correlation_id_var.get('')


@contextmanager
def bind_correlation_id(correlation_id: str) -> Iterator[None]:
    """Sets the correlation id for the block and restores the previous one"""
    token = correlation_id_var.set(correlation_id)
    try:
        yield
    finally:
        correlation_id_var.reset(token)


@contextmanager
def bind_node(node_id: str) -> Iterator[None]:
    """Tags process logs emitted inside the block with node_id"""
    token = node_id_var.set(node_id)
    try:
        yield
    finally:
        node_id_var.reset(token)
