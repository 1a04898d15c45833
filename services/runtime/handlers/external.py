"""External call node handlers."""

import logging
from typing import Dict, Optional
from services.runtime.handlers.registry import NodeInvocation, Transition, register_node
from shared.constants import DEFAULT_REQUEST_HEADERS, METHODS_WITHOUT_BODY
from shared.types import LogStatus, NodeType


def build_request_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Node headers override the JSON defaults"""
    merged = dict(DEFAULT_REQUEST_HEADERS)
    merged.update(headers or {})
    return merged


@register_node(NodeType.API)
async def api_handler(invocation: NodeInvocation) -> Transition:
    node = invocation.node
    api_config = node.data.api_config
    if api_config is None:
        return Transition()

    method = api_config.method
    url = api_config.url
    body = None if method in METHODS_WITHOUT_BODY else api_config.body

    invocation.emit(f"Calling API: {method} {url}", LogStatus.INFO)
    logging.info("Calling API", extra={"node_id": node.id, "method": method, "url": url})

    response = await invocation.http_client.request(
        method,
        url,
        build_request_headers(api_config.headers),
        body
    )

    invocation.context.responses[node.id] = response
    invocation.emit("API Response received", LogStatus.SUCCESS)
    return Transition()
