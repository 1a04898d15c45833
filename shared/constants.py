"""Centralized constants"""

# Pacing between node executions (visualization only)
DEFAULT_PACING_MS = 800

# Step budget per run; bounds traversal of cyclic flows
DEFAULT_MAX_STEPS = 1000

# HTTP
DEFAULT_HTTP_TIMEOUT_SECONDS = 30
DEFAULT_REQUEST_HEADERS = {"Content-Type": "application/json"}
METHODS_WITHOUT_BODY = {"GET"}

# Execution log identity for entries not tied to a node
SYSTEM_NODE_ID = "system"
SYSTEM_NODE_LABEL = "System"

# Context key holding parsed API responses by node id
RESPONSES_KEY = "responses"

# Decision ports
TRUE_PORT = "true"
FALSE_PORT = "false"

# Expression limits
MAX_EXPRESSION_LENGTH = 10 * 1024   # 10KB
