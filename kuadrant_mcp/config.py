"""Configuration constants for the Kuadrant MCP server.

All values are overridable via environment variables so that the same
image can be used across dev / staging / prod without code changes.
Transport settings can additionally be overridden on the command line
(see :func:`kuadrant_mcp.mcp_server.main`).
"""

import os


# ---------------------------------------------------------------------------
# Documentation cache
# ---------------------------------------------------------------------------

#: Seconds a fetched document stays fresh before the next read refetches it.
DOC_CACHE_TTL_SECONDS: float = float(os.getenv("DOC_CACHE_TTL_SECONDS", "900"))

#: Upper bound on a single remote documentation fetch.
DOC_FETCH_TIMEOUT_SECONDS: float = float(
    os.getenv("DOC_FETCH_TIMEOUT_SECONDS", "30")
)

# ---------------------------------------------------------------------------
# Documentation sources
# ---------------------------------------------------------------------------

#: Root of the raw markdown sources.  Each repository (kuadrant-operator,
#: authorino, ...) is resolved underneath it.
KUADRANT_DOCS_BASE_URL: str = os.getenv(
    "KUADRANT_DOCS_BASE_URL", "https://raw.githubusercontent.com/Kuadrant"
).rstrip("/")

#: Git branch the raw sources are read from.
DOCS_BRANCH: str = os.getenv("DOCS_BRANCH", "main")

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

MCP_TRANSPORT: str = os.getenv("MCP_TRANSPORT", "stdio")
MCP_HOST: str = os.getenv("MCP_HOST", "0.0.0.0")
MCP_PORT: int = int(os.getenv("MCP_PORT", os.getenv("PORT", "8080")))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
