"""Kuadrant documentation resources.

Each resource URI maps to a remote markdown source and a bundled fallback
document (``kuadrant_mcp/fallback/*.md``).  Reads go through the shared
:class:`~kuadrant_mcp.doc_cache.DocumentCache`, so the remote source is hit
at most once per TTL window per URL, and the fallback is served whenever the
source cannot be reached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, List

from fastmcp import FastMCP
from fastmcp.exceptions import ResourceError

from kuadrant_mcp.config import DOCS_BRANCH, KUADRANT_DOCS_BASE_URL
from kuadrant_mcp.doc_cache import DocumentCache, FetchFailed
from kuadrant_mcp.docs_processing import extract_key_content

logger = logging.getLogger(__name__)

MIME_TYPE = "text/markdown"

_FALLBACK_DIR = Path(__file__).parent / "fallback"


@dataclass(frozen=True)
class DocSource:
    url: str
    fallback: str
    name: str
    description: str
    translate_authconfig: bool = False


def _source_url(repo: str, path: str) -> str:
    return f"{KUADRANT_DOCS_BASE_URL}/{repo}/{DOCS_BRANCH}/{path}"


def _load_fallback(filename: str) -> str:
    return (_FALLBACK_DIR / filename).read_text(encoding="utf-8")


def _operator_doc(path: str, fallback: str, name: str, description: str) -> DocSource:
    return DocSource(
        url=_source_url("kuadrant-operator", path),
        fallback=_load_fallback(fallback),
        name=name,
        description=description,
    )


# ---------------------------------------------------------------------------
# URI -> source mapping
# ---------------------------------------------------------------------------

RESOURCES: Dict[str, DocSource] = {
    "kuadrant://docs/gateway-api": _operator_doc(
        "README.md",
        "gateway-api.md",
        "Gateway API Overview",
        "Overview of Gateway API and Kuadrant integration",
    ),
    "kuadrant://docs/dnspolicy": _operator_doc(
        "doc/reference/dnspolicy.md",
        "dnspolicy.md",
        "DNSPolicy Reference",
        "Complete DNSPolicy specification and examples",
    ),
    "kuadrant://docs/ratelimitpolicy": _operator_doc(
        "doc/reference/ratelimitpolicy.md",
        "ratelimitpolicy.md",
        "RateLimitPolicy Reference",
        "Complete RateLimitPolicy specification and examples",
    ),
    "kuadrant://docs/authpolicy": _operator_doc(
        "doc/reference/authpolicy.md",
        "authpolicy.md",
        "AuthPolicy Reference",
        "Complete AuthPolicy specification and examples",
    ),
    "kuadrant://docs/tlspolicy": _operator_doc(
        "doc/reference/tlspolicy.md",
        "tlspolicy.md",
        "TLSPolicy Reference",
        "Complete TLSPolicy specification and examples",
    ),
    "kuadrant://docs/tokenratelimitpolicy": _operator_doc(
        "doc/reference/tokenratelimitpolicy.md",
        "tokenratelimitpolicy.md",
        "TokenRateLimitPolicy Reference",
        "Token-based rate limiting for AI/LLM services",
    ),
    "kuadrant://docs/kuadrant": _operator_doc(
        "doc/reference/kuadrant.md",
        "kuadrant.md",
        "Kuadrant CR Reference",
        "Main Kuadrant custom resource configuration",
    ),
    "kuadrant://docs/authorino-features": DocSource(
        url=_source_url("authorino", "docs/features.md"),
        fallback=_load_fallback("authorino-features.md"),
        name="Authorino Features",
        description=(
            "Complete guide to Authorino authentication and authorization "
            "features"
        ),
        translate_authconfig=True,
    ),
    "kuadrant://docs/telemetrypolicy": _operator_doc(
        "doc/reference/telemetrypolicy.md",
        "telemetrypolicy.md",
        "TelemetryPolicy Reference",
        "Custom metrics labels for Gateway API resources",
    ),
    "kuadrant://docs/planpolicy": _operator_doc(
        "doc/reference/planpolicy.md",
        "planpolicy.md",
        "PlanPolicy Extension",
        "Plan-based rate limiting for tiered service offerings",
    ),
    "kuadrant://examples/basic-setup": _operator_doc(
        "doc/user-guides/ratelimiting/simple-rl-for-app-developers.md",
        "basic-setup.md",
        "Basic API Setup Example",
        "Complete example of basic API with rate limiting and auth",
    ),
    "kuadrant://examples/production-setup": _operator_doc(
        "doc/user-guides/full-walkthrough/secure-protect-connect.md",
        "production-setup.md",
        "Production API Setup Example",
        "Full production setup with TLS, DNS, and advanced policies",
    ),
    "kuadrant://troubleshooting": _operator_doc(
        "doc/troubleshooting.md",
        "troubleshooting.md",
        "Troubleshooting Guide",
        "Common issues and debugging techniques for Kuadrant",
    ),
}


def list_resources() -> List[str]:
    return sorted(RESOURCES)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def read_doc(cache: DocumentCache, uri: str, source: DocSource) -> str:
    """Serve one documentation resource through the cache.

    Raises :class:`ResourceError` when the source is unreachable and the
    resource has no fallback content.
    """
    logger.info("Resource requested: %s", uri)
    try:
        content = await cache.fetch(source.url, source.fallback)
    except FetchFailed as exc:
        logger.error("Resource %s unavailable: %s", uri, exc)
        raise ResourceError(f"{uri} is unavailable: {exc}") from exc
    return extract_key_content(content, translate=source.translate_authconfig)


def _make_handler(
    cache: DocumentCache, uri: str, source: DocSource
) -> Callable[[], Awaitable[str]]:
    async def handler() -> str:
        return await read_doc(cache, uri, source)

    return handler


def register_resources(mcp: FastMCP, cache: DocumentCache) -> None:
    """Register every documentation resource on *mcp*, backed by *cache*."""
    for uri, source in RESOURCES.items():
        mcp.resource(
            uri,
            name=source.name,
            description=source.description,
            mime_type=MIME_TYPE,
        )(_make_handler(cache, uri, source))
