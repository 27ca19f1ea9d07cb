"""MCP server for Kuadrant and Gateway API.

Tools turn structured parameters into ready-to-apply YAML manifests::

    create_gateway  create_httproute  create_dnspolicy
    create_tlspolicy  create_ratelimitpolicy  create_authpolicy

Resources (``kuadrant://...``) serve reference documentation fetched from
the upstream repositories through a shared TTL cache, falling back to the
bundled copies when the network is unavailable.

Usage (local development)::

    python -m kuadrant_mcp.mcp_server                   # stdio
    python -m kuadrant_mcp.mcp_server --transport http  # streamable-http on :8080
"""

import argparse
import logging
import sys
from typing import Annotated, Any, Callable, Dict, List, Optional

import yaml
from fastmcp import FastMCP
from pydantic import Field

from kuadrant_mcp.config import LOG_LEVEL, MCP_HOST, MCP_PORT, MCP_TRANSPORT
from kuadrant_mcp.doc_cache import DocumentCache
from kuadrant_mcp.manifests import (
    LimitDefinition,
    ManifestError,
    build_authpolicy,
    build_dnspolicy,
    build_gateway,
    build_httproute,
    build_ratelimitpolicy,
    build_tlspolicy,
    render_yaml,
)
from kuadrant_mcp.resources import list_resources, register_resources

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

# stderr only: stdout carries the protocol on the stdio transport
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

TRANSPORTS = {
    "stdio": "stdio",
    "sse": "sse",
    "http": "streamable-http",
    "streamable-http": "streamable-http",
}

Name = Annotated[str, Field(description="Name of the resource")]
Namespace = Annotated[str, Field(description="Kubernetes namespace")]
ObjectRef = Annotated[
    Dict[str, Any],
    Field(description="Reference to the target object (group, kind, name)"),
]


def _generate(tool: str, build: Callable[..., Dict[str, Any]], **params: Any) -> str:
    """Build and render a manifest, reporting bad input as an error message."""
    logger.info(
        "%s called with name=%s, namespace=%s",
        tool,
        params.get("name"),
        params.get("namespace"),
    )
    try:
        return render_yaml(build(**params))
    except ManifestError as exc:
        logger.info("%s rejected: %s", tool, exc)
        return f"Error: {exc}"
    except yaml.YAMLError as exc:
        logger.exception("%s failed to render YAML", tool)
        return f"Error: Failed to generate YAML: {exc}"


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------


def create_server(cache: Optional[DocumentCache] = None) -> FastMCP:
    """Build the MCP server with all tools and documentation resources.

    The documentation cache is created here unless one is supplied, so
    tests can pass a cache wired to a fake clock and transport.
    """
    if cache is None:
        cache = DocumentCache()

    mcp = FastMCP(
        "kuadrant-mcp",
        instructions=(
            "Generate Gateway API and Kuadrant policy manifests "
            "(Gateway, HTTPRoute, DNSPolicy, TLSPolicy, RateLimitPolicy, "
            "AuthPolicy) and read Kuadrant reference documentation from "
            "kuadrant:// resources."
        ),
    )

    @mcp.tool()
    def create_gateway(
        name: Name,
        namespace: Namespace,
        gateway_class_name: Annotated[
            str, Field(description="Gateway implementation to use (default: istio)")
        ] = "istio",
        listeners: Annotated[
            Optional[List[Dict[str, Any]]],
            Field(description="Gateway listeners configuration"),
        ] = None,
        kuadrant_enabled: Annotated[
            bool, Field(description="Enable Kuadrant policy attachment")
        ] = True,
    ) -> str:
        """Generate a Gateway manifest with Kuadrant annotations."""
        return _generate(
            "create_gateway",
            build_gateway,
            name=name,
            namespace=namespace,
            gateway_class_name=gateway_class_name,
            listeners=listeners,
            kuadrant_enabled=kuadrant_enabled,
        )

    @mcp.tool()
    def create_httproute(
        name: Name,
        namespace: Namespace,
        parent_refs: Annotated[
            List[Any], Field(description="References to Gateway resources")
        ],
        hostnames: Annotated[
            Optional[List[str]], Field(description="Hostnames this route handles")
        ] = None,
        rules: Annotated[
            Optional[List[Any]], Field(description="Routing rules configuration")
        ] = None,
    ) -> str:
        """Generate an HTTPRoute manifest."""
        return _generate(
            "create_httproute",
            build_httproute,
            name=name,
            namespace=namespace,
            parent_refs=parent_refs,
            hostnames=hostnames,
            rules=rules,
        )

    @mcp.tool()
    def create_dnspolicy(
        name: Name,
        namespace: Namespace,
        target_ref: ObjectRef,
        provider_refs: Annotated[
            Optional[List[Any]], Field(description="DNS provider configurations")
        ] = None,
        provider_ref: Annotated[
            Optional[Dict[str, Any]],
            Field(description="Legacy single provider reference"),
        ] = None,
        load_balancing: Annotated[
            Optional[Dict[str, Any]], Field(description="Load balancing configuration")
        ] = None,
        health_check: Annotated[
            Optional[Dict[str, Any]], Field(description="Health check configuration")
        ] = None,
    ) -> str:
        """Generate a Kuadrant DNSPolicy manifest."""
        return _generate(
            "create_dnspolicy",
            build_dnspolicy,
            name=name,
            namespace=namespace,
            target_ref=target_ref,
            provider_refs=provider_refs,
            provider_ref=provider_ref,
            load_balancing=load_balancing,
            health_check=health_check,
        )

    @mcp.tool()
    def create_tlspolicy(
        name: Name,
        namespace: Namespace,
        target_ref: ObjectRef,
        issuer_ref: Annotated[
            Dict[str, Any],
            Field(description="Reference to the cert-manager issuer"),
        ],
        common_name: Annotated[
            str, Field(description="Common name for the certificate")
        ] = "",
        duration: Annotated[
            str, Field(description="Certificate duration (e.g. 90d)")
        ] = "",
        renew_before: Annotated[
            str, Field(description="When to renew before expiry (e.g. 30d)")
        ] = "",
    ) -> str:
        """Generate a Kuadrant TLSPolicy manifest."""
        return _generate(
            "create_tlspolicy",
            build_tlspolicy,
            name=name,
            namespace=namespace,
            target_ref=target_ref,
            issuer_ref=issuer_ref,
            common_name=common_name,
            duration=duration,
            renew_before=renew_before,
        )

    @mcp.tool()
    def create_ratelimitpolicy(
        name: Name,
        namespace: Namespace,
        target_ref: ObjectRef,
        limits: Annotated[
            Optional[Dict[str, LimitDefinition]],
            Field(description="Named rate limit configurations"),
        ] = None,
        defaults: Annotated[
            Optional[Dict[str, Any]], Field(description="Default rate limit rules")
        ] = None,
        overrides: Annotated[
            Optional[Dict[str, Any]], Field(description="Override rate limit rules")
        ] = None,
    ) -> str:
        """Generate a Kuadrant RateLimitPolicy manifest.

        Without ``limits`` a single ``global`` limit of 10 requests per 60s
        is generated.
        """
        return _generate(
            "create_ratelimitpolicy",
            build_ratelimitpolicy,
            name=name,
            namespace=namespace,
            target_ref=target_ref,
            limits=limits,
            defaults=defaults,
            overrides=overrides,
        )

    @mcp.tool()
    def create_authpolicy(
        name: Name,
        namespace: Namespace,
        target_ref: ObjectRef,
        rules: Annotated[
            Optional[Dict[str, Any]],
            Field(description="Authentication and authorization rules"),
        ] = None,
        defaults: Annotated[
            Optional[Dict[str, Any]], Field(description="Default auth rules")
        ] = None,
        overrides: Annotated[
            Optional[Dict[str, Any]], Field(description="Override auth rules")
        ] = None,
    ) -> str:
        """Generate a Kuadrant AuthPolicy manifest."""
        return _generate(
            "create_authpolicy",
            build_authpolicy,
            name=name,
            namespace=namespace,
            target_ref=target_ref,
            rules=rules,
            defaults=defaults,
            overrides=overrides,
        )

    register_resources(mcp, cache)
    return mcp


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="kuadrant-mcp",
        description="MCP server for Kuadrant manifests and documentation",
    )
    parser.add_argument(
        "--transport",
        choices=sorted(TRANSPORTS),
        default=MCP_TRANSPORT,
        type=str.lower,
        help="Transport type (default: %(default)s)",
    )
    parser.add_argument(
        "--host",
        default=MCP_HOST,
        help="Address to listen on for sse/http (default: %(default)s)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=MCP_PORT,
        help="Port to listen on for sse/http (default: %(default)s)",
    )
    parser.add_argument(
        "--list-resources",
        action="store_true",
        help="Print the documentation resource URIs and exit",
    )
    args = parser.parse_args(argv)
    # argparse does not check defaults against choices, and the default
    # comes from MCP_TRANSPORT
    if args.transport not in TRANSPORTS:
        parser.error(
            f"unknown transport {args.transport!r} "
            f"(choose from {', '.join(sorted(TRANSPORTS))})"
        )
    return args


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    if args.list_resources:
        for uri in list_resources():
            print(uri)
        return

    mcp = create_server()
    logger.info("Starting server with transport=%s", args.transport)
    if args.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        logger.info("Listening on %s:%d", args.host, args.port)
        mcp.run(transport=TRANSPORTS[args.transport], host=args.host, port=args.port)


if __name__ == "__main__":
    main()
