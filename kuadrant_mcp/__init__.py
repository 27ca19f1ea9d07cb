"""MCP server for Kuadrant and Gateway API.

Architecture::

    MCP client ──► FastMCP server (mcp_server.create_server)
                      │
                      ├──► create_* tools ──► manifests.build_* ──► YAML
                      │
                      └──► kuadrant:// resources ──► resources.read_doc
                                                        │
                                                        ▼
                                           doc_cache.DocumentCache
                                     (TTL cache, raw GitHub markdown,
                                      bundled fallback on failure)

Tools:
    create_gateway: Gateway with Kuadrant policy attachment
    create_httproute: HTTPRoute bound to one or more Gateways
    create_dnspolicy: DNSPolicy (providers, load balancing, health checks)
    create_tlspolicy: TLSPolicy backed by a cert-manager issuer
    create_ratelimitpolicy: RateLimitPolicy with validated windows
    create_authpolicy: AuthPolicy rules, defaults and overrides
"""
