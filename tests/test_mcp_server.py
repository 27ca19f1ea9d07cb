"""Tests for the Kuadrant MCP server.

The server is driven end to end through FastMCP's in-memory ``Client`` with
a documentation cache wired to ``FakeRemote``, so nothing touches the
network.  They verify:

- Tool and resource registration
- Tool output (YAML manifests) and graceful error messages
- Resource reads through the cache, including fallback
- Command-line parsing
"""

from unittest.mock import patch

import httpx
import pytest
import yaml
from fastmcp import Client

from kuadrant_mcp.config import MCP_PORT, MCP_TRANSPORT
from kuadrant_mcp.mcp_server import create_server, main, parse_args
from kuadrant_mcp.resources import RESOURCES

TOOL_NAMES = {
    "create_gateway",
    "create_httproute",
    "create_dnspolicy",
    "create_tlspolicy",
    "create_ratelimitpolicy",
    "create_authpolicy",
}


@pytest.fixture()
def server(cache):
    return create_server(cache=cache)


async def _call(server, tool, arguments):
    async with Client(server) as client:
        result = await client.call_tool(tool, arguments)
    return result.content[0].text


@pytest.mark.asyncio
class TestRegistration:

    async def test_all_tools_registered(self, server):
        async with Client(server) as client:
            tools = await client.list_tools()
        assert {t.name for t in tools} == TOOL_NAMES

    async def test_all_resources_registered(self, server):
        async with Client(server) as client:
            resources = await client.list_resources()
        assert {str(r.uri) for r in resources} == set(RESOURCES)
        assert {r.mimeType for r in resources} == {"text/markdown"}


@pytest.mark.asyncio
class TestTools:

    async def test_create_gateway_defaults(self, server):
        text = await _call(server, "create_gateway", {"name": "prod", "namespace": "ingress"})
        manifest = yaml.safe_load(text)
        assert manifest["kind"] == "Gateway"
        assert manifest["spec"]["gatewayClassName"] == "istio"
        assert manifest["metadata"]["annotations"] == {"kuadrant.io/policy": "enabled"}

    async def test_create_httproute(self, server):
        text = await _call(
            server,
            "create_httproute",
            {
                "name": "api",
                "namespace": "apps",
                "parent_refs": [{"name": "prod"}],
                "hostnames": ["api.example.com"],
            },
        )
        manifest = yaml.safe_load(text)
        assert manifest["spec"]["hostnames"] == ["api.example.com"]

    async def test_create_ratelimitpolicy_with_limits(self, server):
        text = await _call(
            server,
            "create_ratelimitpolicy",
            {
                "name": "rl",
                "namespace": "apps",
                "target_ref": {"kind": "HTTPRoute", "name": "api"},
                "limits": {"per_user": {"rates": [{"limit": 100, "window": "60s"}]}},
            },
        )
        manifest = yaml.safe_load(text)
        assert manifest["spec"]["limits"] == {
            "per_user": {"rates": [{"limit": 100, "window": "60s"}]}
        }
        assert manifest["spec"]["targetRef"]["group"] == "gateway.networking.k8s.io"

    async def test_invalid_window_returns_error_text(self, server):
        text = await _call(
            server,
            "create_ratelimitpolicy",
            {
                "name": "rl",
                "namespace": "apps",
                "target_ref": {"kind": "HTTPRoute", "name": "api"},
                "limits": {"burst": {"rates": [{"limit": 1, "window": "1d"}]}},
            },
        )
        assert text.startswith("Error: Invalid window format in limit 'burst' rate[0]")

    async def test_missing_provider_returns_error_text(self, server):
        text = await _call(
            server,
            "create_dnspolicy",
            {
                "name": "dns",
                "namespace": "ingress",
                "target_ref": {"kind": "Gateway", "name": "prod"},
            },
        )
        assert text == "Error: providerRefs is required"

    async def test_create_tlspolicy(self, server):
        text = await _call(
            server,
            "create_tlspolicy",
            {
                "name": "tls",
                "namespace": "ingress",
                "target_ref": {"kind": "Gateway", "name": "prod"},
                "issuer_ref": {"kind": "ClusterIssuer", "name": "letsencrypt"},
            },
        )
        manifest = yaml.safe_load(text)
        assert manifest["apiVersion"] == "kuadrant.io/v1alpha1"
        assert manifest["spec"]["issuerRef"]["group"] == "cert-manager.io"

    async def test_create_authpolicy(self, server):
        text = await _call(
            server,
            "create_authpolicy",
            {
                "name": "auth",
                "namespace": "apps",
                "target_ref": {"kind": "HTTPRoute", "name": "api"},
                "rules": {"authentication": {"anonymous": {"anonymous": {}}}},
            },
        )
        manifest = yaml.safe_load(text)
        assert manifest["spec"]["rules"] == {
            "authentication": {"anonymous": {"anonymous": {}}}
        }


@pytest.mark.asyncio
class TestResources:

    async def test_read_serves_remote_and_caches(self, server, remote):
        uri = "kuadrant://docs/ratelimitpolicy"
        url = RESOURCES[uri].url
        remote.bodies[url] = "# RateLimitPolicy upstream"

        async with Client(server) as client:
            first = await client.read_resource(uri)
            second = await client.read_resource(uri)

        assert first[0].text == "# RateLimitPolicy upstream"
        assert second[0].text == "# RateLimitPolicy upstream"
        assert remote.count(url) == 1

    async def test_read_falls_back_when_offline(self, server, remote):
        uri = "kuadrant://docs/tlspolicy"
        remote.errors[RESOURCES[uri].url] = httpx.ConnectError("offline")

        async with Client(server) as client:
            contents = await client.read_resource(uri)

        assert contents[0].text == RESOURCES[uri].fallback


class TestCommandLine:

    def test_defaults(self):
        args = parse_args([])
        assert args.transport == MCP_TRANSPORT
        assert args.port == MCP_PORT
        assert not args.list_resources

    def test_http_transport(self):
        args = parse_args(["--transport", "http", "--host", "127.0.0.1", "--port", "9000"])
        assert args.transport == "http"
        assert args.host == "127.0.0.1"
        assert args.port == 9000

    def test_unknown_transport_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["--transport", "carrier-pigeon"])

    @patch("kuadrant_mcp.mcp_server.MCP_TRANSPORT", "carrier-pigeon")
    def test_unknown_transport_from_environment_rejected(self):
        with pytest.raises(SystemExit):
            parse_args([])

    @patch("kuadrant_mcp.mcp_server.MCP_TRANSPORT", "Streamable-HTTP")
    def test_streamable_http_accepted_from_environment(self):
        assert parse_args([]).transport == "streamable-http"

    @patch("kuadrant_mcp.mcp_server.create_server")
    @patch("kuadrant_mcp.mcp_server.MCP_TRANSPORT", "streamable-http")
    def test_main_runs_streamable_http_from_environment(self, mock_create):
        main(["--host", "127.0.0.1", "--port", "9002"])

        mock_create.return_value.run.assert_called_once_with(
            transport="streamable-http", host="127.0.0.1", port=9002
        )

    def test_list_resources(self, capsys):
        main(["--list-resources"])
        printed = capsys.readouterr().out.split()
        assert printed == sorted(RESOURCES)

    @patch("kuadrant_mcp.mcp_server.create_server")
    def test_main_runs_selected_transport(self, mock_create):
        main(["--transport", "sse", "--host", "0.0.0.0", "--port", "9001"])

        mock_create.return_value.run.assert_called_once_with(
            transport="sse", host="0.0.0.0", port=9001
        )

    @patch("kuadrant_mcp.mcp_server.create_server")
    def test_main_runs_stdio(self, mock_create):
        main(["--transport", "stdio"])

        mock_create.return_value.run.assert_called_once_with(transport="stdio")
