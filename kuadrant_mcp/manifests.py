"""Manifest builders for Gateway API and Kuadrant policy resources.

Every ``build_*`` function returns a plain dict ready for :func:`render_yaml`
and raises :class:`ManifestError` when the input cannot produce a valid
manifest.  Caller-supplied mappings are copied, never modified.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

GATEWAY_API_GROUP = "gateway.networking.k8s.io"
GATEWAY_API_VERSION = f"{GATEWAY_API_GROUP}/v1"
KUADRANT_API_VERSION = "kuadrant.io/v1"
KUADRANT_ALPHA_API_VERSION = "kuadrant.io/v1alpha1"
CERT_MANAGER_GROUP = "cert-manager.io"

DEFAULT_GATEWAY_CLASS = "istio"
DEFAULT_LISTENERS: List[Dict[str, Any]] = [
    {"name": "http", "port": 80, "protocol": "HTTP"},
]

_WINDOW_RE = re.compile(r"[0-9]+[smh]")


class ManifestError(ValueError):
    """The supplied parameters do not describe a valid manifest."""


class RateLimit(BaseModel):
    limit: int = Field(description="Number of requests allowed")
    window: str = Field(description="Time window (e.g. 10s, 5m, 1h)")


class LimitDefinition(BaseModel):
    rates: List[RateLimit] = Field(description="Array of rate limit rules")
    when: Optional[List[Dict[str, Any]]] = Field(
        default=None,
        description="Optional conditions for applying this limit",
    )


DEFAULT_LIMITS: Dict[str, LimitDefinition] = {
    "global": LimitDefinition(rates=[RateLimit(limit=10, window="60s")]),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def render_yaml(manifest: Dict[str, Any]) -> str:
    return yaml.safe_dump(manifest, sort_keys=False, default_flow_style=False)


def _metadata(name: str, namespace: str) -> Dict[str, Any]:
    if not name or not namespace:
        raise ManifestError("name and namespace are required")
    return {"name": name, "namespace": namespace}


def _object_ref(
    ref: Optional[Dict[str, Any]], field: str, default_group: str
) -> Dict[str, Any]:
    """Copy a ``{group, kind, name}`` reference, filling in the group."""
    if not ref:
        raise ManifestError(f"{field} is required")
    if not ref.get("kind") or not ref.get("name"):
        raise ManifestError(f"{field} must have kind and name")
    ref = copy.deepcopy(ref)
    ref.setdefault("group", default_group)
    return ref


def validate_window(window: str) -> None:
    """Check a rate limit window such as ``60s``, ``5m`` or ``1h``."""
    if len(window) < 2:
        raise ManifestError("window must be at least 2 characters (e.g., '1s')")
    if window[-1] not in "smh":
        raise ManifestError(
            "window must end with 's' (seconds), 'm' (minutes), or 'h' (hours)"
        )
    if not _WINDOW_RE.fullmatch(window):
        raise ManifestError(
            "window must start with a number (e.g., '60s', '5m', '1h')"
        )


def _policy(
    kind: str,
    api_version: str,
    name: str,
    namespace: str,
    spec: Dict[str, Any],
) -> Dict[str, Any]:
    return {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": _metadata(name, namespace),
        "spec": spec,
    }


def _set_if(spec: Dict[str, Any], key: str, value: Any) -> None:
    if value:
        spec[key] = copy.deepcopy(value)


# ---------------------------------------------------------------------------
# Gateway API
# ---------------------------------------------------------------------------


def build_gateway(
    name: str,
    namespace: str,
    gateway_class_name: str = "",
    listeners: Optional[List[Dict[str, Any]]] = None,
    kuadrant_enabled: bool = True,
) -> Dict[str, Any]:
    metadata = _metadata(name, namespace)
    if kuadrant_enabled:
        metadata["annotations"] = {"kuadrant.io/policy": "enabled"}
    return {
        "apiVersion": GATEWAY_API_VERSION,
        "kind": "Gateway",
        "metadata": metadata,
        "spec": {
            "gatewayClassName": gateway_class_name or DEFAULT_GATEWAY_CLASS,
            "listeners": copy.deepcopy(listeners or DEFAULT_LISTENERS),
        },
    }


def build_httproute(
    name: str,
    namespace: str,
    parent_refs: Optional[List[Any]] = None,
    hostnames: Optional[List[Any]] = None,
    rules: Optional[List[Any]] = None,
) -> Dict[str, Any]:
    metadata = _metadata(name, namespace)
    if not parent_refs:
        raise ManifestError("parentRefs is required")
    spec: Dict[str, Any] = {"parentRefs": copy.deepcopy(parent_refs)}
    _set_if(spec, "hostnames", hostnames)
    _set_if(spec, "rules", rules)
    return {
        "apiVersion": GATEWAY_API_VERSION,
        "kind": "HTTPRoute",
        "metadata": metadata,
        "spec": spec,
    }


# ---------------------------------------------------------------------------
# Kuadrant policies
# ---------------------------------------------------------------------------


def build_dnspolicy(
    name: str,
    namespace: str,
    target_ref: Optional[Dict[str, Any]] = None,
    provider_refs: Optional[List[Any]] = None,
    provider_ref: Optional[Dict[str, Any]] = None,
    load_balancing: Optional[Dict[str, Any]] = None,
    health_check: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    _metadata(name, namespace)
    spec: Dict[str, Any] = {
        "targetRef": _object_ref(target_ref, "targetRef", GATEWAY_API_GROUP),
    }
    if provider_refs:
        spec["providerRefs"] = copy.deepcopy(provider_refs)
    elif provider_ref:
        # legacy single-provider form
        spec["providerRefs"] = [copy.deepcopy(provider_ref)]
    else:
        raise ManifestError("providerRefs is required")
    _set_if(spec, "loadBalancing", load_balancing)
    _set_if(spec, "healthCheck", health_check)
    return _policy("DNSPolicy", KUADRANT_API_VERSION, name, namespace, spec)


def build_tlspolicy(
    name: str,
    namespace: str,
    target_ref: Optional[Dict[str, Any]] = None,
    issuer_ref: Optional[Dict[str, Any]] = None,
    common_name: str = "",
    duration: str = "",
    renew_before: str = "",
) -> Dict[str, Any]:
    _metadata(name, namespace)
    spec: Dict[str, Any] = {
        "targetRef": _object_ref(target_ref, "targetRef", GATEWAY_API_GROUP),
        "issuerRef": _object_ref(issuer_ref, "issuerRef", CERT_MANAGER_GROUP),
    }
    _set_if(spec, "commonName", common_name)
    _set_if(spec, "duration", duration)
    _set_if(spec, "renewBefore", renew_before)
    return _policy("TLSPolicy", KUADRANT_ALPHA_API_VERSION, name, namespace, spec)


def build_ratelimitpolicy(
    name: str,
    namespace: str,
    target_ref: Optional[Dict[str, Any]] = None,
    limits: Optional[Dict[str, LimitDefinition]] = None,
    defaults: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    _metadata(name, namespace)
    spec: Dict[str, Any] = {
        "targetRef": _object_ref(target_ref, "targetRef", GATEWAY_API_GROUP),
    }

    limits = limits or DEFAULT_LIMITS
    for limit_name, definition in limits.items():
        for i, rate in enumerate(definition.rates):
            try:
                validate_window(rate.window)
            except ManifestError as exc:
                raise ManifestError(
                    f"Invalid window format in limit '{limit_name}' "
                    f"rate[{i}]: {exc}"
                ) from exc
    spec["limits"] = {
        limit_name: definition.model_dump(exclude_none=True)
        for limit_name, definition in limits.items()
    }

    _set_if(spec, "defaults", defaults)
    _set_if(spec, "overrides", overrides)
    return _policy("RateLimitPolicy", KUADRANT_API_VERSION, name, namespace, spec)


def build_authpolicy(
    name: str,
    namespace: str,
    target_ref: Optional[Dict[str, Any]] = None,
    rules: Optional[Dict[str, Any]] = None,
    defaults: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    _metadata(name, namespace)
    spec: Dict[str, Any] = {
        "targetRef": _object_ref(target_ref, "targetRef", GATEWAY_API_GROUP),
    }
    _set_if(spec, "rules", rules)
    _set_if(spec, "defaults", defaults)
    _set_if(spec, "overrides", overrides)
    return _policy("AuthPolicy", KUADRANT_API_VERSION, name, namespace, spec)
