from typing import Dict, List, NamedTuple, Optional, Union
from novaapi.types.base import BaseModel

ENDPOINT_PUBLIC = "public"
ENDPOINT_INTERNAL = "internal"
ENDPOINTS = (ENDPOINT_PUBLIC, ENDPOINT_INTERNAL)


class ExternalEndpoint(BaseModel):
    """Request to expose a logical endpoint through a load balancer."""

    endpoint: str
    ip_address_pool: str
    load_balancer_ips: List[str]
    shared_ip: bool
    shared_ip_key: Optional[str]


class Routed(NamedTuple):
    """Endpoint exposed with a ClusterIP service plus a route."""

    endpoint: str


class LoadBalanced(NamedTuple):
    """Endpoint exposed with a load-balancer service and no route."""

    endpoint: str
    pool: str
    addresses: List[str]
    shared_ip_key: Optional[str] = None


Exposure = Union[Routed, LoadBalanced]


def resolve_exposures(external_endpoints: List[ExternalEndpoint]) -> Dict[str, Exposure]:
    """Resolve how every logical endpoint is exposed for this pass."""
    requested = {e.endpoint: e for e in external_endpoints or []}
    exposures = {}
    for endpoint in ENDPOINTS:
        ext = requested.get(endpoint)
        if ext is None:
            exposures[endpoint] = Routed(endpoint)
            continue
        shared_ip_key = None
        if ext.shared_ip:
            shared_ip_key = ext.shared_ip_key or ext.ip_address_pool
        exposures[endpoint] = LoadBalanced(
            endpoint=endpoint,
            pool=ext.ip_address_pool,
            addresses=list(ext.load_balancer_ips or []),
            shared_ip_key=shared_ip_key,
        )
    return exposures
