"""
RPC Layer

- JsonRpcClient: async JSON-RPC 2.0 client over httpx
- EndpointSelector: latency-based selection among registry-listed endpoints
"""

from .client import JsonRpcClient, JsonRpcError
from .endpoint_selector import (
    EndpointSelector,
    ProbeResult,
    TEST_NETWORK_MARKERS,
    assemble_candidates,
    filter_candidates,
    select_best_endpoint,
)

__all__ = [
    "JsonRpcClient",
    "JsonRpcError",
    "EndpointSelector",
    "ProbeResult",
    "TEST_NETWORK_MARKERS",
    "assemble_candidates",
    "filter_candidates",
    "select_best_endpoint",
]
