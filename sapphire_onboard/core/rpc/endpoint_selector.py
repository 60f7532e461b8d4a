"""
RPC endpoint selection.

Discovers candidate RPC URLs for a chain from a public chain registry,
drops unusable ones, probes the rest concurrently and returns the fastest
live endpoint. Selection never fails: every error degrades to the fallback.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

DEFAULT_REGISTRY_URL = "https://chainid.network/chains.json"
DEFAULT_PROBE_TIMEOUT = 5.0

# Headroom over the probe timeout for a whole selection
SELECTION_OVERHEAD_SECONDS = 1.0

# Unresolved template placeholders, e.g. https://mainnet.infura.io/v3/${INFURA_API_KEY}
PLACEHOLDER_MARKER = "${"

SECURE_SCHEME = "https://"

# Test networks and the substring their endpoints must contain
TEST_NETWORK_MARKERS: Dict[int, str] = {
    560048: "hoodi",
    23295: "testnet",
    11155111: "sepolia",
    17000: "holesky",
}

logger = logging.getLogger(__name__)


@dataclass
class ProbeResult:
    """Outcome of a single liveness probe."""

    url: str
    latency: float = math.inf
    block_number: Optional[int] = None
    error: Optional[str] = None

    @property
    def alive(self) -> bool:
        return math.isfinite(self.latency)


def filter_candidates(network_id: int, urls: List[Any]) -> List[str]:
    """Keep secure, fully-resolved URLs (and, on test networks, test endpoints only)."""

    marker = TEST_NETWORK_MARKERS.get(network_id)
    kept: List[str] = []
    for url in urls:
        if not isinstance(url, str):
            continue
        if not url.startswith(SECURE_SCHEME):
            continue
        if PLACEHOLDER_MARKER in url:
            continue
        if marker is not None and marker not in url:
            continue
        kept.append(url)
    return kept


def assemble_candidates(discovered: List[str], fallback: str) -> List[str]:
    """Discovered URLs in order, then the fallback, without duplicates."""

    seen = set()
    candidates: List[str] = []
    for url in [*discovered, fallback]:
        if url in seen:
            continue
        seen.add(url)
        candidates.append(url)
    return candidates


class EndpointSelector:
    """
    Picks the lowest-latency reachable RPC endpoint for a chain.

    Usage:
        selector = EndpointSelector()
        url = await selector.select_best_endpoint(560048, "https://rpc.hoodi.ethpandaops.io")
    """

    def __init__(
        self,
        *,
        registry_url: str = DEFAULT_REGISTRY_URL,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        registry_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.registry_url = registry_url
        self.probe_timeout = probe_timeout
        self.registry_timeout = registry_timeout
        self._transport = transport

    @property
    def discovery_timeout(self) -> float:
        return min(self.registry_timeout, self.probe_timeout)

    @property
    def deadline(self) -> float:
        """Upper bound on one selection, after which the fallback is returned."""
        return self.probe_timeout + SELECTION_OVERHEAD_SECONDS

    async def _fetch_registry(self) -> Any:
        async with httpx.AsyncClient(
            timeout=self.registry_timeout, transport=self._transport
        ) as client:
            response = await client.get(self.registry_url)
            response.raise_for_status()
            return response.json()

    async def discover_candidates(self, network_id: int) -> List[str]:
        """Raw RPC URLs listed for ``network_id``; empty on any failure."""
        try:
            records = await asyncio.wait_for(self._fetch_registry(), timeout=self.discovery_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Chain registry lookup for {network_id} exceeded {self.discovery_timeout}s"
            )
            return []
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Chain registry lookup failed for {network_id}: {exc}")
            return []

        if not isinstance(records, list):
            logger.warning("Chain registry returned an unexpected payload")
            return []

        for record in records:
            if not isinstance(record, dict) or record.get("chainId") != network_id:
                continue
            rpc = record.get("rpc")
            if not isinstance(rpc, list):
                return []
            return list(rpc)

        logger.info(f"Chain {network_id} not listed in registry")
        return []

    async def probe(self, url: str) -> ProbeResult:
        """Time an ``eth_blockNumber`` call; failures record infinite latency."""
        payload = {"jsonrpc": "2.0", "method": "eth_blockNumber", "params": [], "id": 1}
        try:
            async with httpx.AsyncClient(
                timeout=self.probe_timeout, transport=self._transport
            ) as client:
                start = time.perf_counter()
                response = await asyncio.wait_for(
                    client.post(url, json=payload), timeout=self.probe_timeout
                )
                response.raise_for_status()
                body = response.json()
                latency = time.perf_counter() - start
            if not isinstance(body, dict) or body.get("error"):
                error = body.get("error") if isinstance(body, dict) else "malformed response"
                return ProbeResult(url=url, error=f"RPC error: {error}")
            block_number = _parse_block_number(body.get("result"))
            return ProbeResult(url=url, latency=latency, block_number=block_number)
        except Exception as exc:
            return ProbeResult(url=url, error=str(exc) or type(exc).__name__)

    async def probe_all(self, candidates: List[str]) -> List[ProbeResult]:
        results = await asyncio.gather(
            *(self.probe(url) for url in candidates), return_exceptions=True
        )
        probed: List[ProbeResult] = []
        for url, result in zip(candidates, results):
            if isinstance(result, BaseException):
                result = ProbeResult(url=url, error=str(result) or type(result).__name__)
            probed.append(result)
            if result.alive:
                logger.debug(f"Probe {url}: {result.latency * 1000:.0f}ms")
            else:
                logger.debug(f"Probe {url} failed: {result.error}")
        return probed

    async def select_best_endpoint(self, network_id: int, fallback_endpoint: str) -> str:
        """Return the fastest live endpoint for ``network_id`` or ``fallback_endpoint``.

        Finishes within :attr:`deadline`; past it the fallback is returned.
        """
        try:
            return await asyncio.wait_for(
                self._select(network_id, fallback_endpoint), timeout=self.deadline
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Endpoint selection for chain {network_id} exceeded {self.deadline}s, "
                f"using fallback {fallback_endpoint}"
            )
            return fallback_endpoint
        except Exception as exc:
            logger.error(f"Endpoint selection failed for chain {network_id}: {exc}")
            return fallback_endpoint

    async def _select(self, network_id: int, fallback_endpoint: str) -> str:
        discovered = filter_candidates(
            network_id, await self.discover_candidates(network_id)
        )
        candidates = assemble_candidates(discovered, fallback_endpoint)
        results = await self.probe_all(candidates)

        # sorted() is stable, so equal latencies keep discovery order
        ranked = sorted(results, key=lambda r: r.latency)
        if not ranked or not ranked[0].alive:
            logger.warning(
                f"No live RPC endpoint for chain {network_id}, using fallback {fallback_endpoint}"
            )
            return fallback_endpoint

        best = ranked[0]
        logger.info(
            f"Selected RPC for chain {network_id}: {best.url} "
            f"({best.latency * 1000:.0f}ms, {len(candidates)} candidates)"
        )
        return best.url


def _parse_block_number(value: Any) -> Optional[int]:
    if isinstance(value, str):
        try:
            return int(value, 16)
        except ValueError:
            return None
    return None


async def select_best_endpoint(
    network_id: int,
    fallback_endpoint: str,
    *,
    registry_url: str = DEFAULT_REGISTRY_URL,
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> str:
    """Convenience wrapper around :class:`EndpointSelector`."""
    selector = EndpointSelector(registry_url=registry_url, probe_timeout=probe_timeout)
    return await selector.select_best_endpoint(network_id, fallback_endpoint)
