"""Connectivity probes used for the submission pre-flight and queue retries.

``HttpConnectivityProbe`` distinguishes "no link" (the connection could
not be opened) from "link but no internet" (timeouts, server errors), so
:class:`NetworkState` carries both flags.  ``StaticConnectivity`` is for
deployments where probing is disabled.
"""

from __future__ import annotations

import logging

import httpx

from intake_forms.interfaces import ConnectivityService
from intake_forms.models.submission import NetworkState

logger = logging.getLogger(__name__)

DEFAULT_PROBE_URL = "https://clients3.google.com/generate_204"


class HttpConnectivityProbe(ConnectivityService):
    """Checks reachability with a lightweight HTTP request.

    Args:
        probe_url: endpoint expected to answer quickly (204 or any non-5xx).
        timeout: seconds before the probe counts as unreachable.
        transport: optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        probe_url: str = DEFAULT_PROBE_URL,
        *,
        timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = probe_url
        self._timeout = timeout
        self._transport = transport

    async def fetch(self) -> NetworkState:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport,
            ) as client:
                response = await client.get(self._url)
        except httpx.ConnectError as exc:
            logger.info("Connectivity probe could not connect: %s", exc)
            return NetworkState(is_connected=False, is_internet_reachable=False)
        except httpx.HTTPError as exc:
            logger.info("Connectivity probe failed: %s", exc)
            return NetworkState(is_connected=True, is_internet_reachable=False)

        reachable = response.status_code < 500
        if not reachable:
            logger.info("Connectivity probe got HTTP %d", response.status_code)
        return NetworkState(is_connected=True, is_internet_reachable=reachable)


class StaticConnectivity(ConnectivityService):
    """Always reports the configured state."""

    def __init__(self, online: bool = True) -> None:
        self.online = online

    async def fetch(self) -> NetworkState:
        return NetworkState(is_connected=self.online, is_internet_reachable=self.online)
