"""HTTP client for road distances from OSRM, with a great-circle fallback."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Literal, Optional

import httpx

from ...config import settings
from ...models.domain import Coordinate
from ..geospatial import distance_km

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RouteEstimate:
    distance_km: float
    duration_min: Optional[float]
    source: Literal["osrm", "haversine"]


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._client = client

    def _get_client(self) -> httpx.Client:
        if self._client is not None:
            return self._client
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=5.0))

    def route(self, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
        """Fetch driving distance (km) and duration (min) between two points."""
        coordinate_str = ";".join(
            f"{point.longitude},{point.latitude}" for point in (origin, destination)
        )
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"
        params = {"overview": "false", "alternatives": "false", "steps": "false"}

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    if data.get("code") != "Ok" or not data.get("routes"):
                        raise ValueError(f"OSRM returned no route: {data.get('code')}")
                    best = data["routes"][0]
                    return RouteEstimate(
                        distance_km=float(best["distance"]) / 1000.0,
                        duration_min=float(best["duration"]) / 60.0,
                        source="osrm",
                    )
                except (httpx.TimeoutException, httpx.NetworkError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to reach OSRM service at {self.base_url}: {exc}"
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except httpx.HTTPStatusError:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
        finally:
            if self._client is None:
                client.close()


class RouteDistanceProvider:
    """Road distance when OSRM is configured and reachable, great-circle otherwise."""

    def __init__(self, client: OSRMClient | None = None) -> None:
        if client is None and settings.osrm_base_url:
            client = OSRMClient()
        self.client = client

    def estimate(self, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
        if self.client is not None:
            try:
                return self.client.route(origin, destination)
            except (ConnectionError, ValueError, KeyError, httpx.HTTPError) as exc:
                logger.warning(f"OSRM route request failed: {exc}. Using haversine fallback.")
        return RouteEstimate(
            distance_km=distance_km(origin, destination),
            duration_min=None,
            source="haversine",
        )


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM reachability with a minimal two-point route request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        client = OSRMClient(base_url=base, max_retries=0)
        client.route(Coordinate(26.6618, 86.2025), Coordinate(26.6602, 86.2070))
        return True
    except (ConnectionError, ValueError, KeyError, httpx.HTTPError):
        return False
