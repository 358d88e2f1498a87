"""
PlaceShare Backend — Google Maps Geocoder
===========================================

What:  Geocoder implementation using the Google Maps Geocoding API.
How:   GET {GEOCODER_URL}?address=...&key=... through a shared httpx.AsyncClient,
       with tenacity retries on transport errors and 5xx responses, and one
       asyncio.wait_for bounding the whole call (retries included).
Who:   Built once at startup; called by PlaceService.create_place.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. Overall deadline of GEOCODER_TIMEOUT seconds per geocode() call
    3. Every failure surfaces as GeocodeError; nothing is written before it

Provider statuses:
    OK            → first result's geometry.location
    ZERO_RESULTS  → GeocodeError("Could not find location for the specified address.")
    anything else → GeocodeError carrying the provider status in context
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from placeshare.config import settings
from placeshare.exceptions import GeocodeError
from placeshare.schemas.place import Coordinates
from placeshare.services.geocoder_base import Geocoder

logger = logging.getLogger(__name__)


class UpstreamStatusError(Exception):
    """The provider answered with a 5xx status; worth retrying."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Geocoder returned HTTP {status_code}")


class GoogleGeocoder(Geocoder):
    """
    Google Geocoding API client.

    Every constructor argument defaults to the matching setting; tests pass
    an httpx.MockTransport and zero waits.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.google_maps_api_key if api_key is None else api_key
        self.url = url or settings.geocoder_url
        self.timeout = timeout or settings.geocoder_timeout
        self.max_attempts = max_attempts or settings.retry_max_attempts
        self.min_wait = settings.retry_min_wait if min_wait is None else min_wait
        self.max_wait = settings.retry_max_wait if max_wait is None else max_wait
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def geocode(self, address: str) -> Coordinates:
        """
        Resolve `address` to coordinates.

        Raises:
            GeocodeError: unconfigured, timed out, transport failure after
                retries, non-OK provider status, or malformed response
        """
        if not self.is_configured():
            raise GeocodeError(
                message="Geocoding is not available right now.",
                context={"reason": "missing_api_key"},
            )

        start_time = time.perf_counter()
        try:
            data = await asyncio.wait_for(self._request(address), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Geocode timed out after %.1fs", self.timeout)
            raise GeocodeError(
                message="The geocoding service timed out. Please try again.",
                context={"reason": "timeout", "timeout": self.timeout},
            )
        except (httpx.HTTPError, UpstreamStatusError) as e:
            logger.error("Geocode request failed after retries: %s", str(e))
            raise GeocodeError(
                message="The geocoding service is unavailable. Please try again later.",
                context={"reason": "upstream_error", "error_type": type(e).__name__},
            )
        except ValueError as e:
            logger.error("Geocoder returned a non-JSON body: %s", str(e))
            raise GeocodeError(
                message="The geocoding service returned an invalid response.",
                context={"reason": "invalid_response"},
            )

        coordinates = self._parse(data)
        logger.info(
            "Geocoded address in %.0fms → (%.5f, %.5f)",
            (time.perf_counter() - start_time) * 1000,
            coordinates.lat,
            coordinates.lng,
        )
        return coordinates

    async def _request(self, address: str) -> Dict[str, Any]:
        """One geocode round-trip, retried on transport errors and 5xx."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type((httpx.TransportError, UpstreamStatusError)),
            stop=stop_after_attempt(self.max_attempts),
            wait=(
                wait_exponential(multiplier=self.min_wait, max=self.max_wait)
                + wait_random(0, self.min_wait)
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retrying(self._fetch, address)

    async def _fetch(self, address: str) -> Any:
        response = await self._client.get(
            self.url,
            params={"address": address, "key": self.api_key},
        )
        if response.status_code >= 500:
            raise UpstreamStatusError(response.status_code)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _parse(data: Any) -> Coordinates:
        if not isinstance(data, dict):
            raise GeocodeError(
                message="The geocoding service returned an invalid response.",
                context={"reason": "invalid_response", "error_type": type(data).__name__},
            )

        status = data.get("status")
        results = data.get("results") or []

        if status == "ZERO_RESULTS" or (status == "OK" and not results):
            raise GeocodeError(context={"reason": "zero_results"})

        if status != "OK":
            logger.error(
                "Geocoder rejected request: status=%s message=%s",
                status,
                data.get("error_message"),
            )
            raise GeocodeError(
                message="The geocoding service rejected the request.",
                context={"reason": "provider_status", "status": status},
            )

        try:
            location = results[0]["geometry"]["location"]
            return Coordinates(lat=location["lat"], lng=location["lng"])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise GeocodeError(
                message="The geocoding service returned an invalid response.",
                context={"reason": "invalid_response", "error_type": type(e).__name__},
            )

    async def aclose(self) -> None:
        """Close the underlying HTTP client. Called from the lifespan shutdown."""
        await self._client.aclose()
