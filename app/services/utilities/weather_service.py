"""
Weather Service
===============

Caches current conditions from the OpenWeatherMap "current weather" API:
https://openweathermap.org/current

Features:
- Refreshed on startup and on a fixed interval by the scheduler
- Failures (network, HTTP status, malformed body) keep the previous snapshot
- No expiry: stale data is served until the next successful refresh

The cache shares no state with the irrigation controller.
"""
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

import requests

from app.domain.exceptions import UpstreamFetchError
from app.domain.weather import WeatherSnapshot
from app.utils.time import Clock, utc_now

if TYPE_CHECKING:
    from app.utils.emitters import EmitterService

logger = logging.getLogger(__name__)


class WeatherService:
    """Timer-refreshed snapshot of an external weather feed."""

    API_URL = "https://api.openweathermap.org/data/2.5/weather"

    def __init__(
        self,
        api_key: str | None,
        city: str = "Nairobi",
        country_code: str = "KE",
        units: str = "metric",
        *,
        base_url: str | None = None,
        timeout_seconds: float = 10.0,
        session: requests.Session | None = None,
        emitter: "EmitterService | None" = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize weather service.

        Args:
            api_key: OpenWeatherMap API key; fetching is skipped while unset
            city: City name for the query
            country_code: ISO 3166 country code
            units: "metric", "imperial" or "standard"
            base_url: Override for the API endpoint
            timeout_seconds: Per-request timeout
            session: requests session (injected in tests)
            emitter: Optional Socket.IO broadcaster
            clock: Source of snapshot timestamps
        """
        self.api_key = api_key
        self.city = city
        self.country_code = country_code
        self.units = units
        self.base_url = base_url or self.API_URL
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.emitter = emitter
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot = WeatherSnapshot()
        self.last_error: str | None = None

        logger.info(f"WeatherService initialized (city={city}, country={country_code}, units={units})")

    def latest(self) -> WeatherSnapshot:
        with self._lock:
            return self._snapshot

    def refresh(self) -> bool:
        """
        Fetch current conditions and replace the snapshot.

        Returns:
            True when the snapshot was updated. Never raises.
        """
        if not self.api_key:
            logger.warning("OpenWeatherMap API key not set. Skipping weather fetch.")
            return False

        try:
            snapshot = self._fetch()
        except UpstreamFetchError as exc:
            self.last_error = str(exc)
            logger.error("Error fetching weather data: %s", exc)
            return False

        with self._lock:
            self._snapshot = snapshot
        self.last_error = None
        logger.info(
            "Fetched weather data: %s %s°, %s",
            snapshot.city,
            snapshot.temperature,
            snapshot.description,
        )
        if self.emitter is not None:
            self.emitter.emit_weather_update(snapshot.to_dict())
        return True

    def _fetch(self) -> WeatherSnapshot:
        params = {
            "q": f"{self.city},{self.country_code}",
            "units": self.units,
            "appid": self.api_key,
        }
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise UpstreamFetchError(f"Weather request failed: {exc}") from exc

        if response.status_code != 200:
            raise UpstreamFetchError(
                f"Weather API responded with HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            return self._parse(response.json())
        except ValueError as exc:
            raise UpstreamFetchError(f"Weather API returned malformed body: {exc}") from exc

    def _parse(self, data: Any) -> WeatherSnapshot:
        """Map the OpenWeatherMap body onto a snapshot (raises ValueError when malformed)."""
        try:
            main = data["main"]
            conditions = data["weather"][0]
            return WeatherSnapshot(
                temperature=main["temp"],
                feels_like=main.get("feels_like"),
                description=conditions.get("description"),
                icon=conditions.get("icon"),
                city=data.get("name"),
                humidity=main.get("humidity"),
                wind_speed=(data.get("wind") or {}).get("speed"),
                timestamp=self._clock(),
            )
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ValueError(f"missing field {exc}") from exc
