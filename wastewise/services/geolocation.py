"""Where the person escalating a complaint is, from their device or their IP address."""
import logging
from typing import Optional

import requests

from wastewise import config
from wastewise.errors import GeolocationError
from wastewise.schemas import Position

logger = logging.getLogger(__name__)


class Geolocator:
    """Single-shot position query"""

    def current_position(self) -> Position:
        raise NotImplementedError


class StaticGeolocator(Geolocator):
    """Position reported by the user's device along with the request"""

    def __init__(self, position: Optional[Position]):
        self.position = position

    def current_position(self) -> Position:
        if self.position is None:
            raise GeolocationError("Location is not available from this device")
        return self.position


class IPGeolocator(Geolocator):
    """Looks up an approximate position over HTTP; never cached"""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None, ip_address: Optional[str] = None):
        self.url = url or config.GEOLOCATION_URL
        self.timeout = timeout or config.GEOLOCATION_TIMEOUT
        self.ip_address = ip_address

    def current_position(self) -> Position:
        url = f"{self.url.rstrip('/')}/{self.ip_address}" if self.ip_address else self.url
        try:
            resp = requests.get(url, headers={"Cache-Control": "no-cache"}, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise GeolocationError("Timed out while getting location") from e
        except requests.exceptions.RequestException as e:
            raise GeolocationError(f"Location lookup failed: {e}") from e

        if resp.status_code != 200:
            logger.warning("Geolocation API Error: %s", resp.status_code)
            raise GeolocationError(f"Location lookup failed with status {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise GeolocationError("Location lookup returned an invalid response") from e

        if data.get("status") == "fail":
            raise GeolocationError(data.get("message") or "Location unavailable")

        lat = data.get("lat", data.get("latitude"))
        lon = data.get("lon", data.get("longitude"))
        if lat is None or lon is None:
            raise GeolocationError("Location lookup returned no coordinates")

        return Position(latitude=float(lat), longitude=float(lon), accuracy=data.get("accuracy"))
