import logging
from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import urlparse

import requests

from exceptions import ConfigError, VehicleError

REQUEST_TIMEOUT = 30
STATE_CHARGING = "charging"


@dataclass(frozen=True)
class VehicleStatus:
    """Read-only snapshot of the car as reported by TeslaMate."""

    state: str
    plugged_in: bool
    battery_level: int
    latitude: float
    longitude: float
    car_name: str = ""

    @property
    def is_charging(self) -> bool:
        return self.state == STATE_CHARGING

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VehicleStatus":
        status = data["status"]
        geodata = status.get("car_geodata") or {}
        return cls(
            state=status.get("state") or "",
            plugged_in=bool((status.get("charging_details") or {}).get("plugged_in")),
            battery_level=int((status.get("battery_details") or {}).get("battery_level") or 0),
            latitude=float(geodata.get("latitude") or 0.0),
            longitude=float(geodata.get("longitude") or 0.0),
            car_name=(data.get("car") or {}).get("car_name") or "",
        )


class TeslaMateClient:
    """Client for the TeslaMate API car status endpoint."""

    def __init__(self, base_url: str) -> None:
        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"Invalid TeslaMate API URL: {base_url}")
        self.base_url = base_url.rstrip("/")

    def get_car_status(self, car_id: int) -> VehicleStatus:
        url = f"{self.base_url}/api/v1/cars/{car_id}/status"
        logging.debug(f"Requesting status for car {car_id}")
        try:
            response = requests.get(url, timeout=REQUEST_TIMEOUT)
            logging.debug("Car status response status: %s", response.status_code)
            response.raise_for_status()
        except requests.RequestException as e:
            logging.error(f"Failed to get car status: {e}")
            raise VehicleError(f"Failed to get car status: {e}")

        try:
            return VehicleStatus.from_dict(response.json()["data"])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logging.error(f"Invalid car status response: {e}")
            raise VehicleError(f"Invalid car status response: {e}")
