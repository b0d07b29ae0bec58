import logging
from dataclasses import dataclass
from typing import Optional

from geopy.distance import great_circle

from config import ChargingStationConfig
from ekz_client import EkzClient
from teslamate_client import TeslaMateClient, VehicleStatus

GEOFENCE_RADIUS_METERS = 100.0
DEFAULT_MAXIMUM_CHARGE = 90


@dataclass(frozen=True)
class AutostartDecision:
    should_start: bool
    reason: str
    distance_meters: Optional[float] = None


def distance_to_station(status: VehicleStatus, station: ChargingStationConfig) -> float:
    """Great-circle distance in meters between the car and the charging station."""
    return great_circle(
        (station.latitude, station.longitude),
        (status.latitude, status.longitude),
    ).meters


def evaluate_autostart(
    status: VehicleStatus, station: ChargingStationConfig, max_charge: int
) -> AutostartDecision:
    if status.is_charging:
        return AutostartDecision(False, "car is already charging")
    if not status.plugged_in:
        return AutostartDecision(False, "car is not plugged in")
    if status.battery_level >= max_charge:
        return AutostartDecision(
            False, f"car battery at {status.battery_level}% (max: {max_charge}%)"
        )

    distance = distance_to_station(status, station)
    if distance > GEOFENCE_RADIUS_METERS:
        return AutostartDecision(
            False, f"car is not near the charging station ({distance:.1f} m)", distance
        )
    return AutostartDecision(True, "all conditions met", distance)


class AutostartService:
    """Starts charging when the car is plugged in at the station and not full."""

    def __init__(
        self,
        ekz_client: EkzClient,
        car_api: TeslaMateClient,
        car_id: int,
        max_charge: int,
        station: ChargingStationConfig,
    ) -> None:
        self.ekz_client = ekz_client
        self.car_api = car_api
        self.car_id = car_id
        self.max_charge = max_charge
        self.station = station

    def try_autostart(self) -> bool:
        """Check the car and start charging if every condition holds.

        Returns:
            True if a charge was started, False if a condition was not met
        """
        logging.debug(f"Checking autostart conditions for car {self.car_id} (max charge: {self.max_charge}%)")
        status = self.car_api.get_car_status(self.car_id)

        decision = evaluate_autostart(status, self.station, self.max_charge)
        if decision.distance_meters is not None:
            logging.debug("Distance from charging station: %.1f meters", decision.distance_meters)
        if not decision.should_start:
            logging.info(f"Not starting charge: {decision.reason}")
            return False

        logging.info("All conditions met, starting charge...")
        self.ekz_client.start_charge(self.station.box_id, self.station.connector_id)
        logging.info("Successfully started charging")
        return True
