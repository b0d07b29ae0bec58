import logging
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from config import Config
from ekz_session import build_session
from exceptions import ChargingError, TokenError, TransactionNotFoundError
from models import (
    CONNECTOR_STATUS_CHARGING,
    ChargingStation,
    LiveData,
    Profile,
    RemoteOperationResult,
)
from token_manager import BACKEND_URL, REQUEST_TIMEOUT, EkzTokenManager

TRANSACTION_NOT_FOUND_MESSAGE = "transaction not found in table"
START_CHARGE_MAX_ATTEMPTS = 6 * 5
NOT_FOUND_RETRY_SECONDS = 5
NO_POWER_RETRY_SECONDS = 10

T = TypeVar("T")


class EkzClient:
    """Client for the EKZ e-mobility charging backend."""

    def __init__(
        self,
        config: Config,
        token_manager: Optional[EkzTokenManager] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.token_manager = token_manager or EkzTokenManager(config)
        self.session = session or build_session(self.token_manager)
        self.sleep = sleep

    def init(self) -> None:
        """Make sure the client holds a working token, logging in if needed."""
        logging.debug("initializing client")
        self.config.validate_credentials()
        self.token_manager.policy.reset()

        if self.token_manager.token:
            logging.debug("token is not empty, trying to use it")
            try:
                self.get_profile()
                return
            except (ChargingError, TokenError) as e:
                logging.warning(f"token is invalid: {e}")
                self.token_manager.set_token("")
        else:
            logging.debug("token is empty, trying to login")

        self.token_manager.login()

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = BACKEND_URL + path
        logging.debug("%s %s", method, url)
        try:
            return self.session.request(method, url, json=payload, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            logging.error(f"EKZ request failed: {e}")
            raise ChargingError(f"Failed to communicate with EKZ backend: {e}")

    @staticmethod
    def _decode(response: requests.Response) -> Dict[str, Any]:
        if response.status_code != 200:
            raise ChargingError(f"unexpected status {response.status_code} {response.reason}")
        try:
            body = response.json()
        except ValueError as e:
            logging.error(f"Invalid EKZ response: {e}")
            raise ChargingError(f"Invalid EKZ response: {e}")
        if not isinstance(body, dict):
            raise ChargingError("Invalid EKZ response: expected a JSON object")
        return body

    @staticmethod
    def _parse(factory: Callable[[Any], T], data: Any) -> T:
        try:
            return factory(data)
        except (AttributeError, TypeError, ValueError) as e:
            logging.error(f"Invalid EKZ response: {e}")
            raise ChargingError(f"Invalid EKZ response: {e}")

    def get_profile(self) -> Profile:
        response = self._request("GET", "/users/profile")
        body = self._decode(response)
        return self._parse(Profile.from_dict, body.get("data") or {})

    def get_user_charging_stations(self) -> List[ChargingStation]:
        response = self._request("POST", "/charging-stations/user-charging-stations")
        body = self._decode(response)
        return self._parse(
            lambda data: [ChargingStation.from_dict(s) for s in (data.get("charging_stations") or [])],
            body.get("data") or {},
        )

    def get_live_data(self, box_id: str, connector_id: int, connector_status: str = "") -> LiveData:
        payload = {
            "charge_box_id": box_id,
            "connector_id": connector_id,
            "connector_status": connector_status,
        }
        response = self._request("POST", "/charging-stations/charging-live-data", payload)
        if response.status_code == 404:
            raise self._not_found_error(response)
        return self._parse(LiveData.from_dict, self._decode(response))

    @staticmethod
    def _not_found_error(response: requests.Response) -> ChargingError:
        try:
            message = response.json().get("message") or ""
        except (AttributeError, ValueError) as e:
            return ChargingError(f"Invalid EKZ error response: {e}")
        if message == TRANSACTION_NOT_FOUND_MESSAGE:
            return TransactionNotFoundError(message)
        return ChargingError(message)

    def remote_start(self, box_id: str, connector_id: int) -> RemoteOperationResult:
        return self._remote_op(box_id, connector_id, "start")

    def remote_stop(self, box_id: str, connector_id: int) -> RemoteOperationResult:
        return self._remote_op(box_id, connector_id, "stop")

    def _remote_op(self, box_id: str, connector_id: int, op: str) -> RemoteOperationResult:
        logging.debug("remote %s on box %s connector %d", op, box_id, connector_id)
        payload = {"charge_box_id": box_id, "connector_id": connector_id}
        try:
            response = self._request("POST", f"/saascharge/remote-{op}", payload)
            body = self._decode(response)
        except ChargingError as e:
            raise ChargingError(f"remote {op} failed: {e}")
        logging.debug("remote %s response: %s", op, body)
        return self._parse(RemoteOperationResult.from_dict, body.get("data") or {})

    def start_charge(
        self,
        box_id: str,
        connector_id: int,
        on_live_data: Optional[Callable[[LiveData], None]] = None,
    ) -> None:
        """Start charging and wait until the station reports power.

        If a transaction is already running nothing is started. Otherwise a
        remote start is issued and live data is polled until power flows.
        """
        report = on_live_data or (lambda live: logging.info(
            "Status: %s, power: %.2f kW, charged energy: %.2f kWh",
            live.status, live.power, live.charged_energy,
        ))

        try:
            live_data = self.get_live_data(box_id, connector_id, CONNECTOR_STATUS_CHARGING)
        except TransactionNotFoundError:
            live_data = None
        if live_data is not None:
            logging.info("A charging transaction is already running")
            report(live_data)
            return

        result = self.remote_start(box_id, connector_id)
        logging.debug("remote start: %s", result)

        for _ in range(START_CHARGE_MAX_ATTEMPTS):
            try:
                live_data = self.get_live_data(box_id, connector_id, CONNECTOR_STATUS_CHARGING)
            except TransactionNotFoundError:
                self.sleep(NOT_FOUND_RETRY_SECONDS)
                continue

            report(live_data)
            if live_data.power > 0:
                return
            logging.debug("Power is %.2f, waiting %d seconds", live_data.power, NO_POWER_RETRY_SECONDS)
            self.sleep(NO_POWER_RETRY_SECONDS)

        raise ChargingError("max attempts reached while waiting for the charge to start")
