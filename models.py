"""Response payloads of the EKZ e-mobility backend."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

CONNECTOR_STATUS_CHARGING = "CHARGING"


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class Connector:
    connector_id: int
    connector_name: str = ""
    connector_status: str = ""
    charging_process_status: str = ""
    status: str = ""
    plug_type: str = ""
    has_permission: bool = False
    current_tariff: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Connector":
        prices = (data.get("tariff_data") or {}).get("prices") or {}
        return cls(
            connector_id=int(data.get("connectorId") or 0),
            connector_name=data.get("connectorName") or "",
            connector_status=data.get("connectorStatus") or "",
            charging_process_status=data.get("chargingProcessStatus") or "",
            status=data.get("status") or "",
            plug_type=data.get("plugType") or "",
            has_permission=bool(data.get("hasPermission")),
            current_tariff=prices.get("current") or "",
        )


@dataclass
class ChargeBox:
    charge_box_id: str
    charge_box_name: str = ""
    charging_process_status: str = ""
    connector_status: str = ""
    online: bool = False
    street: str = ""
    zip: str = ""
    city: str = ""
    country: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    tariff_schedule: str = ""
    connectors: List[Connector] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChargeBox":
        return cls(
            charge_box_id=str(data.get("chargeBoxId") or ""),
            charge_box_name=data.get("chargeBoxName") or "",
            charging_process_status=data.get("chargingProcessStatus") or "",
            connector_status=data.get("connectorStatus") or "",
            online=bool(data.get("online")),
            street=data.get("street") or "",
            zip=data.get("zip") or "",
            city=data.get("city") or "",
            country=data.get("country") or "",
            latitude=_float(data.get("gpsLat")),
            longitude=_float(data.get("gpsLng")),
            tariff_schedule=data.get("tariff_schedule") or "",
            connectors=[Connector.from_dict(c) for c in data.get("connectors") or []],
        )


@dataclass
class ChargingStation:
    charge_boxes: List[ChargeBox] = field(default_factory=list)
    invoiced: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChargingStation":
        return cls(
            charge_boxes=[ChargeBox.from_dict(b) for b in data.get("chargeBoxes") or []],
            invoiced=bool(data.get("invoiced")),
        )


@dataclass
class LiveData:
    """Telemetry of the transaction running on a connector."""

    status: str
    power: float = 0.0
    charged_energy: float = 0.0
    charge_box_id: str = ""
    connector_id: str = ""
    transaction_id: int = 0
    start_timestamp: int = 0
    tariff_status: str = ""
    tariff_price: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiveData":
        tariff = data.get("current_tariff") or {}
        return cls(
            status=data.get("status") or "",
            power=_float(data.get("power")),
            charged_energy=_float(data.get("charged_energy")),
            charge_box_id=str(data.get("chargeBoxId") or ""),
            connector_id=str(data.get("connectorId") or ""),
            transaction_id=int(data.get("transaction_id") or 0),
            start_timestamp=int(data.get("starttimestamp") or 0),
            tariff_status=tariff.get("tariff_status") or "",
            tariff_price=_float(tariff.get("tariff_price")),
        )


@dataclass
class RemoteOperationResult:
    charging_status: str = ""
    start_time: str = ""
    tariff_status: str = ""
    current_power: Optional[Any] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteOperationResult":
        tariff = data.get("current_tariff") or {}
        return cls(
            charging_status=data.get("charging_status") or "",
            start_time=data.get("start_time") or "",
            tariff_status=tariff.get("tariff_status") or "",
            current_power=data.get("current_power"),
        )


@dataclass
class Profile:
    user_id: int
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    country: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        personal = data.get("personal") or {}
        return cls(
            user_id=int(personal.get("user_id") or 0),
            email=personal.get("email") or "",
            first_name=personal.get("first_name") or "",
            last_name=personal.get("last_name") or "",
            country=personal.get("country") or "",
        )
