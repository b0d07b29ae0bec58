import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import yaml

from exceptions import ConfigError

APP_NAME = "ekz-tesla"
CONFIG_FILE_NAME = "config.yaml"

# Environment variables override values read from the config file.
ENV_CONFIG_FILE = "EKZ_CONFIG"
ENV_OVERRIDES = {
    "EKZ_USERNAME": "username",
    "EKZ_PASSWORD": "password",
    "EKZ_TOKEN": "token",
}
ENV_STATION_OVERRIDES = {
    "EKZ_CHARGING_STATION_BOX_ID": ("box_id", str),
    "EKZ_CHARGING_STATION_CONNECTOR_ID": ("connector_id", int),
    "EKZ_CHARGING_STATION_LATITUDE": ("latitude", float),
    "EKZ_CHARGING_STATION_LONGITUDE": ("longitude", float),
}


def default_config_path() -> str:
    """Return the config file location, preferring the XDG config directory."""
    config_home = os.getenv("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    xdg_path = os.path.join(config_home, APP_NAME, CONFIG_FILE_NAME)
    if not os.path.exists(xdg_path) and os.path.exists(CONFIG_FILE_NAME):
        return CONFIG_FILE_NAME
    return xdg_path


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        logging.debug(f"Config file {path} not found, using defaults and environment variables")
        return {}
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, IOError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logging.debug(f"Using config file: {path}")
    return data


def save_token(path: str, token: str) -> None:
    """Persist a bearer token into the config file, keeping its other keys."""
    data = _read_yaml(path)
    data["token"] = token
    directory = os.path.dirname(path)
    try:
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            logging.info(f"Token saved to {path}")
    except IOError as e:
        logging.error(f"Failed to save token: {e}")
        raise ConfigError(f"Failed to save token to {path}: {e}")


@dataclass
class ChargingStationConfig:
    """Physical charging station targeted by remote start/stop."""

    latitude: float = 0.0
    longitude: float = 0.0
    box_id: str = ""
    connector_id: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ChargingStationConfig":
        data = data or {}
        try:
            return cls(
                latitude=float(data.get("latitude") or 0.0),
                longitude=float(data.get("longitude") or 0.0),
                box_id=str(data.get("box_id") or ""),
                connector_id=int(data.get("connector_id") or 0),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid charging_station configuration: {e}")


@dataclass
class Config:
    """Credentials, cached token and charging station descriptor."""

    username: str = ""
    password: str = ""
    token: str = ""
    charging_station: ChargingStationConfig = field(default_factory=ChargingStationConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        return cls(
            username=str(data.get("username") or ""),
            password=str(data.get("password") or ""),
            token=str(data.get("token") or ""),
            charging_station=ChargingStationConfig.from_dict(data.get("charging_station")),
        )

    @classmethod
    def from_file(cls, path: str) -> "Config":
        return cls.from_dict(_read_yaml(path))

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "Config":
        """Build the config with precedence flag > environment > file.

        Args:
            path: Config file location, defaults to the XDG config path
            env: Environment mapping, defaults to ``os.environ``
            overrides: Values given on the command line; ``None`` values are ignored
        """
        if env is None:
            env = os.environ
        config = cls.from_file(path or default_config_path())
        config.apply_env(env)
        if overrides:
            config.apply_overrides(overrides)
        return config

    def apply_env(self, env: Mapping[str, str]) -> None:
        for env_var, attr in ENV_OVERRIDES.items():
            value = env.get(env_var)
            if value:
                setattr(self, attr, value)

        for env_var, (attr, cast) in ENV_STATION_OVERRIDES.items():
            value = env.get(env_var)
            if not value:
                continue
            try:
                setattr(self.charging_station, attr, cast(value))
            except ValueError:
                raise ConfigError(f"Environment variable {env_var} has an invalid value: {value}")

    def apply_overrides(self, overrides: Mapping[str, Any]) -> None:
        station_fields = {"latitude", "longitude", "box_id", "connector_id"}
        for key, value in overrides.items():
            if value is None:
                continue
            if key in station_fields:
                setattr(self.charging_station, key, value)
            elif hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ConfigError(f"Unknown configuration key: {key}")

    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def validate_credentials(self) -> None:
        if not self.token and not self.has_credentials():
            raise ConfigError("username and password are not set and no token is available")

    def validate_charging_station(self) -> None:
        station = self.charging_station
        if station.latitude == 0:
            raise ConfigError("charging_station.latitude is not set")
        if station.longitude == 0:
            raise ConfigError("charging_station.longitude is not set")
        if not station.box_id:
            raise ConfigError("charging_station.box_id is not set")
        if station.connector_id == 0:
            raise ConfigError("charging_station.connector_id is not set")
