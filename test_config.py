import os
import tempfile
import unittest

import yaml

from config import ChargingStationConfig, Config, default_config_path, save_token
from exceptions import ConfigError

FILE_CONFIG = {
    "username": "file-user",
    "password": "file-pass",
    "charging_station": {
        "box_id": "1234",
        "connector_id": 1,
        "latitude": 47.3769,
        "longitude": 8.5417,
    },
}


class TestConfigLoad(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "config.yaml")
        with open(self.path, "w") as f:
            yaml.safe_dump(FILE_CONFIG, f)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_load_from_file(self):
        config = Config.load(self.path, env={})
        self.assertEqual(config.username, "file-user")
        self.assertEqual(config.password, "file-pass")
        self.assertEqual(config.token, "")
        self.assertEqual(config.charging_station.box_id, "1234")
        self.assertEqual(config.charging_station.connector_id, 1)

    def test_missing_file_gives_empty_config(self):
        config = Config.load(os.path.join(self.tmpdir.name, "missing.yaml"), env={})
        self.assertEqual(config, Config())

    def test_env_overrides_file(self):
        env = {
            "EKZ_USERNAME": "env-user",
            "EKZ_TOKEN": "env-token",
            "EKZ_CHARGING_STATION_CONNECTOR_ID": "2",
            "EKZ_CHARGING_STATION_LATITUDE": "46.5",
        }
        config = Config.load(self.path, env=env)
        self.assertEqual(config.username, "env-user")
        self.assertEqual(config.password, "file-pass")
        self.assertEqual(config.token, "env-token")
        self.assertEqual(config.charging_station.connector_id, 2)
        self.assertEqual(config.charging_station.latitude, 46.5)
        self.assertEqual(config.charging_station.box_id, "1234")

    def test_flags_override_env(self):
        config = Config.load(
            self.path,
            env={"EKZ_CHARGING_STATION_BOX_ID": "env-box"},
            overrides={"box_id": "flag-box", "connector_id": None},
        )
        self.assertEqual(config.charging_station.box_id, "flag-box")
        self.assertEqual(config.charging_station.connector_id, 1)

    def test_invalid_env_value(self):
        with self.assertRaises(ConfigError):
            Config.load(self.path, env={"EKZ_CHARGING_STATION_CONNECTOR_ID": "one"})

    def test_unknown_override(self):
        with self.assertRaises(ConfigError):
            Config.load(self.path, env={}, overrides={"colour": "blue"})

    def test_invalid_yaml(self):
        with open(self.path, "w") as f:
            f.write("username: [unclosed\n")
        with self.assertRaises(ConfigError):
            Config.from_file(self.path)

    def test_non_mapping_yaml(self):
        with open(self.path, "w") as f:
            f.write("- just\n- a list\n")
        with self.assertRaises(ConfigError):
            Config.from_file(self.path)


class TestSaveToken(unittest.TestCase):
    def test_only_token_key_is_rewritten(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "config.yaml")
            with open(path, "w") as f:
                yaml.safe_dump(FILE_CONFIG, f)

            save_token(path, "abc")

            with open(path) as f:
                saved = yaml.safe_load(f)
        self.assertEqual(saved["token"], "abc")
        self.assertEqual(saved["username"], "file-user")
        self.assertEqual(saved["charging_station"], FILE_CONFIG["charging_station"])

    def test_creates_missing_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "ekz-tesla", "config.yaml")
            save_token(path, "abc")
            with open(path) as f:
                self.assertEqual(yaml.safe_load(f), {"token": "abc"})


class TestValidation(unittest.TestCase):
    def test_credentials(self):
        Config(token="abc").validate_credentials()
        Config(username="user", password="pass").validate_credentials()
        with self.assertRaises(ConfigError):
            Config(username="user").validate_credentials()

    def test_charging_station(self):
        station = ChargingStationConfig.from_dict(FILE_CONFIG["charging_station"])
        Config(charging_station=station).validate_charging_station()

        cases = [
            ("latitude", {"latitude": 0.0}),
            ("longitude", {"longitude": 0.0}),
            ("box_id", {"box_id": ""}),
            ("connector_id", {"connector_id": 0}),
        ]
        for name, change in cases:
            with self.subTest(name):
                data = dict(FILE_CONFIG["charging_station"], **change)
                config = Config(charging_station=ChargingStationConfig.from_dict(data))
                with self.assertRaises(ConfigError) as ctx:
                    config.validate_charging_station()
                self.assertIn(name, str(ctx.exception))

    def test_invalid_station_value(self):
        with self.assertRaises(ConfigError):
            ChargingStationConfig.from_dict({"connector_id": "first"})


class TestDefaultConfigPath(unittest.TestCase):
    def test_xdg_config_home(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            os.makedirs(os.path.join(tmpdir, "ekz-tesla"))
            xdg_path = os.path.join(tmpdir, "ekz-tesla", "config.yaml")
            with open(xdg_path, "w") as f:
                f.write("token: abc\n")
            old = os.environ.get("XDG_CONFIG_HOME")
            os.environ["XDG_CONFIG_HOME"] = tmpdir
            try:
                self.assertEqual(default_config_path(), xdg_path)
            finally:
                if old is None:
                    del os.environ["XDG_CONFIG_HOME"]
                else:
                    os.environ["XDG_CONFIG_HOME"] = old


if __name__ == "__main__":
    unittest.main()
