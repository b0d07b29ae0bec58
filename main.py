import functools
import logging
import signal
import threading
import time
from typing import Any, Dict, Optional

import click
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from autostart import DEFAULT_MAXIMUM_CHARGE, AutostartService
from config import ENV_CONFIG_FILE, Config, default_config_path
from ekz_client import EkzClient
from exceptions import ConfigError, EkzError, TimeRangeError
from logging_utils import setup_logging
from presentation import LiveDataHistory, print_charging_stations, print_live_data
from scheduler import DEFAULT_CHECK_INTERVAL, TariffScheduler
from tariff import default_high_tariff_schedule, parse_time_ranges
from teslamate_client import TeslaMateClient
from token_manager import EkzTokenManager

# CLI to manage EKZ charging stations and automatically charge a Tesla
# reported by TeslaMate when it is plugged in at home.

VERSION = "0.1.0"
DEFAULT_CRON = "*/5 * * * *"
ONE_YEAR_SECONDS = 365 * 24 * 3600


class AppContext:
    """Config location and lazily created EKZ client shared by the commands."""

    def __init__(self, config_path: str) -> None:
        self.config_path = config_path
        self._client: Optional[EkzClient] = None

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> Config:
        return Config.load(self.config_path, overrides=overrides)

    def client(self, config: Config) -> EkzClient:
        if self._client is None:
            token_manager = EkzTokenManager(config, config_path=self.config_path)
            client = EkzClient(config, token_manager)
            client.init()
            self._client = client
        return self._client


def handle_errors(func):
    """Report domain errors as a CLI failure with a non-zero exit code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except EkzError as e:
            logging.debug("Command failed", exc_info=True)
            raise click.ClickException(str(e))

    return wrapper


def resolve_station(config: Config) -> Config:
    if not config.charging_station.box_id:
        raise ConfigError("box ID is required (use --box-id or set in config)")
    if not config.charging_station.connector_id:
        raise ConfigError("connector ID is required (use --connector-id or set in config)")
    return config


def wait_for_time_sync() -> None:
    # Devices without an RTC start at the epoch until NTP sets the clock.
    while time.time() < ONE_YEAR_SECONDS:
        logging.debug("Waiting for time to be set...")
        time.sleep(1)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    envvar=ENV_CONFIG_FILE,
    default=None,
    help="Config file (default is $XDG_CONFIG_HOME/ekz-tesla/config.yaml)",
)
@click.option(
    "--log-level",
    envvar="EKZ_LOG_LEVEL",
    default="info",
    show_default=True,
    help="Log level (debug, info, warn, error)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: str) -> None:
    """Manage your EKZ charging stations."""
    try:
        setup_logging(log_level)
    except ConfigError as e:
        raise click.BadParameter(str(e), param_hint="--log-level")
    ctx.obj = AppContext(config_path or default_config_path())


def station_options(func):
    func = click.option("--connector-id", type=int, default=None, help="Connector ID")(func)
    func = click.option("--box-id", default=None, help="Charging station box ID")(func)
    return func


@cli.command()
@station_options
@click.pass_obj
@handle_errors
def start(app: AppContext, box_id: Optional[str], connector_id: Optional[int]) -> None:
    """Start charging at a charging station."""
    config = resolve_station(app.load_config({"box_id": box_id, "connector_id": connector_id}))
    station = config.charging_station
    logging.debug("Starting charge at box %s, connector %d", station.box_id, station.connector_id)
    result = app.client(config).remote_start(station.box_id, station.connector_id)
    logging.debug("Remote start response: %s", result)
    click.echo("✅ Charging started successfully")


@cli.command()
@station_options
@click.pass_obj
@handle_errors
def stop(app: AppContext, box_id: Optional[str], connector_id: Optional[int]) -> None:
    """Stop charging at a charging station."""
    config = resolve_station(app.load_config({"box_id": box_id, "connector_id": connector_id}))
    station = config.charging_station
    logging.debug("Stopping charge at box %s, connector %d", station.box_id, station.connector_id)
    result = app.client(config).remote_stop(station.box_id, station.connector_id)
    logging.debug("Remote stop response: %s", result)
    click.echo("✅ Charging stopped successfully")


@cli.command(name="list")
@click.pass_obj
@handle_errors
def list_stations(app: AppContext) -> None:
    """List all charging stations of your EKZ account."""
    config = app.load_config()
    stations = app.client(config).get_user_charging_stations()
    print_charging_stations(stations)


@cli.command(name="live-data")
@station_options
@click.option("--interval", type=click.IntRange(min=1), default=5, show_default=True, help="Update interval in seconds")
@click.option("--once", is_flag=True, help="Get data once and exit")
@click.pass_obj
@handle_errors
def live_data(
    app: AppContext, box_id: Optional[str], connector_id: Optional[int], interval: int, once: bool
) -> None:
    """Display live charging data with a power trend."""
    config = resolve_station(app.load_config({"box_id": box_id, "connector_id": connector_id}))
    station = config.charging_station
    client = app.client(config)
    history = LiveDataHistory()

    logging.debug("Getting live data for box %s, connector %d", station.box_id, station.connector_id)
    try:
        while True:
            data = client.get_live_data(station.box_id, station.connector_id)
            history.record(data)
            print_live_data(data, history, continuous=not once)
            if once:
                break
            time.sleep(interval)
    except KeyboardInterrupt:
        pass


@cli.group()
@click.option("--car-id", type=int, required=True, help="TeslaMate car ID")
@click.option("--teslamate-api-url", required=True, help="TeslaMate API URL")
@click.option(
    "--maximum-charge",
    type=click.IntRange(1, 100),
    default=DEFAULT_MAXIMUM_CHARGE,
    show_default=True,
    help="Maximum charge percentage",
)
@click.pass_context
def autostart(ctx: click.Context, car_id: int, teslamate_api_url: str, maximum_charge: int) -> None:
    """Automatically start charging when the car is plugged in at home."""
    ctx.meta["autostart"] = {
        "car_id": car_id,
        "teslamate_api_url": teslamate_api_url,
        "maximum_charge": maximum_charge,
    }


def create_autostart_service(ctx: click.Context) -> AutostartService:
    app: AppContext = ctx.obj
    options = ctx.meta["autostart"]
    config = app.load_config()
    try:
        config.validate_charging_station()
    except ConfigError as e:
        raise ConfigError(f"invalid charging station config: {e}")
    car_api = TeslaMateClient(options["teslamate_api_url"])
    return AutostartService(
        app.client(config),
        car_api,
        options["car_id"],
        options["maximum_charge"],
        config.charging_station,
    )


@autostart.command()
@click.pass_context
@handle_errors
def once(ctx: click.Context) -> None:
    """Check conditions once and start charging if needed."""
    service = create_autostart_service(ctx)
    service.try_autostart()


@autostart.command()
@click.option("--cron", default=DEFAULT_CRON, show_default=True, help="Cron schedule")
@click.pass_context
@handle_errors
def scheduled(ctx: click.Context, cron: str) -> None:
    """Run autostart checks on a cron schedule."""
    try:
        trigger = CronTrigger.from_crontab(cron)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--cron")

    wait_for_time_sync()
    service = create_autostart_service(ctx)

    def run_autostart() -> None:
        try:
            service.try_autostart()
        except EkzError as e:
            logging.error(f"Autostart failed: {e}")

    scheduler = BlockingScheduler()
    scheduler.add_job(run_autostart, trigger, id="autostart", max_instances=1, coalesce=True)
    click.echo(f"Starting scheduled autostart with cron: {cron}")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        scheduler.shutdown(wait=False)


@autostart.command()
@click.option(
    "--high-tariff-times",
    multiple=True,
    help="High tariff time range 'HH:MM-HH:MM[:Mon,Tue,...]', repeatable. Default: 7:00-20:00:Mon,Tue,Wed,Thu,Fri",
)
@click.option(
    "--interval",
    type=click.IntRange(min=1),
    default=DEFAULT_CHECK_INTERVAL,
    show_default=True,
    help="Seconds between checks",
)
@click.pass_context
@handle_errors
def smart(ctx: click.Context, high_tariff_times: tuple, interval: int) -> None:
    """Autostart only during low tariff periods."""
    if high_tariff_times:
        try:
            schedule = parse_time_ranges(high_tariff_times)
        except TimeRangeError as e:
            raise click.BadParameter(str(e), param_hint="--high-tariff-times")
        click.echo(f"Using custom high tariff schedule: {', '.join(str(r) for r in schedule)}")
    else:
        schedule = default_high_tariff_schedule()
        click.echo("Using default high tariff schedule: Monday-Friday 07:00-20:00")

    wait_for_time_sync()
    service = create_autostart_service(ctx)

    shutdown = threading.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, lambda *_: shutdown.set())

    scheduler = TariffScheduler(service.try_autostart, schedule, interval=interval)
    scheduler.start(cancel_event=shutdown)

    if scheduler.is_high_tariff_time(scheduler.clock()):
        next_low = scheduler.next_low_tariff_period()
        click.echo(f"Next low tariff period starts at: {next_low.strftime('%Y-%m-%d %H:%M:%S %a')}")
    else:
        click.echo("Currently in low tariff period - charging attempts will begin")
    click.echo("Smart autostart scheduler started. Will charge only during low tariff periods.")
    click.echo("Press Ctrl+C to stop")

    while not shutdown.wait(1):
        pass
    click.echo("Shutting down scheduler...")
    scheduler.stop()
    click.echo("Smart autostart scheduler stopped")


@cli.command()
def version() -> None:
    """Print the version."""
    click.echo(f"ekz-tesla {VERSION}")


if __name__ == "__main__":
    cli()
