import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from tariff import TimeRange, default_high_tariff_schedule, is_high_tariff, next_low_tariff_period

DEFAULT_CHECK_INTERVAL = 5 * 60


class TariffScheduler:
    """Runs an autostart callback periodically, but only during low tariff."""

    def __init__(
        self,
        autostart_func: Callable[[], object],
        high_tariff_times: Optional[List[TimeRange]] = None,
        interval: float = DEFAULT_CHECK_INTERVAL,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if high_tariff_times is None:
            high_tariff_times = default_high_tariff_schedule()
        self.autostart_func = autostart_func
        self.high_tariff_times = list(high_tariff_times)
        self.interval = interval
        self.clock = clock
        self._lock = threading.Lock()
        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def start(self, cancel_event: Optional[threading.Event] = None) -> None:
        """Start the check loop in a background thread.

        Args:
            cancel_event: Optional event that stops the loop when set, in
                addition to ``stop()``

        Raises:
            RuntimeError: If the scheduler is already running
        """
        with self._lock:
            if self._running:
                raise RuntimeError("scheduler is already running")
            self._running = True
            self._stop_event = cancel_event if cancel_event is not None else threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name="tariff-scheduler", daemon=True
            )

        logging.info("Starting tariff scheduler")
        self._thread.start()

    def stop(self) -> None:
        """Stop the loop and wait for the background thread to exit."""
        with self._lock:
            thread = self._thread
            if not self._running and thread is None:
                return
            self._running = False
            self._thread = None
            self._stop_event.set()

        logging.info("Stopping tariff scheduler")
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _run(self, stop_event: threading.Event) -> None:
        try:
            self.check_and_charge()
            while not stop_event.wait(self.interval):
                self.check_and_charge()
            logging.info("Stop signal received, stopping scheduler")
        finally:
            with self._lock:
                if self._stop_event is stop_event:
                    self._running = False

    def check_and_charge(self) -> None:
        now = self.clock()
        high_tariff = self.is_high_tariff_time(now)
        logging.debug("Current time: %s, high tariff: %s", now.strftime("%Y-%m-%d %H:%M:%S %a"), high_tariff)

        if high_tariff:
            logging.debug("Currently in high tariff period, skipping charge attempt")
            return

        logging.info("Low tariff period detected, checking if we should start charging")
        try:
            self.autostart_func()
        except Exception as e:
            logging.error(f"Failed to attempt autostart: {e}")

    def is_high_tariff_time(self, moment: datetime) -> bool:
        return is_high_tariff(moment, self.high_tariff_times)

    def next_low_tariff_period(self) -> datetime:
        return next_low_tariff_period(self.clock(), self.high_tariff_times)
