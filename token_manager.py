import logging
import threading
import time
from typing import Callable, Optional

import requests

from config import Config, save_token
from exceptions import AuthenticationExhaustedError, TokenError

BACKEND_URL = "https://be.emob.ekz.ch"
LOGIN_URL = BACKEND_URL + "/users/log-in"
CLIENT_HEADERS = {
    "User-Agent": "ekz-tesla",
    "Device": "WEB",
}
MAX_REFRESH_ATTEMPTS = 3
REFRESH_COOLDOWN_SECONDS = 5 * 60
REQUEST_TIMEOUT = 30


class RefreshPolicy:
    """Bounds how often a rejected token may trigger a new login.

    At most ``max_attempts`` consecutive failed refreshes are allowed, and a
    new attempt after a failure has to wait ``cooldown`` seconds. Any
    successful login resets the counter.
    """

    def __init__(
        self,
        max_attempts: int = MAX_REFRESH_ATTEMPTS,
        cooldown: float = REFRESH_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_attempts = max_attempts
        self.cooldown = cooldown
        self.clock = clock
        self.attempts = 0
        self.last_refresh: Optional[float] = None
        self._lock = threading.Lock()

    def check(self) -> None:
        with self._lock:
            if self.attempts >= self.max_attempts:
                raise AuthenticationExhaustedError(
                    f"authentication failed: exceeded maximum refresh attempts ({self.max_attempts}). "
                    "Please check your credentials"
                )
            if (
                self.attempts > 0
                and self.last_refresh is not None
                and self.clock() - self.last_refresh < self.cooldown
            ):
                raise AuthenticationExhaustedError(
                    "authentication failed: too many recent attempts. "
                    f"Please wait {int(self.cooldown)}s before retrying"
                )

    def record_attempt(self) -> int:
        with self._lock:
            self.attempts += 1
            self.last_refresh = self.clock()
            return self.attempts

    def reset(self) -> None:
        with self._lock:
            self.attempts = 0


class EkzTokenManager:
    """Holds the EKZ bearer token and obtains a new one when needed."""

    def __init__(
        self,
        config: Config,
        config_path: Optional[str] = None,
        policy: Optional[RefreshPolicy] = None,
    ) -> None:
        self.config = config
        self.config_path = config_path
        self.policy = policy or RefreshPolicy()
        self._token = config.token
        self._lock = threading.Lock()

    @property
    def token(self) -> str:
        with self._lock:
            return self._token

    def set_token(self, token: str) -> None:
        with self._lock:
            self._token = token

    def has_credentials(self) -> bool:
        return self.config.has_credentials()

    def login(self, username: Optional[str] = None, password: Optional[str] = None) -> str:
        """Log in with email and password and store the returned token.

        The request goes through a plain ``requests.post`` so a rejected
        login never re-enters the token refresh adapter.
        """
        username = username or self.config.username
        password = password or self.config.password
        payload = {
            "device": "WEB",
            "email": username,
            "password": password,
            "isSocialLogin": False,
            "provider": None,
            "token": None,
        }
        headers = dict(CLIENT_HEADERS, **{"Content-Type": "application/json"})

        logging.debug("Logging in as %s", username)
        try:
            response = requests.post(LOGIN_URL, json=payload, headers=headers, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            logging.error(f"Login request failed: {e}")
            raise TokenError(f"Login request failed: {e}")

        if response.status_code != 200:
            raise TokenError(f"login failed: {response.status_code} {response.reason}")

        try:
            token = response.json()["token"]
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Invalid login response: {e}")
            raise TokenError(f"Invalid login response: {e}")
        if not token:
            raise TokenError("Invalid login response: empty token")

        self.set_token(token)
        self.policy.reset()
        self._save_token(token)
        logging.debug("login OK")
        return token

    def refresh(self) -> str:
        """Log in again after the backend rejected the current token.

        Raises:
            AuthenticationExhaustedError: If the refresh policy refuses another attempt
            TokenError: If the login itself fails
        """
        self.policy.check()
        attempt = self.policy.record_attempt()
        logging.debug(
            "Refreshing token due to 401 response (attempt %d/%d)", attempt, self.policy.max_attempts
        )
        try:
            token = self.login()
        except TokenError as e:
            logging.error(f"Token refresh failed (attempt {attempt}/{self.policy.max_attempts}): {e}")
            raise
        logging.info("Token refreshed successfully")
        return token

    def _save_token(self, token: str) -> None:
        self.config.token = token
        if not self.config_path:
            return
        save_token(self.config_path, token)
