"""Requests transport that authenticates every call to the EKZ backend.

``TokenRefreshAdapter`` adds the bearer token and client headers to each
request. When the backend answers 401 it logs in again through the token
manager and replays the request once with the new token.
"""

import logging

import requests
from requests.adapters import HTTPAdapter

from exceptions import AuthenticationExhaustedError, TokenError
from token_manager import BACKEND_URL, CLIENT_HEADERS, EkzTokenManager


class TokenRefreshAdapter(HTTPAdapter):
    def __init__(self, token_manager: EkzTokenManager, **kwargs) -> None:
        super().__init__(**kwargs)
        self.token_manager = token_manager

    def _decorate(self, request: requests.PreparedRequest) -> None:
        token = self.token_manager.token
        if token:
            request.headers["Authorization"] = f"Token {token}"
        else:
            request.headers.pop("Authorization", None)
        request.headers.update(CLIENT_HEADERS)

    @staticmethod
    def _buffer_body(request: requests.PreparedRequest) -> None:
        # File-like and streamed bodies can only be consumed once; keep the bytes for a replay.
        body = request.body
        if body is None or isinstance(body, (bytes, str)):
            return
        if hasattr(body, "read"):
            body = body.read()
        else:
            body = b"".join(chunk.encode() if isinstance(chunk, str) else chunk for chunk in body)
        if isinstance(body, str):
            body = body.encode()
        request.body = body
        request.headers.pop("Transfer-Encoding", None)
        request.headers["Content-Length"] = str(len(body))

    def send(self, request: requests.PreparedRequest, **kwargs) -> requests.Response:
        self._buffer_body(request)
        self._decorate(request)
        replay = request.copy()

        response = super().send(request, **kwargs)
        if response.status_code != 401:
            return response

        if not self.token_manager.has_credentials():
            logging.debug("Got 401 for %s but no credentials are configured", request.url)
            return response

        try:
            self.token_manager.refresh()
        except AuthenticationExhaustedError:
            response.close()
            raise
        except TokenError:
            return response

        response.close()
        self._decorate(replay)
        logging.debug("Retrying %s %s with refreshed token", replay.method, replay.url)
        return super().send(replay, **kwargs)


def build_session(token_manager: EkzTokenManager) -> requests.Session:
    """Return a session whose calls to the EKZ backend carry the managed token."""
    session = requests.Session()
    session.mount(BACKEND_URL, TokenRefreshAdapter(token_manager))
    return session
