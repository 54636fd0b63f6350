"""
sharedmeta - HTTP relay transport.

Implements the Transport interface over the relay's REST endpoints using a
requests session. Responses are returned as-is; failed requests that never
reached the relay raise TransportError. No retries are performed.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from .constants import BEARER_PREFIX, REQUEST_TIMEOUT, USER_AGENT
from .errors import ErrorCode, TransportError
from .transport import Transport, TransportResponse

logger = logging.getLogger(__name__)


class HttpTransport(Transport):
    """Relay transport speaking JSON over HTTP.

    Attributes:
        base_url: Relay base URL, always ending with '/'
        timeout: Per-request timeout in seconds
        session: Underlying requests session
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
        user_agent: str = USER_AGENT,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json", "User-Agent": user_agent})

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> TransportResponse:
        headers: Dict[str, str] = {}
        if token is not None:
            headers["Authorization"] = BEARER_PREFIX + token

        url = self.base_url + path
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.Timeout as e:
            raise TransportError(
                ErrorCode.E202_CONNECTION_TIMEOUT, f"{method} {path} timed out", {"url": url}
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(
                ErrorCode.E201_CONNECTION_FAILED, f"{method} {path} failed: {e}", {"url": url}
            ) from e

        logger.debug(f"{method} {path} -> {response.status_code}")

        body = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                logger.debug(f"{method} {path} returned a non-JSON body")

        return TransportResponse(response.status_code, response.reason or "", body)

    @staticmethod
    def _segment(value: str) -> str:
        return quote(str(value), safe="")

    # Authentication

    def get_challenge(self) -> TransportResponse:
        return self._request("GET", "auth")

    def exchange_token(
        self, address: str, public_key: str, signature: str, nonce: str
    ) -> TransportResponse:
        return self._request(
            "POST",
            "auth",
            json={"mdid": address, "pubkey": public_key, "signature": signature, "nonce": nonce},
        )

    # Trust list

    def get_trust_list(self, token: str) -> TransportResponse:
        return self._request("GET", "trusted", token)

    def get_trust_entry(self, token: str, address: str) -> TransportResponse:
        return self._request("GET", "trusted", token, params={"mdid": address})

    def put_trust_entry(self, token: str, address: str) -> TransportResponse:
        return self._request("PUT", f"trusted/{self._segment(address)}", token)

    def delete_trust_entry(self, token: str, address: str) -> TransportResponse:
        return self._request("DELETE", f"trusted/{self._segment(address)}", token)

    # Messages

    def post_message(self, token: str, envelope: Dict[str, Any]) -> TransportResponse:
        return self._request("POST", "messages", token, json=envelope)

    def get_messages(self, token: str, only_unprocessed: bool) -> TransportResponse:
        return self._request(
            "GET", "messages", token, params={"new": "true" if only_unprocessed else "false"}
        )

    def get_message(self, token: str, message_id: str) -> TransportResponse:
        return self._request("GET", f"message/{self._segment(message_id)}", token)

    def set_message_processed(
        self, token: str, message_id: str, processed: bool
    ) -> TransportResponse:
        return self._request(
            "PATCH",
            f"message/{self._segment(message_id)}/processed",
            token,
            json={"processed": processed},
        )

    # Invitations

    def create_invitation(self, token: str) -> TransportResponse:
        return self._request("POST", "share", token)

    def accept_invitation(self, token: str, invite_id: str) -> TransportResponse:
        return self._request("POST", f"share/{self._segment(invite_id)}", token)

    def resolve_invitation(self, token: str, invite_id: str) -> TransportResponse:
        return self._request("GET", f"share/{self._segment(invite_id)}", token)

    def delete_invitation(self, token: str, invite_id: str) -> TransportResponse:
        return self._request("DELETE", f"share/{self._segment(invite_id)}", token)
