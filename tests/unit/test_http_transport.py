"""
Unit tests for sharedmeta.http_transport module.

Tests request construction and response handling against a mocked
requests session.
"""

from unittest.mock import MagicMock

import pytest
import requests

from sharedmeta.errors import ErrorCode, TransportError
from sharedmeta.http_transport import HttpTransport

BASE_URL = "https://relay.example.org/metadata/share"


def make_response(status=200, reason="OK", json_body=None, content=b"{}"):
    response = MagicMock()
    response.status_code = status
    response.reason = reason
    response.content = content
    if isinstance(json_body, Exception):
        response.json.side_effect = json_body
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    session.request.return_value = make_response(json_body={"ok": True})
    return session


@pytest.fixture
def transport(session):
    return HttpTransport(BASE_URL, timeout=7, session=session)


def sent(session):
    """Return (method, url, kwargs) of the last request."""
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


class TestRequests:
    """Test endpoint mapping."""

    def test_base_url_gets_trailing_slash(self, transport):
        assert transport.base_url == BASE_URL + "/"

    def test_session_headers(self, session, transport):
        assert session.headers["Accept"] == "application/json"
        assert "sharedmeta" in session.headers["User-Agent"]

    def test_get_challenge_is_unauthenticated(self, session, transport):
        transport.get_challenge()

        method, url, kwargs = sent(session)
        assert (method, url) == ("GET", BASE_URL + "/auth")
        assert "Authorization" not in kwargs["headers"]
        assert kwargs["timeout"] == 7

    def test_exchange_token_body(self, session, transport):
        transport.exchange_token("a" * 40, "pub", "sig", "nonce")

        method, url, kwargs = sent(session)
        assert (method, url) == ("POST", BASE_URL + "/auth")
        assert kwargs["json"] == {
            "mdid": "a" * 40,
            "pubkey": "pub",
            "signature": "sig",
            "nonce": "nonce",
        }

    @pytest.mark.parametrize(
        "call, expected_method, expected_path",
        [
            (lambda t: t.get_trust_list("tok"), "GET", "trusted"),
            (lambda t: t.put_trust_entry("tok", "b" * 40), "PUT", "trusted/" + "b" * 40),
            (lambda t: t.delete_trust_entry("tok", "b" * 40), "DELETE", "trusted/" + "b" * 40),
            (lambda t: t.get_message("tok", "m1"), "GET", "message/m1"),
            (lambda t: t.create_invitation("tok"), "POST", "share"),
            (lambda t: t.accept_invitation("tok", "i1"), "POST", "share/i1"),
            (lambda t: t.resolve_invitation("tok", "i1"), "GET", "share/i1"),
            (lambda t: t.delete_invitation("tok", "i1"), "DELETE", "share/i1"),
        ],
    )
    def test_authenticated_endpoints(self, session, transport, call, expected_method, expected_path):
        call(transport)

        method, url, kwargs = sent(session)
        assert method == expected_method
        assert url == BASE_URL + "/" + expected_path
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_get_trust_entry_query(self, session, transport):
        transport.get_trust_entry("tok", "b" * 40)

        method, url, kwargs = sent(session)
        assert url == BASE_URL + "/trusted"
        assert kwargs["params"] == {"mdid": "b" * 40}

    def test_post_message(self, session, transport):
        envelope = {"sender": "a", "recipient": "b", "payload": "p", "signature": "s"}
        transport.post_message("tok", envelope)

        method, url, kwargs = sent(session)
        assert (method, url) == ("POST", BASE_URL + "/messages")
        assert kwargs["json"] == envelope

    @pytest.mark.parametrize("only_unprocessed, flag", [(True, "true"), (False, "false")])
    def test_get_messages_filter(self, session, transport, only_unprocessed, flag):
        transport.get_messages("tok", only_unprocessed)

        method, url, kwargs = sent(session)
        assert url == BASE_URL + "/messages"
        assert kwargs["params"] == {"new": flag}

    def test_set_message_processed(self, session, transport):
        transport.set_message_processed("tok", "m1", False)

        method, url, kwargs = sent(session)
        assert (method, url) == ("PATCH", BASE_URL + "/message/m1/processed")
        assert kwargs["json"] == {"processed": False}

    def test_path_segments_are_quoted(self, session, transport):
        transport.get_message("tok", "../auth")

        method, url, kwargs = sent(session)
        assert url == BASE_URL + "/message/..%2Fauth"


class TestResponses:
    """Test response and failure handling."""

    def test_json_body(self, session, transport):
        session.request.return_value = make_response(json_body={"nonce": "n"})

        response = transport.get_challenge()
        assert response.ok
        assert response.body == {"nonce": "n"}

    def test_error_status_returned(self, session, transport):
        session.request.return_value = make_response(404, "Not Found", {"error": "missing"})

        response = transport.get_message("tok", "m1")
        assert response.ok is False
        assert response.status == 404
        assert response.reason == "Not Found"

    def test_empty_body(self, session, transport):
        session.request.return_value = make_response(204, "No Content", content=b"")

        response = transport.delete_invitation("tok", "i1")
        assert response.ok
        assert response.body is None

    def test_non_json_body(self, session, transport):
        session.request.return_value = make_response(
            502, "Bad Gateway", ValueError("no json"), content=b"<html>"
        )

        response = transport.get_challenge()
        assert response.status == 502
        assert response.body is None

    def test_connection_failure(self, session, transport):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(TransportError) as exc_info:
            transport.get_challenge()
        assert exc_info.value.code == ErrorCode.E201_CONNECTION_FAILED

    def test_timeout(self, session, transport):
        session.request.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(TransportError) as exc_info:
            transport.get_challenge()
        assert exc_info.value.code == ErrorCode.E202_CONNECTION_TIMEOUT

    def test_context_manager_closes_session(self, session):
        with HttpTransport(BASE_URL, session=session) as transport:
            assert transport.session is session
        session.close.assert_called_once_with()
