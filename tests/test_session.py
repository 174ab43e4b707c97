from __future__ import annotations

import asyncio

import aiohttp
import pytest

from hailo_libero.api import HailoConnectionError
from hailo_libero.models import Session
from hailo_libero.profiles import parse_cookie

from helpers import BASE_URL, MockResponse, make_client, requested


def test_login_200_with_cookie_then_probe_skips_login() -> None:
    async def _run() -> None:
        client, session = make_client(
            [
                MockResponse(200, "", headers={"Set-Cookie": "c=ABC123; Path=/; HttpOnly"}),
                MockResponse(200, "<html>config</html>"),
                MockResponse(200, "<html>config</html>"),
            ]
        )
        sessions = client.sessions
        assert await sessions.authenticate() is True
        assert sessions.session == Session(cookie_token="c=ABC123", authenticated=True)

        assert await sessions.ensure_authenticated() is True
        assert await sessions.ensure_authenticated() is True

        calls = requested(session)
        assert calls == [
            ("POST", BASE_URL + "/login"),
            ("GET", BASE_URL + "/"),
            ("GET", BASE_URL + "/"),
        ]
        # The cookie rides along on the probes
        probe_headers = session.request.call_args_list[1][1]["headers"]
        assert probe_headers["Cookie"] == "c=ABC123"

    asyncio.run(_run())


def test_login_sends_pin_form() -> None:
    async def _run() -> None:
        client, session = make_client(
            [MockResponse(200, "", headers={"Set-Cookie": "c=X1"})], password="4711"
        )
        await client.sessions.authenticate()
        kwargs = session.request.call_args[1]
        assert kwargs["data"] == {"pin": "4711"}
        assert kwargs["json"] is None
        assert kwargs["allow_redirects"] is False

    asyncio.run(_run())


def test_login_redirect_to_root_with_cookie_succeeds() -> None:
    async def _run() -> None:
        client, _ = make_client(
            [
                MockResponse(
                    301,
                    headers=[("Location", "/"), ("Set-Cookie", "c=R00T; Path=/")],
                )
            ]
        )
        assert await client.sessions.authenticate() is True
        assert client.sessions.session.cookie_token == "c=R00T"

    asyncio.run(_run())


def test_login_redirect_elsewhere_fails() -> None:
    async def _run() -> None:
        client, _ = make_client(
            [MockResponse(302, headers=[("Location", "/login"), ("Set-Cookie", "c=NOPE")])]
        )
        assert await client.sessions.authenticate() is False
        assert client.sessions.session == Session()

    asyncio.run(_run())


def test_login_without_cookie_clears_session() -> None:
    async def _run() -> None:
        client, _ = make_client(
            [
                MockResponse(200, headers={"Set-Cookie": "c=OLD"}),
                MockResponse(200, "welcome"),
            ]
        )
        assert await client.sessions.authenticate() is True
        assert await client.sessions.authenticate() is False
        assert client.sessions.session.cookie_token is None
        assert client.sessions.authenticated is False

    asyncio.run(_run())


def test_login_with_malformed_cookie_fails() -> None:
    async def _run() -> None:
        client, _ = make_client([MockResponse(200, headers={"Set-Cookie": "garbage"})])
        assert await client.sessions.authenticate() is False

    asyncio.run(_run())


def test_probe_redirect_triggers_login() -> None:
    async def _run() -> None:
        client, session = make_client(
            [
                MockResponse(301, headers={"Location": "/login"}),
                MockResponse(301, headers=[("Location", "/"), ("Set-Cookie", "c=NEW")]),
            ]
        )
        assert await client.sessions.ensure_authenticated() is True
        assert client.sessions.session.cookie_token == "c=NEW"
        assert [m for m, _ in requested(session)] == ["GET", "POST"]

    asyncio.run(_run())


def test_network_failure_leaves_session_untouched() -> None:
    async def _run() -> None:
        client, session = make_client(
            [
                MockResponse(200, headers={"Set-Cookie": "c=KEEP"}),
                aiohttp.ClientConnectionError("Connection refused"),
                asyncio.TimeoutError(),
            ]
        )
        await client.sessions.authenticate()
        with pytest.raises(HailoConnectionError):
            await client.sessions.ensure_authenticated()
        with pytest.raises(HailoConnectionError):
            await client.sessions.authenticate()
        assert client.sessions.session.cookie_token == "c=KEEP"
        assert client.sessions.authenticated is True

    asyncio.run(_run())


def test_json_profile_login() -> None:
    async def _run() -> None:
        client, session = make_client(
            [
                MockResponse(200, "{}", headers={"Set-Cookie": "sid=42; Path=/"}),
                MockResponse(401, ""),
                MockResponse(200, "{}", headers={"Set-Cookie": "sid=43"}),
            ],
            profile="json_password",
            password="hailo",
        )
        assert await client.sessions.authenticate() is True
        assert session.request.call_args[1]["json"] == {"password": "hailo"}

        # /status answering 401 means the session is gone
        assert await client.sessions.ensure_authenticated() is True
        assert client.sessions.session.cookie_token == "sid=43"
        assert requested(session)[1] == ("GET", BASE_URL + "/status")

    asyncio.run(_run())


def test_parse_cookie() -> None:
    assert parse_cookie("c=ABC123; Path=/") == "c=ABC123"
    assert parse_cookie("c=ABC123;...") == "c=ABC123"
    assert parse_cookie("sid=abc; Path=/; Secure; Partitioned") == "sid=abc"
    assert parse_cookie(' data={"a":1} ; Path=/') == 'data={"a":1}'
    assert parse_cookie("c=; Path=/") is None
    assert parse_cookie("=abc; Path=/") is None
    assert parse_cookie("nonsense") is None
    assert parse_cookie(None) is None


def test_login_cookie_with_unknown_attributes() -> None:
    async def _run() -> None:
        for header, token in (
            ("c=ABC123;...", "c=ABC123"),
            ("sid=abc; Path=/; Secure; Partitioned", "sid=abc"),
        ):
            client, _ = make_client([MockResponse(200, "", headers={"Set-Cookie": header})])
            assert await client.sessions.authenticate() is True
            assert client.sessions.session == Session(cookie_token=token, authenticated=True)

    asyncio.run(_run())


def test_probe_server_error_does_not_send_credentials() -> None:
    async def _run() -> None:
        client, session = make_client([MockResponse(500, "Internal Error")])
        assert await client.sessions.ensure_authenticated() is False
        assert requested(session) == [("GET", BASE_URL + "/")]
        assert client.sessions.session == Session()

    asyncio.run(_run())
