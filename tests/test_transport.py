from __future__ import annotations

import pytest
from fastapi import Request, Response

from app.core.config import settings
from app.domain.auth.schemas import TokenPair
from app.services import transport


def _request(headers: dict[str, str] | None = None, cookies: dict[str, str] | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        raw.append((b"cookie", "; ".join(f"{k}={v}" for k, v in cookies.items()).encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw, "query_string": b""})


def _set_cookies(response: Response) -> dict[str, str]:
    out = {}
    for line in response.headers.getlist("set-cookie"):
        name = line.split("=", 1)[0]
        out[name] = line
    return out


PAIR = TokenPair(access_token="acc-1", refresh_token="ref-1")


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({"x-client-type": "web"}, "cookie"),
        ({"x-client-type": "WEB"}, "cookie"),
        ({"x-client-type": "mobile"}, "header"),
        ({"x-client-type": "web", "user-agent": "okhttp/4.12.0"}, "cookie"),
        ({"user-agent": "okhttp/4.12.0"}, "header"),
        ({"user-agent": "Mozilla/5.0 (X11; Linux x86_64)"}, "cookie"),
        ({}, "cookie"),
    ],
)
def test_resolve_profile(headers: dict[str, str], expected: str) -> None:
    assert transport.resolve_profile(_request(headers)) == expected


def test_user_agent_markers_are_configurable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "mobile_user_agent_markers", ["okhttp", "Dart/"])
    assert transport.resolve_profile(_request({"user-agent": "Dart/3.2 (dart:io)"})) == "header"


def test_extract_from_cookies() -> None:
    creds = transport.extract_credentials(_request(cookies={"accessToken": "a", "refreshToken": "r"}))
    assert (creds.access_token, creds.refresh_token, creds.channel) == ("a", "r", "cookie")


def test_extract_from_headers() -> None:
    creds = transport.extract_credentials(
        _request({"Authorization": "Bearer a", "x-refresh-token": "r"})
    )
    assert (creds.access_token, creds.refresh_token, creds.channel) == ("a", "r", "header")


def test_cookie_wins_over_header() -> None:
    creds = transport.extract_credentials(
        _request(
            {"Authorization": "Bearer header-a", "x-refresh-token": "header-r"},
            cookies={"accessToken": "cookie-a", "refreshToken": "cookie-r"},
        )
    )
    assert creds.access_token == "cookie-a"
    assert creds.refresh_token == "cookie-r"
    assert creds.channel == "cookie"
    assert creds.refresh_channel == "cookie"


def test_mixed_channels_are_recorded_per_token() -> None:
    creds = transport.extract_credentials(
        _request({"Authorization": "Bearer a"}, cookies={"refreshToken": "r"})
    )
    assert (creds.channel, creds.refresh_channel) == ("header", "cookie")
    assert creds.uses_cookies

    header_only = transport.extract_credentials(_request({"Authorization": "Bearer a", "x-refresh-token": "r"}))
    assert (header_only.channel, header_only.refresh_channel) == ("header", "header")
    assert not header_only.uses_cookies


def test_non_bearer_authorization_is_ignored() -> None:
    creds = transport.extract_credentials(_request({"Authorization": "Basic Zm9vOmJhcg=="}))
    assert creds.access_token is None
    assert creds.channel is None


def test_emit_cookie_profile_sets_strict_httponly_cookies_and_headers() -> None:
    response = Response()
    transport.emit_credentials(response, PAIR, "cookie")
    cookies = _set_cookies(response)
    assert set(cookies) == {"accessToken", "refreshToken", "newAccessToken"}
    for name in ("accessToken", "refreshToken"):
        line = cookies[name].lower()
        assert "httponly" in line
        assert "samesite=strict" in line
        assert f"max-age={settings.refresh_token_max_age}" in line
    assert "httponly" not in cookies["newAccessToken"].lower()
    assert response.headers["x-access-token"] == "acc-1"
    assert response.headers["x-refresh-token"] == "ref-1"
    assert response.headers["new-access-token"] == "true"


def test_emit_header_profile_never_sets_cookies() -> None:
    response = Response()
    transport.emit_credentials(response, PAIR, "header")
    assert response.headers.getlist("set-cookie") == []
    assert response.headers["x-access-token"] == "acc-1"
    assert response.headers["x-refresh-token"] == "ref-1"
    assert response.headers["new-access-token"] == "true"


def test_clear_credentials_expires_cookies() -> None:
    response = Response()
    transport.clear_credentials(response)
    cookies = _set_cookies(response)
    assert set(cookies) == {"accessToken", "refreshToken", "newAccessToken"}
    assert all("max-age=0" in line.lower() for line in cookies.values())
