"""Tests for the best-effort GSTIN details lookup."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from gstr1_prep.domain.services import gstin_lookup
from gstr1_prep.domain.services.gstin_lookup import lookup_gstin_details

GSTIN = "27AAPFU0939F1ZV"

SEARCH_RESPONSE = {
    "data": {
        "gstin": GSTIN,
        "lgnm": "ACME UTILITIES PRIVATE LIMITED",
        "tradeNam": "ACME",
        "sts": "Active",
        "pradr": {"addr": {"stcd": "Maharashtra"}},
    }
}


def _settings(url="https://api.example.test", key="secret"):
    s = MagicMock()
    s.GSTIN_LOOKUP_URL = url
    s.GSTIN_LOOKUP_API_KEY = key
    s.GSTIN_LOOKUP_TIMEOUT = 5.0
    return s


def _client_returning(payload=None, error=None):
    """Patchable AsyncClient class whose instance .get() returns *payload* or raises *error*."""
    response = MagicMock()
    response.json.return_value = payload
    client = MagicMock()
    client.get = AsyncMock(return_value=response, side_effect=error)
    client_cls = MagicMock()
    client_cls.return_value.__aenter__ = AsyncMock(return_value=client)
    client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
    return client_cls, client


def test_lookup_success(event_loop):
    client_cls, client = _client_returning(SEARCH_RESPONSE)
    with patch.object(gstin_lookup, "settings", _settings()), \
            patch.object(gstin_lookup.httpx, "AsyncClient", client_cls):
        details = event_loop.run_until_complete(lookup_gstin_details(" 27aapfu0939f1zv "))

    assert details.gstin == GSTIN
    assert details.legal_name == "ACME UTILITIES PRIVATE LIMITED"
    assert details.trade_name == "ACME"
    assert details.state_code == "27"
    assert details.state_name == "Maharashtra"
    assert details.status == "Active"

    client_cls.assert_called_once_with(timeout=5.0)
    args, kwargs = client.get.call_args
    assert args[0] == "https://api.example.test/commonapi/v1.1/search"
    assert kwargs["params"]["gstin"] == GSTIN
    assert kwargs["headers"]["Authorization"] == "Bearer secret"


def test_missing_fields_fall_back(event_loop):
    client_cls, _ = _client_returning({"data": {"tradeNam": "ACME"}})
    with patch.object(gstin_lookup, "settings", _settings()), \
            patch.object(gstin_lookup.httpx, "AsyncClient", client_cls):
        details = event_loop.run_until_complete(lookup_gstin_details(GSTIN))

    assert details.legal_name == "ACME"
    assert details.state_name == "Maharashtra"
    assert details.status == "Unknown"


def test_no_url_configured(event_loop):
    client_cls, _ = _client_returning(SEARCH_RESPONSE)
    with patch.object(gstin_lookup, "settings", _settings(url="")), \
            patch.object(gstin_lookup.httpx, "AsyncClient", client_cls):
        assert event_loop.run_until_complete(lookup_gstin_details(GSTIN)) is None
    client_cls.assert_not_called()


def test_api_error_payload(event_loop):
    client_cls, _ = _client_returning({"error": True, "message": "Invalid GSTIN"})
    with patch.object(gstin_lookup, "settings", _settings()), \
            patch.object(gstin_lookup.httpx, "AsyncClient", client_cls):
        assert event_loop.run_until_complete(lookup_gstin_details(GSTIN)) is None


def test_timeout_returns_none(event_loop):
    client_cls, _ = _client_returning(error=httpx.ConnectTimeout("timed out"))
    with patch.object(gstin_lookup, "settings", _settings()), \
            patch.object(gstin_lookup.httpx, "AsyncClient", client_cls):
        assert event_loop.run_until_complete(lookup_gstin_details(GSTIN)) is None


def test_blank_gstin(event_loop):
    assert event_loop.run_until_complete(lookup_gstin_details("  ")) is None
