"""Tests for the Record Store HTTP client using a fake requests session."""
import pytest
import requests

from gym_desk_api.app.core.errors import UnavailableError
from gym_desk_sync.remote import RecordStoreAPI
from tests.fakes import FakeResponse, FakeSession, envelope, error_envelope

BASE_URL = "http://store.test"


def make_api(routes, api_key=None) -> RecordStoreAPI:
    return RecordStoreAPI(base_url=BASE_URL + "/", api_key=api_key, session=FakeSession(BASE_URL, routes))


def test_success_envelope_is_unwrapped():
    api = make_api({("GET", "/api/v1/sync/members"): envelope([{"id": "m1"}])})
    records, error = api.fetch_collection("members")
    assert records == [{"id": "m1"}]
    assert error is None


def test_bearer_token_is_sent():
    api = make_api({("GET", "/health"): envelope({"status": "ok"})}, api_key="secret-token-123")
    assert api.is_remote_available() is True
    assert api.session.calls[0]["headers"] == {"Authorization": "Bearer secret-token-123"}


def test_http_error_carries_code_and_message():
    api = make_api({("POST", "/api/v1/members"): error_envelope("CONFLICT", "Duplicate e-mail", 409)})
    data, error = api.push_create("members", {"name": "x"})
    assert data is None
    assert error == {"status_code": 409, "code": "CONFLICT", "message": "Duplicate e-mail"}


def test_http_error_without_json_body():
    api = make_api({("GET", "/health"): FakeResponse(502, text="Bad Gateway")})
    assert api.is_remote_available() is False
    _, error = api._request("GET", "/health")
    assert error["status_code"] == 502
    assert error["message"] == "Bad Gateway"


def test_transport_error_is_unavailable():
    api = make_api({("GET", "/health"): requests.Timeout("timed out")})
    data, error = api._request("GET", "/health")
    assert data is None
    assert error["code"] == "UNAVAILABLE"


def test_record_ids_are_quoted():
    api = make_api({("PUT", "/api/v1/invoices/%23MP0001/status"): envelope({"id": "#MP0001"})})
    data, error = api.push_action("invoices", "#MP0001", "status", {"status": "paid"}, method="PUT")
    assert error is None
    assert data == {"id": "#MP0001"}


def test_pull_all_raises_on_first_failure():
    api = make_api({("GET", "/api/v1/sync/members"): envelope([])})
    with pytest.raises(UnavailableError) as excinfo:
        api.pull_all(["members", "invoices"])
    assert excinfo.value.code == "UNAVAILABLE"


def test_fetch_settings():
    api = make_api(
        {
            ("GET", "/api/v1/settings/pricing"): envelope({"monthly_fee": "1999.00"}),
            ("GET", "/api/v1/settings/terms"): envelope({"text": "Rules"}),
        }
    )
    settings, error = api.fetch_settings()
    assert error is None
    assert settings == {"pricing": {"monthly_fee": "1999.00"}, "terms_and_conditions": "Rules"}
