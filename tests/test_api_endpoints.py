"""
End-to-end tests for the HTTP surface.

The relay runs in-process via TestClient; Google is replaced by the fake
OAuth client from conftest and by AsyncMocks on the Drive/Sheets clients
(or, for wire-level cases, by the google_api MockTransport fixture).
"""

import re
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import httpx

from workspace_relay.core.config import settings
from workspace_relay.deps import get_auth_client
from workspace_relay.environments.base import ERROR_MALFORMED_RESPONSE, UpstreamError, UpstreamListError
from workspace_relay.environments.google import DriveFile, GoogleAuthClient, GoogleDriveClient, GoogleSheetsClient
from workspace_relay.environments.google.drive.client import ERROR_LIST_FAILED
from workspace_relay.environments.google.sheets.client import (
    ERROR_MISSING_BODY_PARAMS,
    ERROR_MISSING_READ_PARAMS,
    ERROR_READ_FAILED,
    ERROR_WRITE_FAILED,
)
from workspace_relay.main import app

from tests.conftest import REFRESH_TOKEN, VALID_CODE, make_tokens


TOKEN_PATTERN = re.compile(r'id="token">([^<]+)</div>')


def _displayed_token(html: str) -> str:
    match = TOKEN_PATTERN.search(html)
    assert match, "callback page shows no token"
    return match.group(1)


def _login_state(client, **params) -> str:
    response = client.get("/auth/google", params=params, follow_redirects=False)
    assert response.status_code == 302
    return parse_qs(urlparse(response.headers["location"]).query)["state"][0]


# ---------------------------------------------------------------------------
# HEALTH
# ---------------------------------------------------------------------------

class TestHealth:

    def test_root_banner(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.text == f"{settings.APP_NAME} is running."
        assert response.headers["content-type"].startswith("text/plain")

    def test_health_reports_configuration(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["auth_mode"] == settings.AUTH_MODE
        assert "google_configured" in body


# ---------------------------------------------------------------------------
# AUTH GATE
# ---------------------------------------------------------------------------

class TestAuthGate:
    """Every /api route sits behind the same gate."""

    def test_missing_bearer_is_401_with_auth_url(self, client):
        response = client.get("/api/drive/files")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "Authorization header with Bearer token is required."
        assert body["authUrl"] == settings.auth_url
        assert response.headers["www-authenticate"] == "Bearer"

    def test_unknown_session_is_401(self, client):
        response = client.get("/api/drive/files", headers={"Authorization": "Bearer not-a-session"})

        assert response.status_code == 401
        assert response.json()["authUrl"] == settings.auth_url

    def test_gate_runs_before_parameter_checks(self, client):
        """An anonymous request with missing params is still a 401."""
        assert client.get("/api/sheets/read").status_code == 401
        assert client.post("/api/sheets/write", json={}).status_code == 401
        assert client.put("/api/sheets/update", json={}).status_code == 401

    def test_expiring_token_is_refreshed_and_stored(self, client, broker, auth_client):
        sid = broker.mint()
        broker.store(sid, make_tokens(access_token="ya29.old", expires_in=60))

        with patch.object(GoogleDriveClient, "list_all_files", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = []
            response = client.get("/api/drive/files", headers={"Authorization": f"Bearer {sid}"})

        assert response.status_code == 200
        stored = broker.resolve(sid)
        assert stored.access_token.startswith("ya29.refreshed-")
        assert stored.refresh_token == REFRESH_TOKEN
        assert auth_client.token_requests[-1]["grant_type"] == "refresh_token"

    def test_expired_token_without_refresh_is_401(self, client, broker):
        sid = broker.mint()
        broker.store(sid, make_tokens(refresh_token=None, expires_in=-60))

        response = client.get("/api/drive/files", headers={"Authorization": f"Bearer {sid}"})

        assert response.status_code == 401
        assert response.json()["authUrl"] == settings.auth_url


# ---------------------------------------------------------------------------
# OAUTH FLOW
# ---------------------------------------------------------------------------

class TestGoogleLogin:

    def test_redirects_to_google_consent(self, client):
        response = client.get("/auth/google", follow_redirects=False)

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.netloc == "accounts.google.com"
        assert "state" in parse_qs(location.query)

    def test_unconfigured_client_is_503(self, client):
        unconfigured = GoogleAuthClient(client_id="x", client_secret="y")
        unconfigured.client_id = ""
        unconfigured.client_secret = ""
        app.dependency_overrides[get_auth_client] = lambda: unconfigured

        response = client.get("/auth/google", follow_redirects=False)

        assert response.status_code == 503
        assert "not configured" in response.json()["error"]

    def test_health_stays_up_when_unconfigured(self, client):
        unconfigured = GoogleAuthClient(client_id="x", client_secret="y")
        unconfigured.client_secret = ""
        app.dependency_overrides[get_auth_client] = lambda: unconfigured

        assert client.get("/health").status_code == 200
        assert client.get("/").status_code == 200


class TestGoogleCallback:

    def test_full_flow_mints_usable_session(self, client, broker):
        state = _login_state(client)

        response = client.get("/auth/google/callback", params={"code": VALID_CODE, "state": state})

        assert response.status_code == 200
        session_id = _displayed_token(response.text)
        assert broker.resolve(session_id).access_token.startswith("ya29.access-")

        files = [DriveFile(id="1", name="Budget"), DriveFile(id="2", name="Notes")]
        with patch.object(GoogleDriveClient, "list_all_files", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = files
            listing = client.get("/api/drive/files", headers={"Authorization": f"Bearer {session_id}"})

        assert listing.status_code == 200
        assert listing.json() == [{"id": "1", "name": "Budget"}, {"id": "2", "name": "Notes"}]

    def test_callback_without_state_still_exchanges(self, client, broker):
        response = client.get("/auth/google/callback", params={"code": VALID_CODE})

        assert response.status_code == 200
        assert len(broker) == 1

    def test_invalid_code_is_500_page_and_stores_nothing(self, client, broker):
        response = client.get("/auth/google/callback", params={"code": "4/0bogus"})

        assert response.status_code == 500
        assert "Failed to complete authentication." in response.text
        assert len(broker) == 0

    def test_missing_code_is_400(self, client):
        response = client.get("/auth/google/callback")

        assert response.status_code == 400
        assert "Missing authorization code." in response.text

    def test_provider_error_is_400(self, client, auth_client):
        response = client.get("/auth/google/callback", params={"error": "access_denied"})

        assert response.status_code == 400
        assert auth_client.token_requests == []

    def test_unknown_state_is_400(self, client, auth_client):
        response = client.get("/auth/google/callback", params={"code": VALID_CODE, "state": "forged"})

        assert response.status_code == 400
        assert auth_client.token_requests == []

    def test_state_is_single_use(self, client):
        state = _login_state(client)
        client.get("/auth/google/callback", params={"code": VALID_CODE, "state": state})

        replay = client.get("/auth/google/callback", params={"code": VALID_CODE, "state": state})

        assert replay.status_code == 400


class TestDisconnect:

    def test_disconnect_revokes_and_forgets_session(self, client, broker, auth_client, session_id, auth_headers):
        response = client.delete("/auth/google", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "success"
        assert auth_client.revoked == [REFRESH_TOKEN]
        assert session_id not in broker.store_backend

        assert client.get("/api/drive/files", headers=auth_headers).status_code == 401


# ---------------------------------------------------------------------------
# OTHER AUTH MODES
# ---------------------------------------------------------------------------

class TestAuthModesEndToEnd:

    def test_header_user_id_flow(self, client, broker, use_auth_mode):
        use_auth_mode("header_user_id")

        missing = client.get("/auth/google", follow_redirects=False)
        assert missing.status_code == 400
        assert missing.json()["error"] == "Missing required parameter: userId."

        state = _login_state(client, userId="user-42")
        callback = client.get("/auth/google/callback", params={"code": VALID_CODE, "state": state})
        assert callback.status_code == 200
        assert "relay-auth-complete" in callback.text
        assert "user-42" in broker.store_backend

        with patch.object(GoogleDriveClient, "list_all_files", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = []
            assert client.get("/api/drive/files", headers={"X-User-Id": "user-42"}).status_code == 200
            assert client.get("/api/drive/files", headers={"X-User-Id": "someone-else"}).status_code == 401

    def test_cookie_session_flow(self, client, use_auth_mode):
        use_auth_mode("cookie_session")

        callback = client.get("/auth/google/callback", params={"code": VALID_CODE})
        assert callback.status_code == 200
        assert settings.SESSION_COOKIE_NAME in callback.cookies

        with patch.object(GoogleDriveClient, "list_all_files", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = []
            assert client.get("/api/drive/files").status_code == 200

    def test_passthrough_bearer_shows_access_token(self, client, broker, use_auth_mode):
        use_auth_mode("passthrough_bearer")

        callback = client.get("/auth/google/callback", params={"code": VALID_CODE})
        access_token = _displayed_token(callback.text)

        assert access_token.startswith("ya29.access-")
        assert len(broker) == 0

        with patch.object(GoogleDriveClient, "list_all_files", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = []
            response = client.get("/api/drive/files", headers={"Authorization": f"Bearer {access_token}"})
        assert response.status_code == 200


# ---------------------------------------------------------------------------
# DRIVE
# ---------------------------------------------------------------------------

class TestDriveEndpoint:

    def test_listing_failure_is_500(self, client, auth_headers):
        with patch.object(GoogleDriveClient, "list_all_files", new_callable=AsyncMock) as mock_list:
            mock_list.side_effect = UpstreamListError(ERROR_LIST_FAILED, details="Internal Error", upstream_status=500)
            response = client.get("/api/drive/files", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"error": ERROR_LIST_FAILED, "details": "Internal Error"}

    def test_unparseable_google_answer_is_json_500(self, client, auth_headers, google_api):
        """A 200 HTML page from a proxy still yields the JSON error body."""
        google_api(lambda request: httpx.Response(200, text="<html>proxy</html>"))

        response = client.get("/api/drive/files", headers=auth_headers)

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"error": ERROR_LIST_FAILED, "details": ERROR_MALFORMED_RESPONSE}


# ---------------------------------------------------------------------------
# SHEETS
# ---------------------------------------------------------------------------

class TestSheetsEndpoints:

    def test_read_returns_rows(self, client, auth_headers):
        with patch.object(GoogleSheetsClient, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"range": "Sheet1!A1:B1", "values": [["a", "b"]]}
            response = client.get(
                "/api/sheets/read",
                params={"spreadsheetId": "1abc", "range": "Sheet1!A1:B1"},
                headers=auth_headers,
            )

        assert response.status_code == 200
        assert response.json() == [["a", "b"]]

    def test_read_empty_range_is_empty_list(self, client, auth_headers):
        with patch.object(GoogleSheetsClient, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"range": "Sheet1!A1:B1"}
            response = client.get(
                "/api/sheets/read",
                params={"spreadsheetId": "1abc", "range": "Sheet1!A1:B1"},
                headers=auth_headers,
            )

        assert response.json() == []

    def test_read_missing_params_is_400(self, client, auth_headers):
        response = client.get("/api/sheets/read", params={"spreadsheetId": "1abc"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == ERROR_MISSING_READ_PARAMS

    def test_write_returns_google_response(self, client, auth_headers):
        google_response = {"spreadsheetId": "1abc", "updates": {"updatedRows": 1}}
        with patch.object(GoogleSheetsClient, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = google_response
            response = client.post(
                "/api/sheets/write",
                json={"spreadsheetId": "1abc", "range": "Sheet1!A1", "values": [["x", 1]]},
                headers=auth_headers,
            )

        assert response.status_code == 200
        assert response.json() == google_response
        assert mock_request.call_count == 1
        assert mock_request.call_args.kwargs["params"] == {"valueInputOption": "USER_ENTERED"}

    def test_write_string_values_is_400_without_google_call(self, client, auth_headers):
        with patch.object(GoogleSheetsClient, "_make_request", new_callable=AsyncMock) as mock_request:
            response = client.post(
                "/api/sheets/write",
                json={"spreadsheetId": "1abc", "range": "Sheet1!A1", "values": "not-an-array"},
                headers=auth_headers,
            )

        assert response.status_code == 400
        mock_request.assert_not_called()

    def test_write_missing_fields_is_400(self, client, auth_headers):
        response = client.post("/api/sheets/write", json={"range": "Sheet1!A1"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == ERROR_MISSING_BODY_PARAMS

    def test_write_non_object_body_is_400(self, client, auth_headers):
        response = client.post("/api/sheets/write", json=[["x"]], headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == ERROR_MISSING_BODY_PARAMS

    def test_write_upstream_failure_is_500(self, client, auth_headers):
        with patch.object(GoogleSheetsClient, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = UpstreamError(ERROR_WRITE_FAILED, details="Requested entity was not found.")
            response = client.post(
                "/api/sheets/write",
                json={"spreadsheetId": "1abc", "range": "Sheet1!A1", "values": [["x"]]},
                headers=auth_headers,
            )

        assert response.status_code == 500
        assert response.json() == {"error": ERROR_WRITE_FAILED, "details": "Requested entity was not found."}

    def test_update_uses_put(self, client, auth_headers):
        with patch.object(GoogleSheetsClient, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"updatedCells": 2}
            response = client.put(
                "/api/sheets/update",
                json={"spreadsheetId": "1abc", "range": "Sheet1!A1:B1", "values": [["a", "b"]]},
                headers=auth_headers,
            )

        assert response.status_code == 200
        assert response.json() == {"updatedCells": 2}
        assert mock_request.call_args.args[0] == "PUT"

    def test_read_unparseable_google_answer_is_json_500(self, client, auth_headers, google_api):
        google_api(lambda request: httpx.Response(200, text="<html>proxy</html>"))

        response = client.get(
            "/api/sheets/read",
            params={"spreadsheetId": "1abc", "range": "Sheet1!A1"},
            headers=auth_headers,
        )

        assert response.status_code == 500
        assert response.json() == {"error": ERROR_READ_FAILED, "details": ERROR_MALFORMED_RESPONSE}
