"""Tests for the Form.io REST client.

Tests cover:
- Login through the user and admin endpoints
- Token attachment and logout
- Error normalization (AuthError, RequestError, NetworkError)
- Form and submission CRUD round trips
- Draft helpers and the health check
"""

import asyncio
import json

import httpx
import pytest

from formio_bridge.errors import AuthError, NetworkError, RequestError
from formio_bridge.session import AuthSession
from formio_bridge.types import SubmissionState


def login_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={"_id": "u1", "data": {"email": "a@b.c"}},
        headers={"x-jwt-token": "tok123"},
    )


class TestLogin:
    """Test authentication against /user/login and /admin/login."""

    @pytest.mark.asyncio
    async def test_login_stores_token_from_header(self, client, service):
        """Should store the x-jwt-token header and post the credentials."""
        service.add("POST", "/user/login", login_ok)

        result = await client.login("a@b.c", "secret")

        assert result.token == "tok123"
        assert result.user["_id"] == "u1"
        assert client.token == "tok123"
        assert client.is_authenticated
        assert service.json_body() == {"data": {"email": "a@b.c", "password": "secret"}}

    @pytest.mark.asyncio
    async def test_login_falls_back_to_body_token(self, client, service):
        """Should accept a token carried in the response body."""
        service.add("POST", "/user/login", httpx.Response(200, json={"token": "bodytok"}))

        result = await client.login("a@b.c", "secret")

        assert result.token == "bodytok"

    @pytest.mark.asyncio
    async def test_admin_login_uses_admin_endpoint(self, client, service):
        """Should post to /admin/login when admin=True."""
        service.add("POST", "/admin/login", login_ok)

        await client.login("admin@example.com", "pw", admin=True)

        assert len(service.calls("POST", "/admin/login")) == 1

    @pytest.mark.asyncio
    async def test_login_rejected_raises_auth_error(self, client, service):
        """Should raise AuthError with the service message on bad credentials."""
        service.add(
            "POST", "/user/login", httpx.Response(400, text="User or password was incorrect")
        )

        with pytest.raises(AuthError) as exc_info:
            await client.login("a@b.c", "wrong")

        assert exc_info.value.message == "User or password was incorrect"
        assert exc_info.value.status == 400
        assert not client.is_authenticated

    @pytest.mark.asyncio
    async def test_login_without_token_raises(self, client, service):
        """Should raise AuthError when neither header nor body carries a token."""
        service.add("POST", "/user/login", httpx.Response(200, json={"_id": "u1"}))

        with pytest.raises(AuthError, match="No auth token received"):
            await client.login("a@b.c", "secret")


class TestTokenHandling:
    """Test token attachment on requests and logout."""

    @pytest.mark.asyncio
    async def test_token_attached_to_requests(self, client, service):
        """Should send the token as Bearer and x-jwt-token headers."""
        service.add("POST", "/user/login", login_ok)
        service.add("GET", "/form", httpx.Response(200, json=[]))

        await client.login("a@b.c", "secret")
        await client.list_forms()

        request = service.requests[-1]
        assert request.headers["Authorization"] == "Bearer tok123"
        assert request.headers["x-jwt-token"] == "tok123"

    @pytest.mark.asyncio
    async def test_no_auth_headers_after_logout(self, client, service):
        """Should send no auth headers once logged out."""
        service.add("POST", "/user/login", login_ok)
        service.add("GET", "/form", httpx.Response(200, json=[]))

        await client.login("a@b.c", "secret")
        await client.logout()
        await client.list_forms()

        request = service.requests[-1]
        assert "Authorization" not in request.headers
        assert "x-jwt-token" not in request.headers
        assert client.token is None

    @pytest.mark.asyncio
    async def test_no_auth_headers_without_login(self, client, service):
        """Should send anonymous requests before any login."""
        service.add("GET", "/form", httpx.Response(200, json=[]))

        await client.list_forms()

        assert "Authorization" not in service.requests[-1].headers

    @pytest.mark.asyncio
    async def test_set_token_uses_external_token(self, make_client, service):
        """Should attach a token set directly on the client."""
        service.add("GET", "/form", httpx.Response(200, json=[]))
        client = make_client(service)

        client.set_token("ext")
        await client.list_forms()

        assert service.requests[-1].headers["x-jwt-token"] == "ext"

    def test_shared_session(self, settings):
        """Should use a session passed in by the caller."""
        from formio_bridge.client import FormioClient

        session = AuthSession(token="shared")
        client = FormioClient(session=session, settings=settings)

        assert client.token == "shared"
        assert client.base_url == "http://formio.test"


class TestErrorNormalization:
    """Test mapping of failures onto the error taxonomy."""

    @pytest.mark.asyncio
    async def test_request_error_carries_service_message(self, client, service):
        """Should raise RequestError with the body's message and status."""
        service.add(
            "POST",
            "/form",
            httpx.Response(
                400,
                json={
                    "name": "ValidationError",
                    "message": "Name is required",
                    "details": [{"message": "Name is required", "path": ["name"]}],
                },
            ),
        )

        with pytest.raises(RequestError) as exc_info:
            await client.create_form({"title": "No name"})

        error = exc_info.value
        assert error.status == 400
        assert error.message == "Name is required"
        assert error.name == "ValidationError"
        assert error.details[0].path == ["name"]
        assert error.to_dict()["status"] == 400

    @pytest.mark.asyncio
    async def test_request_error_uses_text_body(self, client, service):
        """Should use a plain-text body as the message."""
        service.add("GET", "/form/missing", httpx.Response(404, text="Could not find form"))

        with pytest.raises(RequestError) as exc_info:
            await client.get_form("missing")

        assert exc_info.value.status == 404
        assert exc_info.value.message == "Could not find form"

    @pytest.mark.asyncio
    async def test_request_error_falls_back_to_reason(self, client, service):
        """Should fall back to the HTTP reason phrase for empty bodies."""
        service.add("GET", "/form", httpx.Response(500))

        with pytest.raises(RequestError) as exc_info:
            await client.list_forms()

        assert exc_info.value.message == "Internal Server Error"

    @pytest.mark.asyncio
    async def test_list_with_object_body(self, client, service):
        """Should raise RequestError when a list endpoint returns an object."""
        service.add("GET", "/form", httpx.Response(200, json={"status": "maintenance"}))

        with pytest.raises(RequestError) as exc_info:
            await client.list_forms()

        assert exc_info.value.status == 200
        assert exc_info.value.message == "Unexpected response body"

    @pytest.mark.asyncio
    async def test_list_skips_non_object_items(self, client, service, form_payload):
        """Should ignore list items that are not objects."""
        service.add("GET", "/form", httpx.Response(200, json=["junk", form_payload, 3]))

        forms = await client.list_forms()

        assert [f.id for f in forms] == ["X"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [httpx.Response(201), httpx.Response(201, json=[]), httpx.Response(201, text="Created")],
    )
    async def test_submission_with_unexpected_body(self, client, service, response):
        """Should raise RequestError when a created submission is not an object."""
        service.add("POST", "/form/X/submission", response)

        with pytest.raises(RequestError) as exc_info:
            await client.create_submission("X", {"a": 1})

        assert exc_info.value.status == 201
        assert exc_info.value.message == "Unexpected response body"

    @pytest.mark.asyncio
    async def test_unauthorized_clears_token(self, client, service):
        """Should raise AuthError on 401 and forget the token."""
        service.add("GET", "/form", httpx.Response(401))
        client.set_token("stale")

        with pytest.raises(AuthError) as exc_info:
            await client.list_forms()

        assert exc_info.value.message == "Unauthorized"
        assert client.token is None
        assert not client.is_authenticated

    @pytest.mark.asyncio
    async def test_connection_failure_raises_network_error(self, make_client):
        """Should raise NetworkError when the connection fails."""
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client = make_client(refuse)

        with pytest.raises(NetworkError) as exc_info:
            await client.list_forms()

        assert exc_info.value.timeout is False
        assert "Connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_raises_network_error(self, make_client):
        """Should raise NetworkError(timeout=True) when no response arrives in time."""
        async def hang(request):
            await asyncio.sleep(10)

        client = make_client(hang, timeout=0.05)

        with pytest.raises(NetworkError) as exc_info:
            await client.list_forms()

        assert exc_info.value.timeout is True


class TestForms:
    """Test form CRUD."""

    @pytest.mark.asyncio
    async def test_list_forms(self, client, service, form_payload):
        """Should parse every form in the list."""
        service.add("GET", "/form", httpx.Response(200, json=[form_payload]))

        forms = await client.list_forms()

        assert [f.id for f in forms] == ["X"]
        assert forms[0].title == "Contact"

    @pytest.mark.asyncio
    async def test_list_forms_passes_params(self, client, service):
        """Should forward query parameters."""
        service.add("GET", "/form", httpx.Response(200, json=[]))

        await client.list_forms(params={"type": "form", "limit": 10})

        assert service.requests[-1].url.params["type"] == "form"
        assert service.requests[-1].url.params["limit"] == "10"

    @pytest.mark.asyncio
    async def test_get_form(self, client, service, form_payload):
        """Should fetch one form by id."""
        service.add("GET", "/form/X", httpx.Response(200, json=form_payload))

        form = await client.get_form("X")

        assert form.name == "contact"
        assert form.keys() == ["name", "email", "submit"]

    @pytest.mark.asyncio
    async def test_get_form_by_path(self, client, service, form_payload):
        """Should fetch a form by the path it is served under."""
        service.add("GET", "/contact", httpx.Response(200, json=form_payload))

        form = await client.get_form_by_path("/contact")

        assert form.id == "X"

    @pytest.mark.asyncio
    async def test_create_form_sends_definition(self, client, service, form, form_payload):
        """Should post the full definition and parse the created form."""
        service.add("POST", "/form", lambda request: httpx.Response(201, content=request.content))

        created = await client.create_form(form)

        assert service.json_body() == form_payload
        assert created.id == "X"

    @pytest.mark.asyncio
    async def test_update_form(self, client, service, form_payload):
        """Should PUT the definition to the form's URL."""
        service.add("PUT", "/form/X", lambda request: httpx.Response(200, content=request.content))

        updated = await client.update_form("X", dict(form_payload, title="Renamed"))

        assert updated.title == "Renamed"

    @pytest.mark.asyncio
    async def test_delete_form(self, client, service):
        """Should DELETE the form and return None."""
        service.add("DELETE", "/form/X", httpx.Response(200, text="OK"))

        assert await client.delete_form("X") is None
        assert len(service.calls("DELETE", "/form/X")) == 1


class TestSubmissions:
    """Test submission CRUD and drafts."""

    @pytest.mark.asyncio
    async def test_create_submission_echoes_data(self, client, service):
        """Should wrap data as {"data": ...} and return the stored submission."""
        def store(request):
            body = json.loads(request.content)
            return httpx.Response(201, json={"_id": "S1", "form": "X", "data": body["data"]})

        service.add("POST", "/form/X/submission", store)

        submission = await client.create_submission("X", {"name": "Ada", "age": 36})

        assert service.json_body() == {"data": {"name": "Ada", "age": 36}}
        assert submission.id == "S1"
        assert submission.form == "X"
        assert submission.data == {"name": "Ada", "age": 36}
        assert submission.state == SubmissionState.SUBMITTED

    @pytest.mark.asyncio
    async def test_list_submissions(self, client, service):
        """Should parse the submission list and forward the query."""
        service.add(
            "GET",
            "/form/X/submission",
            httpx.Response(200, json=[{"_id": "S1", "form": "X", "data": {"a": 1}}]),
        )

        submissions = await client.list_submissions("X", query={"limit": 5})

        assert [s.id for s in submissions] == ["S1"]
        assert service.requests[-1].url.params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_get_submission(self, client, service):
        """Should fetch one submission."""
        service.add(
            "GET",
            "/form/X/submission/S1",
            httpx.Response(
                200,
                json={"_id": "S1", "form": "X", "data": {}, "created": "2024-03-01T12:00:00Z"},
            ),
        )

        submission = await client.get_submission("X", "S1")

        assert submission.created is not None
        assert submission.created.year == 2024

    @pytest.mark.asyncio
    async def test_update_submission(self, client, service):
        """Should PUT the new data."""
        service.add(
            "PUT",
            "/form/X/submission/S1",
            httpx.Response(200, json={"_id": "S1", "form": "X", "data": {"a": 2}}),
        )

        submission = await client.update_submission("X", "S1", {"a": 2})

        assert service.json_body() == {"data": {"a": 2}}
        assert submission.data == {"a": 2}

    @pytest.mark.asyncio
    async def test_delete_submission(self, client, service):
        """Should DELETE the submission."""
        service.add("DELETE", "/form/X/submission/S1", httpx.Response(200))

        await client.delete_submission("X", "S1")

        assert len(service.calls("DELETE", "/form/X/submission/S1")) == 1

    @pytest.mark.asyncio
    async def test_save_draft(self, client, service):
        """Should store the data with state=draft."""
        service.add(
            "POST",
            "/form/X/submission",
            httpx.Response(201, json={"_id": "D1", "form": "X", "state": "draft", "data": {"a": 1}}),
        )

        draft = await client.save_draft("X", {"a": 1})

        assert service.json_body() == {"data": {"a": 1}, "state": "draft"}
        assert draft.is_draft

    @pytest.mark.asyncio
    async def test_list_drafts(self, client, service):
        """Should filter submissions by state=draft."""
        service.add(
            "GET",
            "/form/X/submission",
            httpx.Response(200, json=[{"_id": "D1", "form": "X", "state": "draft"}]),
        )

        drafts = await client.list_drafts("X")

        assert service.requests[-1].url.params["state"] == "draft"
        assert all(d.is_draft for d in drafts)


class TestHealthAndUrls:
    """Test the health probe and URL helpers."""

    @pytest.mark.asyncio
    async def test_health_check(self, client, service):
        """Should return the health body."""
        service.add("GET", "/health", httpx.Response(200, json={"status": "ok", "version": "4.1"}))

        health = await client.health_check()

        assert health["status"] == "ok"

    @pytest.mark.asyncio
    async def test_health_check_text_body(self, client, service):
        """Should wrap a non-JSON body into a status mapping."""
        service.add("GET", "/health", httpx.Response(200, text="OK"))

        assert await client.health_check() == {"status": "OK"}

    def test_urls(self, client):
        """Should build form and submission URLs on the base URL."""
        assert client.form_url("X") == "http://formio.test/form/X"
        assert client.submission_url("X", "S1") == "http://formio.test/form/X/submission/S1"


class TestAuthSession:
    """Test the in-memory token holder."""

    def test_clear_reports_whether_token_was_present(self):
        """Should return True only for the first clear."""
        session = AuthSession()
        session.set_token("abc", user={"_id": "u1"})

        assert session.clear() is True
        assert session.clear() is False
        assert session.user is None

    def test_empty_token_is_unauthenticated(self):
        session = AuthSession(token="")
        assert not session.is_authenticated
        assert session.auth_headers() == {}


class TestSettings:
    """Test environment-driven configuration."""

    def test_env_prefix(self, monkeypatch):
        """Should read FORMIO_ variables."""
        from formio_bridge.config import Settings

        monkeypatch.setenv("FORMIO_URL", "http://localhost:3002")
        monkeypatch.setenv("FORMIO_TIMEOUT", "2.5")

        settings = Settings()

        assert settings.url == "http://localhost:3002"
        assert settings.timeout == 2.5
        assert settings.hosted_ready_delay == 4.0
