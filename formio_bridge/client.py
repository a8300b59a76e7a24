"""Async HTTP client for the Form.io REST API.

FormioClient translates typed method calls into single HTTP round trips
against a configured base URL. It attaches the session's bearer token when
present and normalizes every failure into the formio_bridge.errors taxonomy:

- 401 responses clear the session token and raise AuthError
- other non-2xx responses raise RequestError with the service's error body
- 2xx responses whose body is not the expected object or array raise
  RequestError("Unexpected response body") with the response status
- requests that never obtain a response raise NetworkError, with
  ``timeout=True`` when the per-request deadline expired

There are no retries, no backoff and no caching.

Usage:
    >>> async with FormioClient(base_url="http://localhost:3001") as client:
    ...     await client.login("admin@example.com", "secret")
    ...     forms = await client.list_forms()
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from formio_bridge.config import Settings, get_settings
from formio_bridge.errors import AuthError, FormioError, NetworkError, RequestError
from formio_bridge.models import (
    FormDefinition,
    HealthStatus,
    LoginResult,
    Submission,
    SubmissionData,
)
from formio_bridge.session import TOKEN_HEADER, AuthSession
from formio_bridge.types import SubmissionState

logger = logging.getLogger(__name__)

FormPayload = Union[FormDefinition, Dict[str, Any]]


def _decode_body(response: httpx.Response) -> Any:
    """Return the JSON body, the text body, or None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _unexpected_body(method: str, path: str, response: httpx.Response, body: Any) -> RequestError:
    logger.warning(
        "%s %s returned %s with an unexpected %s body",
        method, path, response.status_code, type(body).__name__,
    )
    return RequestError(status=response.status_code, message="Unexpected response body")


def _form_payload(definition: FormPayload) -> Dict[str, Any]:
    if isinstance(definition, FormDefinition):
        return definition.to_dict()
    return dict(definition)


class FormioClient:
    """Client for the form service.

    The client is constructed explicitly and handed to each screen
    controller; the token lives in the AuthSession it owns.

    Attributes:
        base_url: Service root, without trailing slash
        session: Holder of the bearer token
        timeout: Deadline in seconds for each request
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[AuthSession] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Service root; defaults to the FORMIO_URL setting
            session: Session to use; a fresh one is created when omitted
            timeout: Per-request deadline in seconds; defaults to FORMIO_TIMEOUT
            transport: Optional httpx transport (tests use httpx.MockTransport)
            settings: Settings to read defaults from
        """
        settings = settings or get_settings()
        self.base_url = (base_url or settings.url).rstrip("/")
        self.session = session or AuthSession()
        self.timeout = settings.timeout if timeout is None else timeout
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "FormioClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # Transport

    async def _send(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Perform one round trip and normalize failures.

        Raises:
            AuthError: On 401; the session token is cleared first
            RequestError: On any other non-2xx status
            NetworkError: When no response was obtained
        """
        headers = self.session.auth_headers()
        logger.debug("%s %s", method, path)
        try:
            response = await asyncio.wait_for(
                self._http.request(method, path, json=json, params=params, headers=headers),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("%s %s timed out after %ss", method, path, self.timeout)
            raise NetworkError(
                f"Request timed out after {self.timeout:g}s", timeout=True
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(str(exc) or "Network error occurred") from exc

        if response.is_success:
            return response

        body = _decode_body(response)
        error = FormioError.from_body(body, fallback=response.reason_phrase or "An error occurred")
        name = body.get("name") if isinstance(body, dict) else None

        if response.status_code == 401:
            self.session.clear()
            logger.info("%s %s unauthorized", method, path)
            raise AuthError(error.message, name=name, details=error.details)

        logger.warning("%s %s returned %s: %s", method, path, response.status_code, error.message)
        raise RequestError(
            status=response.status_code,
            message=error.message,
            name=name,
            details=error.details,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        response = await self._send(method, path, json=json, params=params)
        return _decode_body(response)

    async def _request_object(
        self,
        method: str,
        path: str,
        json: Any = None,
    ) -> Dict[str, Any]:
        """Round trip whose 2xx body must be a JSON object.

        Raises:
            RequestError: If the body is empty or not an object
        """
        response = await self._send(method, path, json=json)
        body = _decode_body(response)
        if not isinstance(body, dict):
            raise _unexpected_body(method, path, response, body)
        return body

    async def _request_list(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Round trip whose 2xx body must be a JSON array.

        Items that are not objects are skipped with a warning.

        Raises:
            RequestError: If the body is empty or not an array
        """
        response = await self._send(method, path, params=params)
        body = _decode_body(response)
        if not isinstance(body, list):
            raise _unexpected_body(method, path, response, body)
        items = [item for item in body if isinstance(item, dict)]
        if len(items) != len(body):
            logger.warning("%s %s: skipped %d non-object items", method, path, len(body) - len(items))
        return items

    # Authentication

    @property
    def token(self) -> Optional[str]:
        return self.session.token

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    def set_token(self, token: str) -> None:
        """Use an externally obtained token for subsequent calls."""
        self.session.set_token(token)

    async def login(self, email: str, password: str, admin: bool = False) -> LoginResult:
        """Authenticate and store the returned token.

        Args:
            email: Account email
            password: Account password
            admin: Log in through ``/admin/login`` instead of ``/user/login``

        Returns:
            LoginResult with the token and the user record from the body

        Raises:
            AuthError: On any non-2xx answer or when no token was returned
            NetworkError: When the service could not be reached
        """
        path = "/admin/login" if admin else "/user/login"
        try:
            response = await self._send(
                "POST", path, json={"data": {"email": email, "password": password}}
            )
        except RequestError as exc:
            raise AuthError(exc.message, name=exc.name, details=exc.details, status=exc.status) from exc

        body = _decode_body(response)
        user = body if isinstance(body, dict) else {}
        token = response.headers.get(TOKEN_HEADER) or user.get("token")
        if not token:
            raise AuthError("No auth token received", status=response.status_code)

        self.session.set_token(token, user=user)
        logger.info("Logged in as %s", email)
        return LoginResult(token=token, user=user)

    async def logout(self) -> None:
        """Forget the token locally; no request is made."""
        self.session.clear()

    async def health_check(self) -> HealthStatus:
        """Connectivity probe against ``GET /health``."""
        body = await self._request("GET", "/health")
        if not isinstance(body, dict):
            return {"status": str(body or "ok")}
        return body  # type: ignore[return-value]

    # Forms

    async def list_forms(self, params: Optional[Dict[str, Any]] = None) -> List[FormDefinition]:
        items = await self._request_list("GET", "/form", params=params)
        return [FormDefinition.from_dict(item) for item in items]

    async def get_form(self, form_id: str) -> FormDefinition:
        body = await self._request_object("GET", f"/form/{form_id}")
        return FormDefinition.from_dict(body)

    async def get_form_by_path(self, path: str) -> FormDefinition:
        """Fetch a form by the path it is served under, e.g. "health-survey"."""
        body = await self._request_object("GET", f"/{path.lstrip('/')}")
        return FormDefinition.from_dict(body)

    async def create_form(self, definition: FormPayload) -> FormDefinition:
        body = await self._request_object("POST", "/form", json=_form_payload(definition))
        return FormDefinition.from_dict(body)

    async def update_form(self, form_id: str, definition: FormPayload) -> FormDefinition:
        body = await self._request_object("PUT", f"/form/{form_id}", json=_form_payload(definition))
        return FormDefinition.from_dict(body)

    async def delete_form(self, form_id: str) -> None:
        await self._request("DELETE", f"/form/{form_id}")

    # Submissions

    async def list_submissions(
        self, form_id: str, query: Optional[Dict[str, Any]] = None
    ) -> List[Submission]:
        items = await self._request_list("GET", f"/form/{form_id}/submission", params=query)
        return [Submission.from_dict(item) for item in items]

    async def get_submission(self, form_id: str, submission_id: str) -> Submission:
        body = await self._request_object("GET", f"/form/{form_id}/submission/{submission_id}")
        return Submission.from_dict(body)

    async def create_submission(self, form_id: str, data: SubmissionData) -> Submission:
        """Persist a submission; ``data`` is sent as ``{"data": data}``."""
        body = await self._request_object("POST", f"/form/{form_id}/submission", json={"data": data})
        return Submission.from_dict(body)

    async def update_submission(
        self, form_id: str, submission_id: str, data: SubmissionData
    ) -> Submission:
        """Replace the payload of an existing submission."""
        body = await self._request_object(
            "PUT", f"/form/{form_id}/submission/{submission_id}", json={"data": data}
        )
        return Submission.from_dict(body)

    async def delete_submission(self, form_id: str, submission_id: str) -> None:
        await self._request("DELETE", f"/form/{form_id}/submission/{submission_id}")

    async def save_draft(self, form_id: str, data: SubmissionData) -> Submission:
        body = await self._request_object(
            "POST",
            f"/form/{form_id}/submission",
            json={"data": data, "state": SubmissionState.DRAFT.value},
        )
        return Submission.from_dict(body)

    async def list_drafts(self, form_id: str) -> List[Submission]:
        return await self.list_submissions(form_id, query={"state": SubmissionState.DRAFT.value})

    # URLs

    def form_url(self, form_id: str) -> str:
        return f"{self.base_url}/form/{form_id}"

    def submission_url(self, form_id: str, submission_id: str) -> str:
        return f"{self.base_url}/form/{form_id}/submission/{submission_id}"


__all__ = ["FormioClient"]
