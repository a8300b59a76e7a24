"""Shared fixtures: a fake form service behind httpx.MockTransport."""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from formio_bridge.client import FormioClient
from formio_bridge.config import Settings
from formio_bridge.models import FormDefinition

BASE_URL = "http://formio.test"


class FakeService:
    """Routes requests to canned responses and records what it received.

    Routes are keyed by ``(method, path)``; a value is either an
    httpx.Response or a callable taking the request and returning one.
    """

    def __init__(self):
        self.routes: Dict[tuple, Any] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, response: Any) -> None:
        self.routes[(method, path)] = response

    def json_body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"No route for {request.url.path}"})
        if callable(route):
            return route(request)
        return route


@pytest.fixture
def settings() -> Settings:
    return Settings(url=BASE_URL, timeout=1.0, hosted_ready_delay=0.05)


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def make_client(settings: Settings) -> Callable[..., FormioClient]:
    def factory(handler: Callable, timeout: Optional[float] = None) -> FormioClient:
        return FormioClient(
            base_url=BASE_URL,
            timeout=timeout,
            transport=httpx.MockTransport(handler),
            settings=settings,
        )
    return factory


@pytest.fixture
def client(make_client, service: FakeService) -> FormioClient:
    return make_client(service)


@pytest.fixture
def form_payload() -> Dict[str, Any]:
    return {
        "_id": "X",
        "title": "Contact",
        "name": "contact",
        "path": "contact",
        "type": "form",
        "display": "form",
        "created": "2024-03-01T12:00:00.000Z",
        "modified": "2024-03-02T08:30:00.000Z",
        "tags": ["demo"],
        "components": [
            {
                "type": "textfield",
                "key": "name",
                "label": "Full Name",
                "input": True,
                "validate": {"required": True},
            },
            {"type": "email", "key": "email", "label": "Email", "input": True},
            {"type": "button", "key": "submit", "label": "Submit", "input": True, "action": "submit"},
        ],
    }


@pytest.fixture
def form(form_payload) -> FormDefinition:
    return FormDefinition.from_dict(form_payload)
