"""Shared fixtures: an in-process stand-in for the Canpay and Insight APIs."""

import json

import httpx
import pytest


class FakeService:
    """Records every request and answers from a route table."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], list[httpx.Response | Exception]] = {}

    def add(
        self,
        method: str,
        path: str,
        json: object = None,
        status_code: int = 200,
    ) -> None:
        """Queue a response for ``method path`` (path includes any query)."""
        response = httpx.Response(status_code, json=json)
        self.routes.setdefault((method, path), []).append(response)

    def fail(self, method: str, path: str, error: Exception) -> None:
        """Queue a transport error for ``method path``."""
        self.routes.setdefault((method, path), []).append(error)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queued = self.routes.get((request.method, request.url.raw_path.decode()))
        if not queued:
            return httpx.Response(404, json={"error": "no route"})
        answer = queued.pop(0) if len(queued) > 1 else queued[0]
        if isinstance(answer, Exception):
            raise answer
        return answer

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @staticmethod
    def body(request: httpx.Request) -> object:
        return json.loads(request.content) if request.content else None


@pytest.fixture
def service():
    """Create a fake service with no routes."""
    return FakeService()


@pytest.fixture
def credential_response():
    """Create a login/register/refresh response."""
    return {"jwt": "J1", "refreshToken": "R1", "payload": {"id": "u1"}}
