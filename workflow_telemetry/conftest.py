"""Shared pytest fixtures: a scripted stand-in for requests.Session."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import requests


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)  # type: ignore[arg-type]


Handler = Callable[[str, str, Dict[str, Any]], FakeResponse]


class FakeSession:
    """Routes (method, url) to a FakeResponse, an exception, or a callable handler."""

    def __init__(self, routes: Optional[Dict[Tuple[str, str], Any]] = None, default: Any = None):
        self.routes: Dict[Tuple[str, str], Any] = dict(routes or {})
        self.default = default
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def _dispatch(self, method: str, url: str, kwargs: Dict[str, Any]) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        target = self.routes.get((method, url), self.default)
        if target is None:
            raise requests.exceptions.ConnectionError(f"no route for {method} {url}")
        if isinstance(target, Exception):
            raise target
        if callable(target):
            return target(method, url, kwargs)
        return target

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("POST", url, kwargs)

    def put(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("PUT", url, kwargs)


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    return FakeSession


@pytest.fixture
def make_response() -> Callable[..., FakeResponse]:
    return FakeResponse
