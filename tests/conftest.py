"""Pytest configuration.

The modules live flat under `src/` without a package. This conftest puts `src/` on `sys.path` so
tests can import them by name, and provides offline stand-ins for `requests.Session`.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Union

import pytest
import requests

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

PAGE_HTML = """<!doctype html>
<html>
<head>
  <script src="/static/vendor.js"></script>
  <script src="/legacy/app.abc123.js"></script>
</head>
<body><div id="root"></div></body>
</html>
"""

SCRIPT_SOURCE = (
    '!function(){var e=1;'
    'm={sections:[{"Grammar":[1,2]}],intents:[{"1. Subject-verb agreement":["He runs."]},'
    '{"2. Pronoun case":["It is I."]}]};'
    'e&&console.log(m)}();'
)

EXPECTED_PALETTE = [
    {
        "category": "Grammar",
        "topics": [
            {
                "id": 1,
                "title": "Subject-verb agreement",
                "rawTitle": "1. Subject-verb agreement",
                "examples": ["He runs."],
            },
            {
                "id": 2,
                "title": "Pronoun case",
                "rawTitle": "2. Pronoun case",
                "examples": ["It is I."],
            },
        ],
    }
]


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Union[str, bytes] = b"") -> None:
        self.status_code = status_code
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self.body_read = False
        self.closed = False

    @property
    def content(self) -> bytes:
        self.body_read = True
        return self._body

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class FakeSession:
    """Serves queued responses (or exceptions) per URL and records every request."""

    def __init__(self, routes: Dict[str, list]) -> None:
        self.routes = {url: list(items) for url, items in routes.items()}
        self.calls: List[dict] = []

    def get(self, url: str, **kwargs: object) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        queue = self.routes.get(url)
        if not queue:
            raise requests.ConnectionError(f"no route for {url}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def upstream_session() -> FakeSession:
    return FakeSession(
        {
            "https://upstream.test/palette.html": [FakeResponse(200, PAGE_HTML)],
            "https://upstream.test/legacy/app.abc123.js": [FakeResponse(200, SCRIPT_SOURCE)],
        }
    )
