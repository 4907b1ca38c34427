import itertools
from urllib.parse import parse_qs

import httpx
import pytest

from magicapp_import.config import MagicAppSettings
from magicapp_import.session import Session


BASE_URL = "https://api.magicapp.org/api/v1/"
AUTH_URL = "https://api.magicapp.org/authenticate"

_ids = itertools.count(1)


class FakeMagicApp:
    """In-memory MAGICapp served through httpx.MockTransport."""

    def __init__(self):
        self.users = {"alice": "s3cret"}
        self.guidelines = {
            "abc": {"guidelineId": 42, "shortName": "abc", "title": "Hypertension", "version": 3},
        }
        self.mine = [
            {"guidelineId": 42, "shortName": "abc", "title": "Hypertension"},
            {"guidelineId": 43, "shortName": "def", "title": "Diabetes"},
        ]
        self.picos = {
            42: [
                {"picoId": 1, "question": "ACE inhibitors vs placebo"},
                {"picoId": 2, "question": "Salt restriction"},
                {"picoId": 3, "question": "Home monitoring"},
            ],
        }
        self.codes = {
            1: [{"code": "I10", "system": "ICD-10"}, {"code": "C09AA", "system": "ATC"}],
            2: [],
            3: [{"code": "38341003", "system": "SNOMED-CT"}, {"code": "I15", "system": "ICD-10"},
                {"code": "Z01.3", "system": "ICD-10"}],
        }

        self.set_csrf_cookie = True
        self.csrf_cookies = None  # list of (name, value) overriding the default XSRF cookie
        self.failing_picos = set()
        self.responses = {}  # path -> httpx.Response override

        self.sessions = set()
        self.logins = 0
        self.requests = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def expire_sessions(self):
        self.sessions.clear()

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/authenticate":
            if request.method == "OPTIONS":
                return self._preflight()
            if request.method == "POST":
                return self._login(request)
            return httpx.Response(405)

        if not self._has_session(request):
            return httpx.Response(401, json={"error": "unauthenticated"})

        if path in self.responses:
            return self.responses[path]

        prefix = "/api/v1/"
        if not path.startswith(prefix):
            return httpx.Response(404)
        parts = path[len(prefix):].split("/")

        if parts == ["guidelines"] and request.url.params.get("mine") == "1":
            return httpx.Response(200, json=self.mine)
        if len(parts) == 3 and parts[:2] == ["guidelines", "published"]:
            if parts[2] in self.guidelines:
                return httpx.Response(200, json=self.guidelines[parts[2]])
        if len(parts) == 3 and parts[0] == "guidelines" and parts[2] == "picos":
            if int(parts[1]) in self.picos:
                return httpx.Response(200, json=self.picos[int(parts[1])])
        if len(parts) == 3 and parts[0] == "picos" and parts[2] == "codes":
            pico_id = int(parts[1])
            if pico_id in self.failing_picos:
                return httpx.Response(500, json={"error": "boom"})
            if pico_id in self.codes:
                return httpx.Response(200, json=self.codes[pico_id])

        return httpx.Response(404, json={"error": "not found"})

    def _preflight(self) -> httpx.Response:
        if not self.set_csrf_cookie:
            return httpx.Response(200)
        cookies = self.csrf_cookies or [("XSRF-TOKEN", f"xsrf-{next(_ids)}")]
        headers = [("Set-Cookie", f"{name}={value}; Path=/") for name, value in cookies]
        return httpx.Response(200, headers=headers)

    def _login(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        cookies = _cookie_header(request)
        token = request.headers.get("X-XSRF-TOKEN")

        if not token or token not in cookies.values():
            return httpx.Response(403, json={"error": "bad csrf token"})
        if self.users.get(form.get("username")) != form.get("password"):
            return httpx.Response(401, json={"error": "bad credentials"})

        self.logins += 1
        session_id = f"session-{next(_ids)}"
        self.sessions.add(session_id)
        return httpx.Response(200, headers=[("Set-Cookie", f"SESSION={session_id}; Path=/")])

    def _has_session(self, request: httpx.Request) -> bool:
        return _cookie_header(request).get("SESSION") in self.sessions

    def paths(self, method: str = None) -> list:
        return [
            r.url.raw_path.decode()
            for r in self.requests
            if method is None or r.method == method
        ]


def _cookie_header(request: httpx.Request) -> dict:
    header = request.headers.get("Cookie", "")
    cookies = {}
    for part in header.split(";"):
        name, _, value = part.strip().partition("=")
        if name:
            cookies[name] = value
    return cookies


@pytest.fixture
def platform():
    return FakeMagicApp()


@pytest.fixture
def make_session(platform):
    def _make(username="alice", password="s3cret"):
        return Session(
            username,
            password,
            base_url=BASE_URL,
            auth_url=AUTH_URL,
            transport=platform.transport,
        )
    return _make


@pytest.fixture
def settings():
    return MagicAppSettings(
        _env_file=None,
        username="alice",
        password="s3cret",
        base_url=BASE_URL,
        auth_url=AUTH_URL,
    )
