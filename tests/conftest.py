"""Pytest configuration for title_editor_client tests.

Provides an in-memory Title Editor server behind ``httpx.MockTransport``, so
tests run the real Connection, path resolution and pydantic serialization.
"""

import base64
import json
from datetime import UTC
from datetime import datetime

import httpx
import pytest

from title_editor_client.connection import Connection
from title_editor_client.objects import SoftwareTitle

BASE_URL = "https://te.example.com"
USER = "admin"
PASSWORD = "secret"

# kind -> (primary id key, parent kind, key of the list in the parent payload, ordered)
KINDS = {
    "softwaretitles": ("softwareTitleId", None, None, False),
    "requirements": ("requirementId", "softwaretitles", "requirements", True),
    "patches": ("patchId", "softwaretitles", "patches", True),
    "extensionattributes": ("extensionAttributeId", "softwaretitles", "extensionAttributes", False),
    "capabilities": ("capabilityId", "patches", "capabilities", True),
    "killapps": ("killAppId", "patches", "killApps", False),
    "components": ("componentId", "patches", "components", False),
    "criteria": ("criteriaId", "components", "criteria", True),
}

SUMMARY_KEYS = ("softwareTitleId", "id", "name", "publisher", "currentVersion", "enabled", "lastModified", "sourceId")


def _json(status: int, data=None) -> httpx.Response:
    if data is None:
        return httpx.Response(status)
    return httpx.Response(status, json=data)


class FakeTitleEditor:
    """A tiny Title Editor: nested objects, sibling renumbering, failure injection.

    Attributes:
        records: kind -> id -> wire-format record
        children: (parent kind, parent id, kind) -> ordered list of child ids
        requests: (method, path) of every request after authentication
        bodies: (method, path, decoded JSON body) of the same requests
    """

    def __init__(self):
        self.records: dict[str, dict[int, dict]] = {kind: {} for kind in KINDS}
        self.children: dict[tuple, list[int]] = {}
        self.parents: dict[tuple[str, int], tuple[str, int]] = {}
        self.requests: list[tuple[str, str]] = []
        self.bodies: list[tuple[str, str, dict | None]] = []
        self.failures: list[tuple[str, str, int]] = []
        self.token_count = 0
        self.revoked_tokens: set[str] = set()
        self._next_id = 1

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    # Test helpers

    def fail_next(self, method: str, kind: str, status: int = 500) -> None:
        """Make the next matching request answer with an error status."""
        self.failures.append((method, kind, status))

    def calls(self, method: str | None = None) -> list[tuple[str, str]]:
        return [r for r in self.requests if method is None or r[0] == method]

    def last_body(self, method: str) -> dict | None:
        return [b for m, _, b in self.bodies if m == method][-1]

    def positions(self, parent_kind: str, parent_id: int, kind: str) -> list[int]:
        ids = self.children.get((parent_kind, parent_id, kind), [])
        return [self.records[kind][i]["absoluteOrderId"] for i in ids]

    def child_ids(self, parent_kind: str, parent_id: int, kind: str) -> list[int]:
        return list(self.children.get((parent_kind, parent_id, kind), []))

    # Request handling

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v2/").strip("/")
        method = request.method
        body = json.loads(request.content) if request.content else None

        if path == "auth/tokens" and method == "POST":
            return self._issue_token(request)

        auth = request.headers.get("Authorization", "")
        token = auth.removeprefix("Bearer ")
        if not auth.startswith("Bearer ") or token in self.revoked_tokens:
            return _json(401, {"errors": [{"code": "INVALID_TOKEN", "description": "Token is not valid"}]})

        self.requests.append((method, path))
        self.bodies.append((method, path, body))

        segments = path.split("/")
        for idx, (f_method, f_kind, f_status) in enumerate(self.failures):
            if f_method == method and f_kind in segments:
                del self.failures[idx]
                return _json(f_status, {"errors": [{"description": f"Injected failure for {method} {path}"}]})

        if path.startswith("valuelists/criteria"):
            return self._valuelists(method, segments[-1], body)

        if len(segments) == 1 and method == "GET":
            return _json(200, [self._summary(r) for r in self.records["softwaretitles"].values()])
        if len(segments) == 1 and method == "POST":
            return self._create("softwaretitles", None, None, body)
        if len(segments) == 2:
            kind, obj_id = segments[0], int(segments[1])
            if kind not in KINDS or obj_id not in self.records[kind]:
                return _json(404, {"errors": [{"description": f"No {kind} with id {obj_id}"}]})
            if method == "GET":
                return _json(200, self._payload(kind, obj_id))
            if method == "PUT":
                return self._update(kind, obj_id, body or {})
            if method == "DELETE":
                self._delete(kind, obj_id)
                return _json(200)
        if len(segments) == 3 and method == "POST":
            parent_kind, parent_id, kind = segments[0], int(segments[1]), segments[2]
            if parent_id not in self.records.get(parent_kind, {}):
                return _json(404, {"errors": [{"description": f"No {parent_kind} with id {parent_id}"}]})
            return self._create(kind, parent_kind, parent_id, body)
        if len(segments) == 4 and segments[3] == "autofill" and method == "GET":
            return _json(200, [{"autofilled": segments[2], "softwareTitleId": int(segments[1])}])

        return _json(400, {"message": f"Unsupported request {method} {path}"})

    def _issue_token(self, request: httpx.Request) -> httpx.Response:
        expected = "Basic " + base64.b64encode(f"{USER}:{PASSWORD}".encode()).decode()
        if request.headers.get("Authorization") != expected:
            return _json(401, {"errors": [{"description": "Bad credentials"}]})
        self.token_count += 1
        return _json(200, {"token": f"token-{self.token_count}", "expires": "2999-01-01T00:00:00Z"})

    def _valuelists(self, method: str, last: str, body) -> httpx.Response:
        if last == "names":
            return _json(200, ["Application Title", "Application Version", "Total RAM MB"])
        if last == "types":
            return _json(200, ["recon", "extensionAttribute"])
        if last == "operators" and method == "POST":
            return _json(200, ["is", "is not", "has", "does not have"] if body["name"] == "Application Title" else [])
        return _json(404)

    # Storage

    def _new_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def _now(self) -> str:
        return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

    def _root_of(self, kind: str, obj_id: int) -> dict:
        while kind != "softwaretitles":
            kind, obj_id = self.parents[(kind, obj_id)]
        return self.records[kind][obj_id]

    def _touch(self, kind: str, obj_id: int) -> None:
        self._root_of(kind, obj_id)["lastModified"] = self._now()

    def _renumber(self, key: tuple) -> None:
        kind = key[2]
        if KINDS[kind][3]:
            for idx, child_id in enumerate(self.children.get(key, [])):
                self.records[kind][child_id]["absoluteOrderId"] = idx

    def _create(self, kind: str, parent_kind: str | None, parent_id: int | None, body: dict) -> httpx.Response:
        if kind not in KINDS or KINDS[kind][1] != parent_kind:
            return _json(400, {"message": f"{kind} can't be created in {parent_kind}"})
        id_key, _, _, ordered = KINDS[kind]
        record = dict(body or {})
        new_id = self._new_id()
        record[id_key] = new_id

        if kind == "softwaretitles":
            if any(t.get("id") == record.get("id") for t in self.records[kind].values()):
                return _json(409, {"errors": [{"description": f"Title {record.get('id')} already exists"}]})
            record.setdefault("enabled", False)
            record["sourceId"] = 0
            record["lastModified"] = self._now()
        else:
            record[KINDS[parent_kind][0]] = parent_id
            self.parents[(kind, new_id)] = (parent_kind, parent_id)
            if kind == "patches":
                record["enabled"] = False

        self.records[kind][new_id] = record
        if parent_kind is not None:
            key = (parent_kind, parent_id, kind)
            siblings = self.children.setdefault(key, [])
            position = record.get("absoluteOrderId")
            if ordered and position is not None:
                siblings.insert(max(0, min(position, len(siblings))), new_id)
            else:
                siblings.append(new_id)
            self._renumber(key)
            self._touch(kind, new_id)
        return _json(201, dict(record))

    def _update(self, kind: str, obj_id: int, body: dict) -> httpx.Response:
        record = self.records[kind][obj_id]
        if "absoluteOrderId" in body and KINDS[kind][3]:
            key = (*self.parents[(kind, obj_id)], kind)
            siblings = self.children[key]
            siblings.remove(obj_id)
            siblings.insert(max(0, min(body["absoluteOrderId"], len(siblings))), obj_id)
            self._renumber(key)
            body = {k: v for k, v in body.items() if k != "absoluteOrderId"}
        record.update(body)
        self._touch(kind, obj_id)
        return _json(200, dict(record))

    def _delete(self, kind: str, obj_id: int) -> None:
        for child_kind, (_, parent_kind, _, _) in KINDS.items():
            if parent_kind == kind:
                for child_id in self.child_ids(kind, obj_id, child_kind):
                    self._delete(child_kind, child_id)
        if kind != "softwaretitles":
            self._touch(kind, obj_id)
            key = (*self.parents.pop((kind, obj_id)), kind)
            self.children[key].remove(obj_id)
            self._renumber(key)
        del self.records[kind][obj_id]

    def _summary(self, record: dict) -> dict:
        return {k: record.get(k) for k in SUMMARY_KEYS}

    def _payload(self, kind: str, obj_id: int) -> dict:
        payload = dict(self.records[kind][obj_id])
        for child_kind, (_, parent_kind, list_key, _) in KINDS.items():
            if parent_kind == kind:
                payload[list_key] = [
                    self._payload(child_kind, child_id) for child_id in self.child_ids(kind, obj_id, child_kind)
                ]
        return payload


@pytest.fixture
def server():
    """A fresh, empty fake Title Editor."""
    return FakeTitleEditor()


@pytest.fixture
def cnx(server):
    """A Connection to the fake server."""
    connection = Connection(BASE_URL, USER, PASSWORD, transport=server.transport)
    yield connection
    connection.disconnect()


@pytest.fixture
def connection_factory(server):
    """Build more Connections to the fake server, e.g. with other credentials."""

    def factory(password: str = PASSWORD, **kwargs) -> Connection:
        return Connection(BASE_URL, USER, password, transport=server.transport, **kwargs)

    return factory


@pytest.fixture
def title(cnx):
    """A new, empty software title on the fake server."""
    return SoftwareTitle.create(cnx=cnx, unique_id="com.x.t", name="T", publisher="X Corp", current_version="1.0")


@pytest.fixture
def ready_patch(title):
    """A patch of ``title`` with a capability and a component criterion, not yet enabled."""
    patch_id = title.patches.add_patch("1.0")
    patch = title.patches.member_by_id(patch_id)
    patch.capabilities.add_criterion("Total RAM MB", "more than", 8192)
    patch.add_component(name="T", version="1.0")
    patch.component.criteria.add_criterion("Application Version", "is", "1.0")
    return patch
