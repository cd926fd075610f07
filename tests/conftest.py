"""In-memory stand-in for the Hanbase HTTP service, served through respx."""

from __future__ import annotations

import json
import re
import uuid
from typing import Any, Iterator

import httpx
import pytest
import respx

SERVICE_URL = "http://localhost:8000"

_CREATE_RE = re.compile(r'^CREATE TABLE "(?P<project>\w+)"\."(?P<table>\w+)" \((?P<body>.*)\);$', re.S)
_INSERT_RE = re.compile(
    r'^INSERT INTO "(?P<project>\w+)"\."(?P<table>\w+)" \((?P<columns>[^)]*)\) VALUES \((?P<values>.*)\)$', re.S
)
_SELECT_RE = re.compile(r'^SELECT \* FROM "(?P<project>\w+)"\."(?P<table>\w+)"(?: LIMIT (?P<limit>\d+))?$')
_LITERAL_RE = re.compile(r"'((?:[^']|'')*)'|(NULL|TRUE|FALSE|-?\d+(?:\.\d+)?)")


class FakeHanbase:
    """Just enough of the service to walk through project, table, row and query flows."""

    def __init__(self) -> None:
        self.token = "admin-token"
        self.projects: list[dict[str, str]] = []
        self.columns: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.rows: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.queries: list[dict[str, Any]] = []

    def install(self, mock: respx.MockRouter) -> None:
        mock.post("/auth/signin").mock(side_effect=self.sign_in)
        mock.get("/projects").mock(side_effect=self.list_projects)
        mock.post("/projects").mock(side_effect=self.create_project)
        mock.get(path__regex=r"^/meta/(?P<project>\w+)/tables$").mock(side_effect=self.list_tables)
        mock.get(path__regex=r"^/meta/(?P<project>\w+)/tables/(?P<table>\w+)$").mock(side_effect=self.describe)
        mock.post("/query").mock(side_effect=self.query)

    def _authorized(self, request: httpx.Request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {self.token}"

    def _has_project(self, slug: str) -> bool:
        return any(project["slug"] == slug for project in self.projects)

    def sign_in(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body.get("password") != "pw":
            return httpx.Response(401, json={"error": "invalid credentials"})
        return httpx.Response(200, json={"token": self.token})

    def list_projects(self, request: httpx.Request) -> httpx.Response:
        if not self._authorized(request):
            return httpx.Response(401, json={"error": "unauthorized"})
        return httpx.Response(200, json=self.projects)

    def create_project(self, request: httpx.Request) -> httpx.Response:
        if not self._authorized(request):
            return httpx.Response(401, json={"error": "unauthorized"})
        body = json.loads(request.content)
        if self._has_project(body["slug"]):
            return httpx.Response(409, json={"error": "project already exists"})
        self.projects.append({"name": body["name"], "slug": body["slug"]})
        return httpx.Response(201, json={"message": "Project created successfully"})

    def list_tables(self, request: httpx.Request, project: str) -> httpx.Response:
        if not self._authorized(request):
            return httpx.Response(401, json={"error": "unauthorized"})
        return httpx.Response(200, json=[table for slug, table in self.columns if slug == project])

    def describe(self, request: httpx.Request, project: str, table: str) -> httpx.Response:
        if not self._authorized(request):
            return httpx.Response(401, json={"error": "unauthorized"})
        return httpx.Response(200, json=self.columns.get((project, table), []))

    def query(self, request: httpx.Request) -> httpx.Response:
        if not self._authorized(request):
            return httpx.Response(401, json={"error": "unauthorized"})
        body = json.loads(request.content)
        self.queries.append(body)
        text = body["query"].strip()

        if match := _CREATE_RE.match(text):
            key = (match["project"], match["table"])
            if not self._has_project(key[0]):
                return httpx.Response(400, json={"error": f'schema "{key[0]}" does not exist'})
            definitions = [line.strip() for line in match["body"].split(",\n")]
            self.columns[key] = [_catalog_column(definition) for definition in definitions]
            self.rows[key] = []
            return httpx.Response(200, json={"message": "Query executed successfully"})

        if match := _INSERT_RE.match(text):
            key = (match["project"], match["table"])
            if key not in self.columns:
                return httpx.Response(400, json={"error": f'relation "{key[1]}" does not exist'})
            names = [name.strip().strip('"') for name in match["columns"].split(",")]
            values = body.get("params") or _literals(match["values"])
            row = {"id": str(uuid.uuid4())}
            row.update(zip(names, values))
            self.rows[key].append(row)
            return httpx.Response(200, json={"message": "Query executed successfully"})

        if match := _SELECT_RE.match(text):
            key = (match["project"], match["table"])
            if key not in self.columns:
                return httpx.Response(400, json={"error": f'relation "{key[1]}" does not exist'})
            rows = self.rows[key]
            if match["limit"]:
                rows = rows[: int(match["limit"])]
            return httpx.Response(200, json=rows)

        return httpx.Response(400, json={"error": "syntax error"})


def _catalog_column(definition: str) -> dict[str, Any]:
    name, rest = definition.split(" ", 1)
    data_type = rest.split(" ", 1)[0].lower()
    default = rest.split(" DEFAULT ", 1)[1] if " DEFAULT " in rest else None
    return {
        "name": name.strip('"'),
        "type": data_type,
        "nullable": "NO" if "PRIMARY KEY" in rest else "YES",
        "default": default,
    }


def _literals(raw: str) -> list[Any]:
    values: list[Any] = []
    for match in _LITERAL_RE.finditer(raw):
        quoted, bare = match.groups()
        if quoted is not None:
            values.append(quoted.replace("''", "'"))
        elif bare == "NULL":
            values.append(None)
        elif bare in {"TRUE", "FALSE"}:
            values.append(bare == "TRUE")
        else:
            values.append(float(bare) if "." in bare else int(bare))
    return values


@pytest.fixture
def hanbase_service() -> Iterator[FakeHanbase]:
    service = FakeHanbase()
    with respx.mock(base_url=SERVICE_URL, assert_all_called=False) as mock:
        service.install(mock)
        yield service
