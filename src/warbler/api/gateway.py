"""Data-query gateway — GraphQL-style endpoint over a pluggable schema.

The query language and schema live behind ``QuerySchema``; the gateway
only speaks HTTP: it decodes the request, executes, and encodes the
result. No server-side rendering happens on this path.

Usage::

    app.mount_query(schema)              # POST /graphql
    app.mount_query(schema, path="/api")

Request shapes::

    POST  {"query": "...", "variables": {...}, "operationName": "..."}
    POST  query=...&variables=%7B...%7D             (urlencoded)
    GET   ?query=...                                (debug mode only)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from warbler.errors import describe_error
from warbler.http.request import Request
from warbler.http.response import Response, json_response

logger = logging.getLogger("warbler.server")


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Outcome of one query execution.

    ``errors`` holds JSON-ready error objects (at least a ``message``).
    """

    data: Any = None
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"data": self.data}
        if self.errors:
            payload["errors"] = list(self.errors)
        return payload


@runtime_checkable
class QuerySchema(Protocol):
    """An executable schema (external collaborator)."""

    async def execute(
        self,
        document: str,
        *,
        variables: Mapping[str, Any] | None,
        operation_name: str | None,
        root_value: Any,
    ) -> QueryResult: ...


class QueryError(ValueError):
    """The request could not be turned into a query (client error)."""


EXPLORER_PAGE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Query explorer</title>
<style>
body{margin:0;font-family:monospace;display:flex;height:100vh}
textarea,pre{flex:1;margin:0;padding:1em;border:0;font:inherit}
pre{background:#1a1b26;color:#c0caf5;overflow:auto}
button{position:fixed;top:1em;right:1em}
</style>
</head>
<body>
<textarea id="query">{ __typename }</textarea>
<pre id="result"></pre>
<button id="run">Run</button>
<script>
document.getElementById("run").onclick = async () => {
  const response = await fetch(location.pathname, {
    method: "POST",
    headers: {"Content-Type": "application/json"},
    credentials: "include",
    body: JSON.stringify({query: document.getElementById("query").value}),
  });
  document.getElementById("result").textContent = await response.text();
};
</script>
</body>
</html>"""


def _errors(message: str) -> dict[str, Any]:
    return {"errors": [{"message": message}]}


def _parse_variables(raw: Any) -> Mapping[str, Any] | None:
    if raw in (None, ""):
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise QueryError("Variables are invalid JSON.") from None
    if not isinstance(raw, Mapping):
        raise QueryError("Variables must be an object.")
    return raw


class QueryGateway:
    """HTTP endpoint for a ``QuerySchema``.

    In debug mode ``GET`` serves the explorer page (or runs a query given
    in the query string) and JSON output is indented. Outside debug mode
    only ``POST`` is accepted.
    """

    __slots__ = ("_debug", "_schema")

    def __init__(self, schema: QuerySchema, *, debug: bool = False) -> None:
        self._schema = schema
        self._debug = debug

    @property
    def debug(self) -> bool:
        return self._debug

    def _respond(self, payload: Any, status: int = 200) -> Response:
        return json_response(payload, status=status, pretty=self._debug)

    async def __call__(self, request: Request) -> Response:
        if request.method in ("GET", "HEAD"):
            if not self._debug:
                return self._respond(_errors("Only POST is supported."), 405).with_header(
                    "Allow", "POST"
                )
            if request.query.get("query") is None:
                return Response(body=EXPLORER_PAGE)

        try:
            params = await self._params(request)
            document = params.get("query")
            if not isinstance(document, str) or not document.strip():
                raise QueryError("Must provide query string.")
            variables = _parse_variables(params.get("variables"))
            operation_name = params.get("operationName") or None
        except QueryError as exc:
            return self._respond(_errors(str(exc)), 400)

        try:
            result = await self._schema.execute(
                document,
                variables=variables,
                operation_name=operation_name,
                root_value={"request": request},
            )
        except Exception as exc:
            logger.exception(
                "query execution failed",
                extra={
                    "path": request.path,
                    "user_agent": request.user_agent,
                    "stage": "query",
                },
            )
            message = describe_error(exc) if self._debug else "Internal Server Error"
            return self._respond(_errors(message), 500)

        return self._respond(result.to_dict())

    async def _params(self, request: Request) -> dict[str, Any]:
        if request.method in ("GET", "HEAD"):
            return request.query.to_dict()
        try:
            return await request.payload()
        except (ValueError, UnicodeDecodeError):
            raise QueryError("POST body sent invalid JSON.") from None
