"""Tests for warbler.api.gateway — the data-query endpoint."""

import json

from warbler.api import QueryResult, QuerySchema
from warbler.app import App
from warbler.config import AppConfig
from warbler.testing import TestClient


class EchoSchema:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    async def execute(self, document, *, variables, operation_name, root_value):
        self.calls.append(
            {
                "document": document,
                "variables": variables,
                "operation_name": operation_name,
                "root_value": root_value,
            }
        )
        if "fail" in document:
            raise RuntimeError("resolver blew up")
        if "invalid" in document:
            return QueryResult(errors=[{"message": "Cannot query field 'invalid'"}])
        return QueryResult(data={"echo": document})


def _app(schema: EchoSchema, *, debug: bool = False) -> App:
    app = App(AppConfig(debug=debug, compress=False))
    app.mount_query(schema)
    return app


class TestQueryResult:
    def test_to_dict_omits_empty_errors(self) -> None:
        assert QueryResult(data={"a": 1}).to_dict() == {"data": {"a": 1}}

    def test_to_dict_with_errors(self) -> None:
        result = QueryResult(errors=[{"message": "x"}])
        assert result.to_dict() == {"data": None, "errors": [{"message": "x"}]}

    def test_schema_protocol(self) -> None:
        assert isinstance(EchoSchema(), QuerySchema)


class TestPost:
    async def test_json_body(self) -> None:
        schema = EchoSchema()
        async with TestClient(_app(schema)) as client:
            response = await client.post(
                "/graphql",
                json={"query": "{ me }", "variables": {"id": 1}, "operationName": "Me"},
            )

        assert response.status == 200
        assert response.json() == {"data": {"echo": "{ me }"}}
        call = schema.calls[0]
        assert call["variables"] == {"id": 1}
        assert call["operation_name"] == "Me"
        assert call["root_value"]["request"].path == "/graphql"

    async def test_form_body_with_string_variables(self) -> None:
        schema = EchoSchema()
        async with TestClient(_app(schema)) as client:
            response = await client.post(
                "/graphql", form={"query": "{ me }", "variables": json.dumps({"a": "b"})}
            )
        assert response.status == 200
        assert schema.calls[0]["variables"] == {"a": "b"}

    async def test_missing_query(self) -> None:
        async with TestClient(_app(EchoSchema())) as client:
            response = await client.post("/graphql", json={"variables": {}})
        assert response.status == 400
        assert response.json() == {"errors": [{"message": "Must provide query string."}]}

    async def test_bad_json(self) -> None:
        async with TestClient(_app(EchoSchema())) as client:
            response = await client.post(
                "/graphql", body=b"{nope", headers={"content-type": "application/json"}
            )
        assert response.status == 400
        assert "invalid JSON" in response.json()["errors"][0]["message"]

    async def test_bad_variables(self) -> None:
        async with TestClient(_app(EchoSchema())) as client:
            response = await client.post("/graphql", json={"query": "{ a }", "variables": "[1"})
        assert response.status == 400

    async def test_schema_errors_are_200(self) -> None:
        async with TestClient(_app(EchoSchema())) as client:
            response = await client.post("/graphql", json={"query": "{ invalid }"})
        assert response.status == 200
        assert response.json()["errors"][0]["message"] == "Cannot query field 'invalid'"

    async def test_execution_failure_is_500(self, caplog) -> None:
        async with TestClient(_app(EchoSchema())) as client:
            response = await client.post("/graphql", json={"query": "{ fail }"})
        assert response.status == 500
        assert response.json() == {"errors": [{"message": "Internal Server Error"}]}
        assert any("query execution failed" in r.getMessage() for r in caplog.records)

    async def test_execution_failure_detail_in_debug(self) -> None:
        async with TestClient(_app(EchoSchema(), debug=True)) as client:
            response = await client.post("/graphql", json={"query": "{ fail }"})
        assert response.json() == {"errors": [{"message": "resolver blew up"}]}


class TestGet:
    async def test_rejected_outside_debug(self) -> None:
        async with TestClient(_app(EchoSchema())) as client:
            response = await client.get("/graphql", query={"query": "{ me }"})
        assert response.status == 405
        assert response.header("allow") == "POST"

    async def test_explorer_in_debug(self) -> None:
        async with TestClient(_app(EchoSchema(), debug=True)) as client:
            response = await client.get("/graphql")
        assert response.status == 200
        assert "Query explorer" in response.text

    async def test_query_string_in_debug(self) -> None:
        async with TestClient(_app(EchoSchema(), debug=True)) as client:
            response = await client.get("/graphql", query={"query": "{ me }"})
        assert response.status == 200
        assert response.json() == {"data": {"echo": "{ me }"}}
        assert "\n" in response.text

    async def test_custom_path(self) -> None:
        app = App(AppConfig(compress=False))
        app.mount_query(EchoSchema(), path="/api")
        async with TestClient(app) as client:
            response = await client.post("/api", json={"query": "{ me }"})
        assert response.status == 200
