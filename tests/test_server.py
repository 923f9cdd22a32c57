"""End-to-end pipeline: parse -> reconcile -> dispatch -> serialize."""

import json

import pytest

from restalexa import (
    FunctionRegistry,
    ParamType,
    RecordSchema,
    RemoteFunctionError,
    ResponseFormat,
    RestAlexaServer,
    ScalarSchema,
    SequenceSchema,
    ServerConfig,
    StaticTokenValidator,
    make_server,
)

GREETING = RecordSchema(fields={
    "speech": ScalarSchema(type=ParamType.TEXT),
    "linked": ScalarSchema(type=ParamType.BOOL),
})


def make_registry():
    registry = FunctionRegistry()

    @registry.register("local_alexa_greet", returns=GREETING)
    def greet(request, token):
        body = json.loads(request)
        name = body.get("request", {}).get("name", "there")
        return {"speech": f"Hello {name}", "linked": token == "valid", "internal": "dropped"}

    @registry.register("local_alexa_whoami", returns=ScalarSchema(type=ParamType.TEXT))
    def whoami(request, token, auth_token):
        return auth_token

    @registry.register("local_alexa_noreturn")
    def noreturn(request, token):
        return {"ignored": True}

    @registry.register("local_alexa_fail")
    def fail(request, token):
        raise RemoteFunctionError("nopermissions", "Sorry, you do not have permission", "capability check")

    @registry.register("local_alexa_crash")
    def crash(request, token):
        raise ValueError("boom")

    @registry.register("local_alexa_badshape", returns=GREETING)
    def badshape(request, token):
        return {"speech": "hi"}

    @registry.register("local_alexa_nan", returns=ScalarSchema(type=ParamType.FLOAT))
    def nan(request, token):
        return float("nan")

    @registry.register("local_alexa_list", returns=SequenceSchema(content=ScalarSchema(type=ParamType.INT)))
    def numbers(request, token):
        return ["1", 2, 3.0]

    return registry


VALIDATOR = StaticTokenValidator({"linked-user": {"user_id": "42"}})


def body(access_token=None, **extra):
    payload = {"context": {"System": {"user": {"userId": "amzn1"}}}, "request": {"name": "Ada"}}
    if access_token is not None:
        payload["context"]["System"]["user"]["accessToken"] = access_token
    payload.update(extra)
    return json.dumps(payload).encode("utf-8")


@pytest.fixture
def server():
    return RestAlexaServer(make_registry(), VALIDATOR)


@pytest.fixture
def debug_server():
    return RestAlexaServer(make_registry(), VALIDATOR, ServerConfig(debug=True))


class TestSuccess:
    def test_linked_user(self, server):
        resp = server.handle(body("linked-user"), {"wstoken": "svc", "wsfunction": "local_alexa_greet"})
        assert resp.ok
        assert resp.status_code == 200
        assert json.loads(resp.body) == {"speech": "Hello Ada", "linked": True}

    def test_unlinked_user_still_dispatched(self, server):
        resp = server.handle(body("stale-token"), {"wstoken": "svc", "wsfunction": "local_alexa_greet"})
        assert resp.ok
        assert json.loads(resp.body)["linked"] is False

    def test_auth_token_injected(self, server):
        resp = server.handle(body("linked-user"), {"wstoken": "svc", "wsfunction": "local_alexa_whoami"})
        assert json.loads(resp.body) == "linked-user"
        resp = server.handle(body("stale-token"), {"wstoken": "svc", "wsfunction": "local_alexa_whoami"})
        assert json.loads(resp.body) == "svc"

    def test_function_from_body(self, server):
        resp = server.handle(body(wsfunction="local_alexa_greet"), {"wsfunction": "local_alexa_fail"})
        assert resp.ok

    def test_no_return_schema(self, server):
        resp = server.handle(body(), {"wsfunction": "local_alexa_noreturn"})
        assert resp.ok
        assert resp.body == b"null"

    def test_result_cleaned(self, server):
        resp = server.handle(body(), {"wsfunction": "local_alexa_list"})
        assert json.loads(resp.body) == [1, 2, 3]

    def test_xml_format(self):
        server = RestAlexaServer(make_registry(), VALIDATOR, ServerConfig(format=ResponseFormat.XML))
        resp = server.handle(body("linked-user"), {"wsfunction": "local_alexa_greet"})
        assert resp.headers["Content-Type"] == "application/xml; charset=utf-8"
        assert resp.body.decode("utf-8") == (
            '<?xml version="1.0" encoding="UTF-8" ?>\n'
            "<RESPONSE>\n"
            "<SINGLE>\n"
            '<KEY name="speech"><VALUE>Hello Ada</VALUE>\n</KEY>\n'
            '<KEY name="linked"><VALUE>1</VALUE>\n</KEY>\n'
            "</SINGLE>\n"
            "</RESPONSE>\n"
        )


class TestErrors:
    def error_payload(self, resp):
        assert not resp.ok
        assert resp.status_code == 200
        payload = json.loads(resp.body)
        assert {"exception", "errorcode", "message"} <= set(payload)
        return payload

    def test_missing_function(self, server):
        payload = self.error_payload(server.handle(body(), {}))
        assert payload["exception"] == "MissingFunctionError"
        assert payload["errorcode"] == "missingfunction"

    def test_unknown_function(self, server):
        payload = self.error_payload(server.handle(body(), {"wsfunction": "nope"}))
        assert payload["errorcode"] == "invalidfunction"

    def test_malformed_body_with_query_function(self, server):
        resp = server.handle(b"{{{", {"wsfunction": "local_alexa_noreturn"})
        assert resp.ok

    def test_malformed_body_without_function(self, server):
        payload = self.error_payload(server.handle(b"{{{", {}))
        assert payload["errorcode"] == "missingfunction"

    def test_remote_function_error(self, server, debug_server):
        payload = self.error_payload(server.handle(body(), {"wsfunction": "local_alexa_fail"}))
        assert payload == {
            "exception": "DispatchError",
            "errorcode": "nopermissions",
            "message": "Sorry, you do not have permission",
        }
        payload = self.error_payload(debug_server.handle(body(), {"wsfunction": "local_alexa_fail"}))
        assert payload["debuginfo"] == "capability check"

    def test_unexpected_function_exception(self, server):
        payload = self.error_payload(server.handle(body(), {"wsfunction": "local_alexa_crash"}))
        assert payload["errorcode"] == "dispatchfailed"
        assert payload["message"] == "boom"
        assert "debuginfo" not in payload

    def test_schema_mismatch(self, debug_server):
        payload = self.error_payload(debug_server.handle(body(), {"wsfunction": "local_alexa_badshape"}))
        assert payload["exception"] == "SchemaValidationError"
        assert payload["errorcode"] == "invalidresponse"
        assert payload["debuginfo"] == "linked: missing"

    def test_serialization_failure(self, server):
        payload = self.error_payload(server.handle(body(), {"wsfunction": "local_alexa_nan"}))
        assert payload["errorcode"] == "serializationfailed"

    def test_unexpected_registry_failure(self):
        class BrokenRegistry(FunctionRegistry):
            def lookup(self, name):
                raise RuntimeError("registry offline")

        server = RestAlexaServer(BrokenRegistry(), VALIDATOR, ServerConfig(debug=True))
        payload = self.error_payload(server.handle(body(), {"wsfunction": "x"}))
        assert payload["errorcode"] == "internalerror"
        assert "registry offline" in payload["debuginfo"]


@pytest.mark.parametrize("fmt", list(ResponseFormat))
def test_headers_same_on_success_and_error(fmt):
    server = RestAlexaServer(make_registry(), VALIDATOR, ServerConfig(format=fmt))
    ok = server.handle(body(), {"wsfunction": "local_alexa_noreturn"})
    bad = server.handle(body(), {"wsfunction": "local_alexa_fail"})
    assert ok.ok and not bad.ok
    assert ok.headers == bad.headers


def test_prepare_reconciles_descriptor(server):
    desc = server.prepare(body("linked-user"), {"wstoken": "svc"})
    assert desc.is_reconciled
    assert desc.auth_token == "linked-user"
    assert desc.parameters["token"] == "valid"


def test_make_server_reads_env(monkeypatch):
    monkeypatch.setenv("RESTALEXA_FORMAT", "xml")
    monkeypatch.setenv("RESTALEXA_DEBUG", "true")
    server = make_server(make_registry(), VALIDATOR)
    assert server.config.format is ResponseFormat.XML
    assert server.config.debug is True

    server = make_server(make_registry(), VALIDATOR, format="json")
    assert server.config.format is ResponseFormat.JSON
    assert server.config.debug is True


def test_malformed_identity_falls_back_to_service_token():
    class OddValidator:
        def authenticate(self, token):
            return {"sub": "no-user-id"}

    server = RestAlexaServer(make_registry(), OddValidator())
    resp = server.handle(body("user-tok"), {"wstoken": "svc", "wsfunction": "local_alexa_whoami"})
    assert resp.ok
    assert json.loads(resp.body) == "svc"
