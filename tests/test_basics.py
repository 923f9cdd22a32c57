"""Basic unit tests for the restalexa package."""

from restalexa import (
    RestAlexaServer,
    FunctionRegistry,
    RestAlexaError,
    MalformedInputError,
    MissingFunctionError,
    AuthenticationError,
    SchemaValidationError,
    DispatchError,
    SerializationError,
    ErrorKind,
    ResponseFormat,
    __version__,
)


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert RestAlexaServer is not None
    assert FunctionRegistry is not None


def test_error_hierarchy():
    for cls in (MalformedInputError, MissingFunctionError, AuthenticationError,
                SchemaValidationError, DispatchError, SerializationError):
        assert issubclass(cls, RestAlexaError)


def test_error_attributes():
    err = DispatchError("something broke", code="test_code")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.debug_detail is None
    assert err.kind is ErrorKind.DISPATCH_FAILED

    err_with_detail = SchemaValidationError("bad shape", debug_detail="a.b: missing")
    assert err_with_detail.code == "invalidresponse"
    assert err_with_detail.debug_detail == "a.b: missing"


def test_error_descriptor():
    desc = MissingFunctionError("No function").to_descriptor()
    assert desc.kind is ErrorKind.MISSING_FUNCTION
    assert desc.exception == "MissingFunctionError"
    assert desc.code == "missingfunction"
    assert desc.message == "No function"


def test_format_constants():
    assert ResponseFormat.JSON.content_type == "application/json"
    assert ResponseFormat.XML.content_type == "application/xml; charset=utf-8"
