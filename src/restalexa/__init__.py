"""
restalexa: voice-assistant webhook adapter for a function registry.

Parses an assistant platform's JSON request, reconciles its embedded user
token with the service token, calls the named function and returns its
result as JSON or tagged XML markup.
"""

from restalexa.server import RestAlexaServer, Response, make_server
from restalexa.config import ServerConfig
from restalexa.auth import AuthOutcome, Identity, StaticTokenValidator, reconcile
from restalexa.registry import FunctionRegistry, ExternalFunction, RemoteFunctionError
from restalexa.errors import (
    ErrorKind,
    RestAlexaError,
    MalformedInputError,
    MissingFunctionError,
    AuthenticationError,
    SchemaValidationError,
    DispatchError,
    SerializationError,
)
from restalexa.models.schema import ParamType, ScalarSchema, SequenceSchema, RecordSchema
from restalexa.transport.request import parse_request
from restalexa.transport.response import ResponseFormat

__version__ = "0.1.0"
__all__ = [
    "RestAlexaServer",
    "Response",
    "make_server",
    "ServerConfig",
    "AuthOutcome",
    "Identity",
    "StaticTokenValidator",
    "reconcile",
    "FunctionRegistry",
    "ExternalFunction",
    "RemoteFunctionError",
    "ErrorKind",
    "RestAlexaError",
    "MalformedInputError",
    "MissingFunctionError",
    "AuthenticationError",
    "SchemaValidationError",
    "DispatchError",
    "SerializationError",
    "ParamType",
    "ScalarSchema",
    "SequenceSchema",
    "RecordSchema",
    "parse_request",
    "ResponseFormat",
]
