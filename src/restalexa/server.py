"""
RestAlexaServer: runs one webhook request through the whole pipeline.

parse -> reconcile credentials -> look up and invoke the function ->
clean the result against its return schema -> serialize.

Every request yields exactly one body: the serialized result, or a
serialized error if any step failed. Headers are the same either way.
"""

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from restalexa.auth import CredentialValidator, reconcile
from restalexa.config import ServerConfig
from restalexa.errors import DispatchError, MissingFunctionError, RestAlexaError, SerializationError
from restalexa.models.envelope import CallDescriptor, ErrorDescriptor
from restalexa.models.schema import clean_returnvalue, validate_parameters
from restalexa.registry import FunctionRegistry, RemoteFunctionError
from restalexa.transport.request import parse_request
from restalexa.transport.response import response_headers, serialize, serialize_error

logger = logging.getLogger(__name__)


class Response(BaseModel):
    model_config = ConfigDict(frozen=True)

    status_code: int = 200
    headers: dict[str, str]
    body: bytes
    ok: bool = True


class RestAlexaServer:
    def __init__(
        self,
        registry: FunctionRegistry,
        validator: CredentialValidator,
        config: Optional[ServerConfig] = None,
    ):
        self.registry = registry
        self.validator = validator
        self.config = config or ServerConfig()

    def prepare(
        self,
        raw_body: Union[bytes, str, None],
        query_params: Optional[Mapping[str, str]] = None,
    ) -> CallDescriptor:
        """Parse the request and settle which token the call runs under."""
        descriptor = parse_request(raw_body, query_params)
        reconciliation = reconcile(descriptor.service_token, descriptor.user_token, self.validator)
        logger.debug(
            f"Call {descriptor.function_name!r}: embedded token {reconciliation.outcome.value}"
        )
        return descriptor.authenticated(reconciliation)

    def execute(self, descriptor: CallDescriptor) -> tuple[bytes, str]:
        if not descriptor.function_name:
            raise MissingFunctionError("No web service function specified")
        function = self.registry.lookup(descriptor.function_name)
        params = validate_parameters(function.parameters, descriptor.parameters)

        try:
            result = function.call(params, auth_token=descriptor.auth_token)
        except RestAlexaError:
            raise
        except RemoteFunctionError as e:
            raise DispatchError(e.message, code=e.errorcode, debug_detail=e.debuginfo)
        except Exception as e:
            raise DispatchError(str(e) or type(e).__name__, debug_detail=repr(e))

        cleaned = clean_returnvalue(function.returns, result)
        return serialize(cleaned, function.returns, self.config.format)

    def error_response(self, err: ErrorDescriptor) -> Response:
        return Response(
            headers=response_headers(self.config.format),
            body=serialize_error(err, self.config.format, debug=self.config.debug),
            ok=False,
        )

    def handle(
        self,
        raw_body: Union[bytes, str, None],
        query_params: Optional[Mapping[str, str]] = None,
    ) -> Response:
        """Run one request. Never raises."""
        try:
            descriptor = self.prepare(raw_body, query_params)
            body, _ = self.execute(descriptor)
        except RestAlexaError as e:
            logger.warning(f"{type(e).__name__} [{e.code}]: {e.message}")
            return self.error_response(e.to_descriptor())
        except Exception as e:
            logger.exception("Unexpected failure while handling request")
            err = SerializationError("Internal error", code="internalerror", debug_detail=repr(e))
            return self.error_response(err.to_descriptor())
        return Response(headers=response_headers(self.config.format), body=body)


def make_server(registry: FunctionRegistry, validator: CredentialValidator, **config: Any) -> RestAlexaServer:
    """Build a server from keyword config, falling back to RESTALEXA_* environment variables."""
    base = ServerConfig.from_env()
    return RestAlexaServer(registry, validator, ServerConfig(**{**base.model_dump(), **config}))
