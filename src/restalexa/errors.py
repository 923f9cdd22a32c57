"""
restalexa error types: one class per failure kind.

Every error carries a stable machine-readable ``code`` and may carry a
``debug_detail`` that is only shown to the caller in debug mode.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MALFORMED_INPUT = "malformed_input"
    MISSING_FUNCTION = "missing_function"
    AUTHENTICATION_FAILED = "authentication_failed"
    SCHEMA_VALIDATION_FAILED = "schema_validation_failed"
    DISPATCH_FAILED = "dispatch_failed"
    SERIALIZATION_FAILED = "serialization_failed"


class RestAlexaError(Exception):
    kind: ErrorKind = ErrorKind.DISPATCH_FAILED

    def __init__(self, code: str, message: str, debug_detail: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.debug_detail = debug_detail

    def to_descriptor(self):
        from restalexa.models.envelope import ErrorDescriptor
        return ErrorDescriptor(
            kind=self.kind,
            exception=type(self).__name__,
            code=self.code,
            message=self.message,
            debug_detail=self.debug_detail,
        )


class MalformedInputError(RestAlexaError):
    kind = ErrorKind.MALFORMED_INPUT

    def __init__(self, message: str, code: str = "invalidjson", debug_detail: Optional[str] = None):
        super().__init__(code, message, debug_detail)


class MissingFunctionError(RestAlexaError):
    kind = ErrorKind.MISSING_FUNCTION

    def __init__(self, message: str, code: str = "missingfunction", debug_detail: Optional[str] = None):
        super().__init__(code, message, debug_detail)


class AuthenticationError(RestAlexaError):
    kind = ErrorKind.AUTHENTICATION_FAILED

    def __init__(self, message: str, code: str = "invalidtoken", debug_detail: Optional[str] = None):
        super().__init__(code, message, debug_detail)


class SchemaValidationError(RestAlexaError):
    kind = ErrorKind.SCHEMA_VALIDATION_FAILED

    def __init__(self, message: str, code: str = "invalidresponse", debug_detail: Optional[str] = None):
        super().__init__(code, message, debug_detail)


class DispatchError(RestAlexaError):
    kind = ErrorKind.DISPATCH_FAILED

    def __init__(self, message: str, code: str = "dispatchfailed", debug_detail: Optional[str] = None):
        super().__init__(code, message, debug_detail)


class SerializationError(RestAlexaError):
    kind = ErrorKind.SERIALIZATION_FAILED

    def __init__(self, message: str, code: str = "serializationfailed", debug_detail: Optional[str] = None):
        super().__init__(code, message, debug_detail)
