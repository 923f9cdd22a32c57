"""
Inbound envelope, call descriptor and error descriptor models.
"""

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from restalexa.errors import ErrorKind


class _Unauthenticated:
    """Placeholder token held by a CallDescriptor until reconciliation."""

    _instance: Optional["_Unauthenticated"] = None

    def __new__(cls) -> "_Unauthenticated":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNAUTHENTICATED"


UNAUTHENTICATED = _Unauthenticated()


def get_path(data: Any, *keys: str) -> Any:
    """Walk nested mappings by key, returning None as soon as a step is missing."""
    node = data
    for key in keys:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
        if node is None:
            return None
    return node


class AlexaUser(BaseModel):
    model_config = ConfigDict(extra="allow")

    userId: Optional[str] = None
    accessToken: Optional[str] = None


class AlexaSystem(BaseModel):
    model_config = ConfigDict(extra="allow")

    user: Optional[AlexaUser] = None


class AlexaContext(BaseModel):
    model_config = ConfigDict(extra="allow")

    System: Optional[AlexaSystem] = None


class InboundEnvelope(BaseModel):
    """Decoded request body. Platform-specific keys are kept as extras."""

    model_config = ConfigDict(extra="allow")

    wsfunction: Optional[str] = None
    wstoken: Optional[str] = None
    context: Optional[AlexaContext] = None


class ErrorDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    exception: str
    code: str
    message: str
    debug_detail: Optional[str] = None


class CallDescriptor(BaseModel):
    """Normalized call handed to the registry, one per request."""

    model_config = ConfigDict(frozen=True)

    function_name: Optional[str] = None
    service_token: Optional[str] = None
    user_token: Optional[str] = None
    auth_token: Any = UNAUTHENTICATED
    raw_body: str = ""
    arguments: dict[str, Any] = Field(default_factory=dict)
    parameters: dict[str, Any] = Field(default_factory=dict)
    parse_error: Optional[ErrorDescriptor] = None

    @property
    def is_reconciled(self) -> bool:
        return self.auth_token is not UNAUTHENTICATED

    def authenticated(self, reconciliation: Any) -> "CallDescriptor":
        """Return a copy carrying the reconciled token and the request token marker."""
        parameters = dict(self.parameters)
        parameters["token"] = reconciliation.marker
        return self.model_copy(update={
            "auth_token": reconciliation.effective_token,
            "parameters": parameters,
        })
