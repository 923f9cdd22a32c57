"""
Credential reconciliation.

A request may carry two credentials: the service token from the query string
or body (``wstoken``) and the end-user access token the assistant platform
embeds at ``context.System.user.accessToken``. The user token wins when it
authenticates; otherwise the call falls back to the service token so the
function can still answer, e.g. with an account-linking prompt.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from restalexa.errors import AuthenticationError

logger = logging.getLogger(__name__)

VALID_MARKER = "valid"


class Identity(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_id: str


class CredentialValidator(Protocol):
    def authenticate(self, token: str) -> Identity:
        """Return the identity behind ``token`` or raise if it is not valid."""
        ...


class AuthOutcome(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    NOT_ATTEMPTED = "not_attempted"


class AuthAttempt:
    """Result of one authentication call: either an identity or the error that rejected the token."""

    __slots__ = ("identity", "error")

    def __init__(self, identity: Optional[Identity] = None, error: Optional[Exception] = None):
        self.identity = identity
        self.error = error

    @property
    def ok(self) -> bool:
        return self.identity is not None and self.error is None

    def __repr__(self) -> str:
        return f"AuthAttempt(ok={self.ok!r}, error={self.error!r})"


class Reconciliation(BaseModel):
    model_config = ConfigDict(frozen=True)

    effective_token: Optional[str]
    outcome: AuthOutcome
    marker: str = ""
    identity: Optional[Identity] = None


def attempt_authentication(validator: CredentialValidator, token: str) -> AuthAttempt:
    try:
        identity = validator.authenticate(token)
    except Exception as e:
        return AuthAttempt(error=e)
    if identity is None:
        return AuthAttempt(error=AuthenticationError("Validator returned no identity"))
    try:
        return AuthAttempt(identity=Identity.model_validate(identity))
    except ValidationError as e:
        return AuthAttempt(error=AuthenticationError("Validator returned an invalid identity", debug_detail=str(e)))


def reconcile(
    service_token: Optional[str],
    user_token: Optional[str],
    validator: CredentialValidator,
) -> Reconciliation:
    """Pick the token a call runs under. Never raises."""
    if not user_token:
        return Reconciliation(effective_token=service_token, outcome=AuthOutcome.NOT_ATTEMPTED)

    attempt = attempt_authentication(validator, user_token)
    if attempt.ok:
        return Reconciliation(
            effective_token=user_token,
            outcome=AuthOutcome.VALID,
            marker=VALID_MARKER,
            identity=attempt.identity,
        )

    logger.info(f"Embedded user token rejected, falling back to service token: {attempt.error}")
    return Reconciliation(effective_token=service_token, outcome=AuthOutcome.INVALID)


class StaticTokenValidator:
    """In-memory token table: ``{token: identity}``."""

    def __init__(self, tokens: Mapping[str, Union[Identity, dict[str, Any]]]):
        self._tokens = {
            token: ident if isinstance(ident, Identity) else Identity.model_validate(ident)
            for token, ident in tokens.items()
        }

    def authenticate(self, token: str) -> Identity:
        try:
            return self._tokens[token]
        except KeyError:
            raise AuthenticationError("Invalid token - token not found") from None
