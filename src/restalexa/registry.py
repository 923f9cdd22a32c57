"""
Function registry: maps ``wsfunction`` names to callables and their schemas.
"""

import inspect
from typing import Any, Callable, Optional

from restalexa.errors import MissingFunctionError
from restalexa.models.schema import RecordSchema, ReturnSchema

AUTH_TOKEN_PARAM = "auth_token"


class RemoteFunctionError(Exception):
    """Raised by a registered function to report a structured failure to the caller."""

    def __init__(self, errorcode: str, message: str, debuginfo: Optional[str] = None):
        super().__init__(message)
        self.errorcode = errorcode
        self.message = message
        self.debuginfo = debuginfo


class ExternalFunction:
    __slots__ = ("name", "invoke", "returns", "parameters", "description")

    def __init__(
        self,
        name: str,
        invoke: Callable[..., Any],
        returns: Optional[ReturnSchema] = None,
        parameters: Optional[RecordSchema] = None,
        description: str = "",
    ):
        self.name = name
        self.invoke = invoke
        self.returns = returns
        self.parameters = parameters
        self.description = description or (inspect.getdoc(invoke) or "").split("\n")[0]

    def accepts(self, name: str) -> bool:
        try:
            params = inspect.signature(self.invoke).parameters
        except (TypeError, ValueError):
            return False
        return name in params or any(p.kind is p.VAR_KEYWORD for p in params.values())

    def call(self, parameters: dict[str, Any], auth_token: Optional[str] = None) -> Any:
        """Invoke with ``parameters`` as keyword arguments, injecting ``auth_token`` if accepted."""
        kwargs = dict(parameters)
        if self.accepts(AUTH_TOKEN_PARAM):
            kwargs[AUTH_TOKEN_PARAM] = auth_token
        return self.invoke(**kwargs)

    def __repr__(self) -> str:
        return f"ExternalFunction(name={self.name!r})"


class FunctionRegistry:
    def __init__(self) -> None:
        self._functions: dict[str, ExternalFunction] = {}

    def add(self, function: ExternalFunction) -> ExternalFunction:
        self._functions[function.name] = function
        return function

    def register(
        self,
        name: Optional[str] = None,
        *,
        returns: Optional[ReturnSchema] = None,
        parameters: Optional[RecordSchema] = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of add()."""
        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.add(ExternalFunction(name or fn.__name__, fn, returns=returns, parameters=parameters))
            return fn
        return decorator

    def lookup(self, name: str) -> ExternalFunction:
        try:
            return self._functions[name]
        except KeyError:
            raise MissingFunctionError(
                f"Function not found: {name}", code="invalidfunction",
            ) from None

    def names(self) -> list[str]:
        return sorted(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)
