"""
Server configuration: fixed when the server is constructed.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

from restalexa.transport.response import ResponseFormat

ENV_PREFIX = "RESTALEXA_"


class ServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: ResponseFormat = ResponseFormat.JSON
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """Read RESTALEXA_FORMAT (json|xml) and RESTALEXA_DEBUG ("true" enables)."""
        env = os.environ if environ is None else environ
        fmt = env.get(f"{ENV_PREFIX}FORMAT", ResponseFormat.JSON.value).strip().lower()
        return cls(
            format=ResponseFormat(fmt),
            debug=env.get(f"{ENV_PREFIX}DEBUG", "").strip().lower() == "true",
        )
