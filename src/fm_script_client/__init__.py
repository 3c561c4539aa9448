"""fm_script_client package exports."""

from .client import ScriptClient
from .config import create_client_from_env, load_env_config
from .connection import Connection
from .data_api import DataApiScriptClient
from .errors import (
    ApiError,
    AuthError,
    ConfigError,
    DecodeError,
    ScriptClientError,
    ScriptError,
    TransportError,
)
from .models import ApiStyle, ScriptLayoutContext, ScriptResult
from .odata_api import ODataApiScriptClient
from .session import SessionClient, connect

__version__ = "1.1.0"

__all__ = [
    # Clients
    "connect",
    "SessionClient",
    "ScriptClient",
    "DataApiScriptClient",
    "ODataApiScriptClient",
    # Value types
    "ApiStyle",
    "Connection",
    "ScriptLayoutContext",
    "ScriptResult",
    # Exceptions
    "ScriptClientError",
    "ConfigError",
    "TransportError",
    "AuthError",
    "ApiError",
    "ScriptError",
    "DecodeError",
    # Config helpers
    "create_client_from_env",
    "load_env_config",
]
