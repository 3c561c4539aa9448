from typing import Any, Dict, Optional


class ScriptClientError(Exception):
    """Base error for client failures."""


class ConfigError(ScriptClientError, ValueError):
    """Invalid connection or invocation input, raised before any network call."""


class TransportError(ScriptClientError):
    def __init__(self, *, method: str, url: str, message: str):
        super().__init__(f"{method} {url}: {message}")
        self.method = method
        self.url = url


class AuthError(ScriptClientError):
    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        response_json: Optional[Dict[str, Any]] = None,
    ):
        detail = f"{message} (FileMaker code {code})" if code else message
        super().__init__(f"authentication failed with {status_code}: {detail}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.response_json = response_json


class ApiError(ScriptClientError):
    def __init__(
        self,
        *,
        status_code: int,
        method: str,
        url: str,
        message: str,
        code: Optional[str] = None,
        response_json: Optional[Dict[str, Any]] = None,
        response_text: Optional[str] = None,
    ):
        super().__init__(f"{status_code} {method} {url}: {message}")
        self.status_code = status_code
        self.method = method
        self.url = url
        self.code = code
        self.message = message
        self.response_json = response_json
        self.response_text = response_text


class ScriptError(ScriptClientError):
    """The script ran but reported a non-zero FileMaker error code."""

    def __init__(self, *, code: int, data: Optional[str] = None):
        super().__init__(f"script returned error code {code}")
        self.code = code
        self.data = data


class DecodeError(ScriptClientError):
    pass


__all__ = [
    "ScriptClientError",
    "ConfigError",
    "TransportError",
    "AuthError",
    "ApiError",
    "ScriptError",
    "DecodeError",
]
