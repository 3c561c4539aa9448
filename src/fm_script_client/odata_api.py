"""
OData API script client, the preferred way to run scripts.

Every request carries the connection's basic credentials; there is no session
token to manage.
"""

import json
from typing import Any, Dict, Optional, Tuple

import httpx

from .client import AUTH_STATUSES, ScriptClient, is_success, path_segment
from .connection import Connection
from .errors import AuthError, ConfigError, ScriptError
from .models import ApiStyle, ODataErrorBody, ODataScriptEnvelope, ScriptResult

ODATA_PREFIX = "/fmi/odata/v4"
PARAMETER_KEY = "scriptParameterValue"
PARAMETER_ENCODINGS = ("body", "query")


class ODataApiScriptClient(ScriptClient):
    api_style = ApiStyle.ODATA

    def __init__(
        self, connection: Connection, *, parameter_encoding: str = "body", **kwargs
    ):
        if parameter_encoding not in PARAMETER_ENCODINGS:
            raise ConfigError(
                f"parameter_encoding must be one of {PARAMETER_ENCODINGS}, "
                f"got {parameter_encoding!r}"
            )
        super().__init__(connection, **kwargs)
        self.parameter_encoding = parameter_encoding

    async def _run_script(self, script_name: str, parameter: Any) -> ScriptResult:
        path = (
            f"{ODATA_PREFIX}/{path_segment(self.connection.database)}"
            f"/Script.{path_segment(script_name)}"
        )
        request: Dict[str, Any] = {}
        if self.parameter_encoding == "query":
            if parameter is not None:
                if not isinstance(parameter, str):
                    parameter = json.dumps(parameter)
                request["params"] = {PARAMETER_KEY: parameter}
        else:
            request["json"] = {} if parameter is None else {PARAMETER_KEY: parameter}

        resp = await self._send(
            "POST",
            path,
            script=script_name,
            auth=httpx.BasicAuth(self.connection.username, self.connection.password),
            **request,
        )

        if resp.status_code in AUTH_STATUSES:
            code, message, response_json, _ = self._error_details(resp)
            raise AuthError(
                status_code=resp.status_code,
                message=message,
                code=code,
                response_json=response_json,
            )
        if not is_success(resp):
            raise self._api_error(resp)

        envelope = self._validate(ODataScriptEnvelope, self._safe_json(resp))
        result = envelope.script_result
        if result.code != 0:
            raise ScriptError(
                code=result.code, data=json.dumps(result.result_parameter)
            )
        return ScriptResult(code=0, payload=result.result_parameter)

    def _extract_error(self, data: Dict[str, Any]) -> Optional[Tuple[str, str]]:
        try:
            error = ODataErrorBody.model_validate(data).error
        except ValueError:
            return None
        return error.code, error.message


__all__ = ["ODataApiScriptClient", "ODATA_PREFIX", "PARAMETER_ENCODINGS"]
