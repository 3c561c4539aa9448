"""
Data API script client.

Scripts run on top of a `_find` request (see ScriptLayoutContext) and are
authorized with a session token obtained from the sessions endpoint. The token
is shared by all concurrent calls on one client and only replaced after the
server rejects it.
"""

import asyncio
import json
from typing import Any, Dict, Optional, Tuple

import httpx

from .client import AUTH_STATUSES, ScriptClient, is_success, path_segment
from .connection import Connection
from .errors import AuthError, DecodeError, ScriptError
from .models import (
    ApiStyle,
    DataApiErrorBody,
    DataApiLoginEnvelope,
    DataApiScriptEnvelope,
    ScriptLayoutContext,
    ScriptResult,
    data_api_find_body,
)

DATA_API_PREFIX = "/fmi/data/v1/databases"
ACCESS_TOKEN_HEADER = "X-FM-Data-Access-Token"


class DataApiScriptClient(ScriptClient):
    """
    Use this client only where the OData API is unavailable; it needs a
    ScriptLayoutContext whose find matches a record.
    """

    api_style = ApiStyle.DATA_API

    def __init__(
        self, connection: Connection, context: ScriptLayoutContext, **kwargs: Any
    ):
        super().__init__(connection, **kwargs)
        self.context = context
        self._token: Optional[str] = None
        # Single-flight guard for the token slot: at most one login in flight.
        self._token_lock = asyncio.Lock()
        self._login_task: Optional["asyncio.Future[None]"] = None

    @property
    def has_token(self) -> bool:
        return self._token is not None

    async def aclose(self) -> None:
        try:
            await self.release_token()
        finally:
            await super().aclose()

    async def release_token(self) -> None:
        """
        Forget the held token and DELETE its session on the server.
        Returns immediately when no token is held.
        """
        async with self._token_lock:
            token, self._token = self._token, None
        if token is None:
            return

        resp = await self._send(
            "DELETE", self._path(f"/sessions/{path_segment(token)}")
        )
        if not is_success(resp):
            raise self._api_error(resp)

    async def _run_script(self, script_name: str, parameter: Any) -> ScriptResult:
        param_json = json.dumps(parameter) if parameter is not None else None
        body = data_api_find_body(self.context, script_name, param_json)

        token = await self._get_token()
        resp = await self._find(body, token, script_name, attempt=0)

        if resp.status_code in AUTH_STATUSES:
            self.log.info(
                "data_api.token_rejected", extra={"status": resp.status_code}
            )
            self._invalidate(token)
            token = await self._get_token()
            resp = await self._find(body, token, script_name, attempt=1)
            if resp.status_code in AUTH_STATUSES:
                self._invalidate(token)
                raise self._auth_error(resp)

        if not is_success(resp):
            raise self._api_error(resp)

        return self._parse_result(resp)

    async def _find(
        self, body: Dict[str, Any], token: str, script_name: str, *, attempt: int
    ) -> httpx.Response:
        path = f"/layouts/{path_segment(self.context.layout)}/_find"
        return await self._send(
            "POST",
            self._path(path),
            script=script_name,
            attempt=attempt,
            json=body,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def _get_token(self) -> str:
        async with self._token_lock:
            if self._token is None:
                if self._login_task is None:
                    self._login_task = asyncio.ensure_future(self._login_and_store())
                # A cancelled caller must not abort the login others wait on.
                await asyncio.shield(self._login_task)
            return self._token

    async def _login_and_store(self) -> None:
        try:
            self._token = await self._login()
        finally:
            self._login_task = None

    def _invalidate(self, token: str) -> None:
        # Another caller may already have replaced the rejected token.
        if self._token == token:
            self._token = None

    async def _login(self) -> str:
        resp = await self._send(
            "POST",
            self._path("/sessions"),
            json={},
            auth=httpx.BasicAuth(self.connection.username, self.connection.password),
        )
        if not is_success(resp):
            raise self._auth_error(resp)

        token = resp.headers.get(ACCESS_TOKEN_HEADER)
        if not token:
            try:
                token = DataApiLoginEnvelope.model_validate(
                    self._safe_json(resp)
                ).response.token
            except (DecodeError, ValueError):
                token = None
        if not token:
            raise AuthError(
                status_code=resp.status_code,
                message="FileMaker did not respond with an access token",
            )

        self.log.debug("data_api.login", extra={"status": resp.status_code})
        return token

    def _parse_result(self, resp: httpx.Response) -> ScriptResult:
        envelope = self._validate(DataApiScriptEnvelope, self._safe_json(resp))
        script = envelope.response

        if script.script_error != "0":
            try:
                code = int(script.script_error)
            except ValueError:
                code = -1
            raise ScriptError(code=code, data=script.script_result)

        if not script.script_result:
            return ScriptResult(code=0, payload=None)

        try:
            payload = json.loads(script.script_result)
        except ValueError as exc:
            raise DecodeError(
                f"Script result is not valid JSON: {script.script_result[:200]!r}"
            ) from exc
        return ScriptResult(code=0, payload=payload)

    def _extract_error(self, data: Dict[str, Any]) -> Optional[Tuple[str, str]]:
        try:
            message = DataApiErrorBody.model_validate(data).first()
        except ValueError:
            return None
        return (message.code, message.message) if message else None

    def _auth_error(self, resp: httpx.Response) -> AuthError:
        code, message, response_json, _ = self._error_details(resp)
        return AuthError(
            status_code=resp.status_code,
            message=message,
            code=code,
            response_json=response_json,
        )

    def _path(self, path: str) -> str:
        return f"{DATA_API_PREFIX}/{path_segment(self.connection.database)}{path}"


__all__ = ["DataApiScriptClient", "DATA_API_PREFIX", "ACCESS_TOKEN_HEADER"]
