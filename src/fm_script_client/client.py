import json
import logging
import time
from typing import Any, Dict, Optional, Tuple, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from .connection import Connection
from .errors import ApiError, ConfigError, DecodeError, TransportError
from .models import ApiStyle, ScriptResult
from .observability import log_fm_call, redact_endpoint

T = TypeVar("T")

AUTH_STATUSES = frozenset({401, 403})


def path_segment(value: str) -> str:
    """Percent-encode a value so it stays one path segment ('/' and '%' included)."""
    return quote(value, safe="")


def to_jsonable(parameter: Any) -> Any:
    """Convert a script parameter into plain JSON data; ConfigError if impossible."""
    if parameter is None:
        return None
    if isinstance(parameter, BaseModel):
        return parameter.model_dump(mode="json", by_alias=True)
    try:
        return json.loads(json.dumps(parameter))
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"Script parameter is not JSON serializable: {exc}"
        ) from exc


def build_http_client(connection: Connection) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=connection.base_url,
        headers={"Accept": "application/json"},
        timeout=connection.timeout_seconds,
        verify=connection.verify,
    )


def is_success(resp: httpx.Response) -> bool:
    return 200 <= resp.status_code < 300


class ScriptClient:
    """
    Shared plumbing for the FileMaker script clients.
    - Owns (or borrows) an httpx.AsyncClient bound to the connection's base URL
    - Wraps httpx failures into TransportError and logs every exchange
    - Subclasses implement `_run_script` for their API style
    """

    api_style: ApiStyle

    def __init__(
        self,
        connection: Connection,
        *,
        http: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.connection = connection
        self.log = logger or logging.getLogger(
            f"fm_script_client.{self.api_style.value}"
        )
        self._owns_http = http is None
        self.http = http or build_http_client(connection)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def execute(
        self,
        script_name: str,
        parameter: Any = None,
        *,
        model: Optional[Type[T]] = None,
    ) -> Any:
        """
        Execute a script with an optional JSON-encodable parameter.

        Returns the decoded script result, or an instance of `model` (any type
        pydantic can validate) when given.
        """
        if not script_name:
            raise ConfigError("script_name must be provided.")
        result = await self._run_script(script_name, to_jsonable(parameter))
        return decode_payload(result, model)

    async def execute_without_parameter(
        self, script_name: str, *, model: Optional[Type[T]] = None
    ) -> Any:
        return await self.execute(script_name, None, model=model)

    async def _run_script(self, script_name: str, parameter: Any) -> ScriptResult:
        raise NotImplementedError

    async def _send(
        self,
        method: str,
        url: str,
        *,
        script: Optional[str] = None,
        attempt: int = 0,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request; every outcome is logged as an `fm_call` record."""
        started = time.perf_counter()
        endpoint = redact_endpoint(url)
        fields = {
            "api_style": self.api_style.value,
            "method": method,
            "endpoint": endpoint,
            "script": script,
            "attempt": attempt,
        }
        try:
            resp = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            log_fm_call(
                self.log,
                started=started,
                status="exception",
                error_type=type(exc).__name__,
                **fields,
            )
            raise TransportError(
                method=method,
                url=endpoint,
                message=f"{type(exc).__name__}: {exc}",
            ) from exc

        log_fm_call(self.log, started=started, status=resp.status_code, **fields)
        return resp

    def _safe_json(self, resp: httpx.Response) -> Dict[str, Any]:
        if not resp.content:
            return {}

        try:
            data = resp.json()
        except ValueError as exc:
            snippet = (resp.text or "")[:500]
            raise DecodeError(
                f"Expected JSON from {resp.request.method} "
                f"{resp.request.url.path}, got non-JSON body snippet: "
                f"{snippet!r}"
            ) from exc

        if not isinstance(data, dict):
            raise DecodeError(
                f"Expected top-level JSON object from "
                f"{resp.request.method} {resp.request.url.path}, "
                f"got {type(data).__name__}"
            )
        return data

    def _validate(self, model: Type[BaseModel], data: Dict[str, Any]) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise DecodeError(
                f"Response did not match {model.__name__}: {exc}"
            ) from exc

    def _error_details(
        self, resp: httpx.Response
    ) -> Tuple[Optional[str], str, Optional[Dict[str, Any]], Optional[str]]:
        """Return (FileMaker code, message, parsed body, text snippet)."""
        response_json: Optional[Dict[str, Any]] = None
        response_text: Optional[str] = None
        code: Optional[str] = None
        message = resp.reason_phrase or "request failed"

        try:
            parsed = resp.json()
        except ValueError:
            response_text = (resp.text or "")[:500]
            return code, message, response_json, response_text

        if isinstance(parsed, dict):
            response_json = parsed
            extracted = self._extract_error(parsed)
            if extracted is not None:
                code, message = extracted
        else:
            response_text = (resp.text or "")[:500]
        return code, message, response_json, response_text

    def _extract_error(self, data: Dict[str, Any]) -> Optional[Tuple[str, str]]:
        return None

    def _api_error(self, resp: httpx.Response) -> ApiError:
        code, message, response_json, response_text = self._error_details(resp)
        return ApiError(
            status_code=resp.status_code,
            method=resp.request.method,
            url=redact_endpoint(resp.request.url.path),
            message=message,
            code=code,
            response_json=response_json,
            response_text=response_text,
        )


def decode_payload(result: ScriptResult, model: Optional[Type[T]]) -> Any:
    if model is None:
        return result.payload
    if result.payload is None:
        raise DecodeError("Missing script result")
    try:
        return TypeAdapter(model).validate_python(result.payload)
    except ValidationError as exc:
        raise DecodeError(f"Script result did not match {model!r}: {exc}") from exc


__all__ = [
    "AUTH_STATUSES",
    "ScriptClient",
    "build_http_client",
    "decode_payload",
    "is_success",
    "path_segment",
    "to_jsonable",
]
