from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiStyle(str, Enum):
    DATA_API = "data_api"
    ODATA = "odata"


class ScriptLayoutContext(BaseModel):
    """
    Carrier request for Data API script calls.

    The Data API only runs scripts attached to another request. The script is
    added on top of a `_find` for `search_field == search_value` on `layout`,
    and that find must match a record, otherwise FileMaker reports an error.
    A layout with a single field and a single record works best.
    """

    layout: str = Field(min_length=1)
    search_field: str = Field(min_length=1)
    search_value: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class ScriptResult(BaseModel):
    code: int
    payload: Any = None


# --- Data API envelopes ---


class FileMakerMessage(BaseModel):
    code: str
    message: str = ""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class DataApiErrorBody(BaseModel):
    messages: List[FileMakerMessage] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def first(self) -> Optional[FileMakerMessage]:
        return self.messages[0] if self.messages else None


class DataApiScriptResponse(BaseModel):
    script_error: str = Field(alias="scriptError")
    script_result: Optional[str] = Field(default=None, alias="scriptResult")

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )


class DataApiScriptEnvelope(BaseModel):
    response: DataApiScriptResponse
    messages: List[FileMakerMessage] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class DataApiLoginResponse(BaseModel):
    token: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class DataApiLoginEnvelope(BaseModel):
    response: DataApiLoginResponse = Field(default_factory=DataApiLoginResponse)

    model_config = ConfigDict(extra="ignore")


# --- OData envelopes ---


class ODataScriptResult(BaseModel):
    code: int
    result_parameter: Any = Field(default=None, alias="resultParameter")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ODataScriptEnvelope(BaseModel):
    script_result: ODataScriptResult = Field(alias="scriptResult")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ODataErrorBody(BaseModel):
    error: FileMakerMessage

    model_config = ConfigDict(extra="ignore")


def data_api_find_body(
    context: ScriptLayoutContext, script_name: str, parameter_json: Optional[str]
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "query": [{context.search_field: context.search_value}],
        "limit": 1,
        "script": script_name,
    }
    if parameter_json is not None:
        body["script.param"] = parameter_json
    return body


__all__ = [
    "ApiStyle",
    "ScriptLayoutContext",
    "ScriptResult",
    "FileMakerMessage",
    "DataApiErrorBody",
    "DataApiScriptResponse",
    "DataApiScriptEnvelope",
    "DataApiLoginResponse",
    "DataApiLoginEnvelope",
    "ODataScriptResult",
    "ODataScriptEnvelope",
    "ODataErrorBody",
    "data_api_find_body",
]
