"""Lifecycle events delivered by the protocol SDK."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from .results import ResultCode

_EVENT_CONFIG = ConfigDict(
    populate_by_name=True,
    ser_json_bytes="base64",
    val_json_bytes="base64",
)


class _ResultEvent(BaseModel):
    """Event carrying an SDK outcome.

    ``result`` is always one of the known codes; ``result_name`` keeps the
    name the SDK actually sent, so an unknown ``InvalidPassword`` is still
    reported as such rather than as ``Fail``.
    """

    model_config = _EVENT_CONFIG

    result_name: Optional[str] = Field(default=None, alias="resultName")

    @model_validator(mode="before")
    @classmethod
    def _keep_result_name(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("result") is None:
            return data
        if "resultName" in data or "result_name" in data:
            return data
        return {**data, "resultName": str(data["result"])}

    @field_validator("result", mode="before", check_fields=False)
    @classmethod
    def _coerce_result(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, ResultCode):
            return ResultCode(value)
        return value

    @property
    def result_text(self) -> str:
        return self.result_name or self.result.value  # type: ignore[attr-defined]


class ConnectedEvent(_ResultEvent):
    """Transport connection attempt finished."""

    type: Literal["connected"] = "connected"
    result: ResultCode = ResultCode.OK


class DisconnectedEvent(BaseModel):
    """Transport connection dropped, planned or not."""

    model_config = _EVENT_CONFIG

    type: Literal["disconnected"] = "disconnected"


class LoggedOnEvent(_ResultEvent):
    """Logon request answered by the service."""

    type: Literal["loggedOn"] = "loggedOn"
    result: ResultCode
    server_time: Optional[datetime] = Field(default=None, alias="serverTime")
    email_domain: Optional[str] = Field(default=None, alias="emailDomain")


class LoggedOffEvent(_ResultEvent):
    """The service ended the logged-on session."""

    type: Literal["loggedOff"] = "loggedOff"
    result: ResultCode


class CredentialRotationRequest(BaseModel):
    """The service issued a new device credential (sentry) to store."""

    model_config = _EVENT_CONFIG

    type: Literal["credentialRotation"] = "credentialRotation"
    data: bytes
    job_id: int = Field(alias="jobId")
    file_name: str = Field(alias="fileName")
    offset: int = 0
    bytes_to_write: int = Field(alias="bytesToWrite")
    one_time_password: Optional[bytes] = Field(default=None, alias="oneTimePassword")


SessionEvent = Annotated[
    Union[
        ConnectedEvent,
        DisconnectedEvent,
        LoggedOnEvent,
        LoggedOffEvent,
        CredentialRotationRequest,
    ],
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[SessionEvent] = TypeAdapter(SessionEvent)


def parse_event(raw: str | bytes) -> SessionEvent:
    """Validate a JSON frame into the matching event model."""

    return _EVENT_ADAPTER.validate_json(raw)
