"""Requests the keeper sends to the protocol SDK."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .results import ResultCode

_COMMAND_CONFIG = ConfigDict(
    populate_by_name=True,
    ser_json_bytes="base64",
    val_json_bytes="base64",
)


class LogOnDetails(BaseModel):
    """Credentials presented when logging on."""

    model_config = _COMMAND_CONFIG

    type: Literal["logOn"] = "logOn"
    username: str
    password: str = Field(repr=False)
    auth_code: Optional[str] = Field(default=None, alias="authCode")
    sentry_hash: Optional[bytes] = Field(default=None, alias="sentryHash")


class CredentialAck(BaseModel):
    """Acknowledgment of a credential rotation request.

    Every field except ``sentry_hash`` echoes the request; the service only
    considers the credential installed when they match.
    """

    model_config = _COMMAND_CONFIG

    type: Literal["credentialAck"] = "credentialAck"
    job_id: int = Field(alias="jobId")
    file_name: str = Field(alias="fileName")
    bytes_written: int = Field(alias="bytesWritten")
    file_size: int = Field(alias="fileSize")
    offset: int
    result: ResultCode = ResultCode.OK
    last_error: int = Field(default=0, alias="lastError")
    one_time_password: Optional[bytes] = Field(default=None, alias="oneTimePassword")
    sentry_hash: bytes = Field(alias="sentryHash")
