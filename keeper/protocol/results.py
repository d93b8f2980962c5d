"""Closed set of outcome codes reported by the protocol SDK."""

from __future__ import annotations

import enum


class ResultCode(str, enum.Enum):
    """Outcome of a connect/logon/logoff operation.

    Values use the SDK's own names so that status reports stay readable.
    Anything the SDK reports outside this set collapses into ``FAIL``;
    events still carry the reported name for status and announcements.
    """

    OK = "OK"
    FAIL = "Fail"
    NO_CONNECTION = "NoConnection"
    NOT_LOGGED_ON = "NotLoggedOn"
    ACCESS_DENIED = "AccessDenied"
    ACCOUNT_LOGON_DENIED = "AccountLogonDenied"
    LOGGED_IN_ELSEWHERE = "LoggedInElsewhere"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    TRY_ANOTHER_CM = "TryAnotherCM"

    @classmethod
    def _missing_(cls, value: object) -> "ResultCode":
        return cls.FAIL

    @property
    def ok(self) -> bool:
        return self is ResultCode.OK

    @property
    def needs_auth_code(self) -> bool:
        """Two-factor code delivered by email is required to log on."""

        return self is ResultCode.ACCOUNT_LOGON_DENIED

    def __str__(self) -> str:
        return self.value
