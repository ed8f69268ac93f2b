from enum import Enum
from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class ErrorCode(str, Enum):
    ACCESS_TOKEN_FAILURE = "ERR_ACCESS_TOKEN_FAIL"
    MEMBER_ALREADY_EXISTS = "ERR_MEMBER_ALREADY_EXIST"
    APPEND_FAILED = "ERR_APPEND_VALUES"
    UPDATE_FAILED = "ERR_UPDATE_VALUES"
    LOAD_MEMBERS_FAILED = "ERR_LOAD_MEMBERS_DATA"


class RosterError(Exception):
    """
    Raised by roster operations that reach the caller. ``detail`` carries
    whatever the backend reported (for example the Sheets API error body).
    """

    def __init__(self, code: ErrorCode, detail: Optional[Any] = None):
        super().__init__(code.value)
        self.code = code
        self.detail = detail

    def __str__(self):
        if self.detail is None:
            return self.code.value
        return f"{self.code.value}: {self.detail}"


# HTTP status used when a RosterError leaves through a route.
ERROR_STATUS = {
    ErrorCode.ACCESS_TOKEN_FAILURE: 401,
    ErrorCode.MEMBER_ALREADY_EXISTS: 409,
    ErrorCode.APPEND_FAILED: 502,
    ErrorCode.UPDATE_FAILED: 502,
    ErrorCode.LOAD_MEMBERS_FAILED: 503,
}


class Errors:
    def __init__(self):
        super(Errors, self).__init__

    def generate(
        request: Request,
        num=404,
        msg="Page not found.",
        essay="",
        return_url="/",
    ):
        return JSONResponse(
            {
                "code": num,
                "reason": msg,
                "essay": essay,
                "return_url": return_url,
            },
            status_code=num,
        )

    def from_roster_error(e: RosterError):
        detail = {"error": e.code.value}
        if e.detail is not None:
            detail["detail"] = e.detail
        return HTTPException(status_code=ERROR_STATUS[e.code], detail=detail)

    def basic_http():
        return {
            404: {"description": "Member not found"},
            401: {"description": "User not authorized. Try logging in?"},
            403: {"description": "User does not have access to this page."},
        }
