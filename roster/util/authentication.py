import time
from functools import wraps
from typing import Optional

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from jose import jwt

from roster.models.member import MemberProfile, SocialIdentity

# Import options and errors
from roster.util.errors import Errors
from roster.util.settings import Settings

if Settings().telemetry.enable:
    from sentry_sdk import set_user


def _decode(request: Request, token: str):
    """
    Returns the JWT payload, or an error response that the decorators hand
    straight back to the client.
    """
    try:
        return jwt.decode(
            token,
            Settings().jwt.secret.get_secret_value(),
            algorithms=Settings().jwt.algorithm,
        )
    except jwt.JWTError:
        tr = Errors.generate(
            request,
            403,
            "Invalid token provided. Please log in again (refresh the page) and try again.",
        )
        tr.delete_cookie(key="token")
        return tr


class Authentication:
    def __init__(self):
        super(Authentication, self).__init__

    def admin(func):
        """
        Officers only. The payload is left on ``request.state.user_jwt``.
        """

        @wraps(func)
        async def wrapper(request: Request, token: Optional[str], *args, **kwargs):
            # Validate auth.
            if not token:
                return RedirectResponse(
                    "/line/new?redir=" + request.url.path,
                    status_code=status.HTTP_302_FOUND,
                )

            user_jwt = _decode(request, token)
            if not isinstance(user_jwt, dict):
                return user_jwt
            is_admin: bool = user_jwt.get("sudo", False)
            creation_date: float = user_jwt.get("issued", -1)

            if not is_admin:
                return Errors.generate(
                    request,
                    403,
                    "You are not a guild officer.",
                    essay="If you were promoted recently, please log in again.",
                )

            if time.time() > creation_date + Settings().jwt.lifetime_sudo:
                return Errors.generate(
                    request,
                    403,
                    "Session not new enough to verify officer status.",
                    essay="Officer sessions only last a day. Simply log in again to continue.",
                )

            request.state.user_jwt = user_jwt
            return await func(request, token, *args, **kwargs)

        return wrapper

    def member(func):
        """
        Any logged in LINE user, whether or not they joined the guild yet.
        """

        @wraps(func)
        async def wrapper_member(request: Request, token: Optional[str], *args, **kwargs):
            # Validate auth.
            if not token:
                return RedirectResponse(
                    "/line/new?redir=" + request.url.path,
                    status_code=status.HTTP_302_FOUND,
                )

            user_jwt = _decode(request, token)
            if not isinstance(user_jwt, dict):
                return user_jwt
            creation_date: float = user_jwt.get("issued", -1)

            if time.time() > creation_date + Settings().jwt.lifetime_user:
                return Errors.generate(
                    request,
                    403,
                    "Session expired.",
                    essay="Sessions last for about a month. Please log in again.",
                )
            if Settings().telemetry.enable:
                set_user({"id": user_jwt["line_id"]})
            request.state.user_jwt = user_jwt
            return await func(request, token, *args, **kwargs)

        return wrapper_member

    def create_jwt(identity: SocialIdentity, member: Optional[MemberProfile] = None):
        jwtData = {
            "line_id": identity.line_id,
            "name": identity.display_name,
            "pfp": identity.picture_url,
            "sudo": bool(member and member.status and member.status.is_officer),
            "is_member": member is not None,
            "issued": time.time(),
        }
        bearer = jwt.encode(
            jwtData,
            Settings().jwt.secret.get_secret_value(),
            algorithm=Settings().jwt.algorithm,
        )
        return bearer
