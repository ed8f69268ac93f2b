import logging
import secrets
from typing import Optional
from urllib.parse import urlparse

# FastAPI
from fastapi import Cookie, Depends, FastAPI, Request, status
from fastapi.responses import RedirectResponse
from jose import jwt
from starlette.concurrency import run_in_threadpool

# Import routes
from roster.routes import admin, api

# Import middleware
from roster.util.authentication import Authentication
from roster.util.cache import RosterCache
from roster.util.database import get_cache, get_service, init_db

# Import error handling
from roster.util.errors import Errors, RosterError
from roster.util.line import Line
from roster.util.members import MemberService

# Import options
from roster.util.settings import Settings

if Settings().telemetry.enable:
    import sentry_sdk


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# Initiate FastAPI.
app = FastAPI()

if Settings().telemetry.enable:
    sentry_sdk.init(
        dsn=Settings().telemetry.url,
        traces_sample_rate=1.0,
        environment=Settings().telemetry.env,
    )

# Import endpoints from ./routes
app.include_router(api.router)
app.include_router(admin.router)

init_db(app)


@app.on_event("startup")
async def on_startup():
    if not Settings().google.enable:
        logger.warning("Google Sheets disabled, roster stays empty.")
        return
    await app.state.scheduler.start()


@app.on_event("shutdown")
async def on_shutdown():
    await app.state.scheduler.stop()


def safe_redirect(redir: Optional[str], default: str = "/") -> str:
    # Open redirect check
    if not redir:
        return default
    hostname = urlparse(redir).netloc
    if hostname != "" and hostname != Settings().http.domain:
        return default
    return redir


@app.get("/")
async def index(token: Optional[str] = Cookie(None)):
    is_member = False
    is_officer = False
    line_id = None

    if token is not None:
        try:
            user_jwt = jwt.decode(
                token,
                Settings().jwt.secret.get_secret_value(),
                algorithms=Settings().jwt.algorithm,
            )
            is_member = user_jwt.get("is_member", False)
            is_officer = user_jwt.get("sudo", False)
            line_id = user_jwt.get("line_id", None)
        except jwt.JWTError as e:
            logger.exception(e)

    return {"line_id": line_id, "is_member": is_member, "is_officer": is_officer}


"""
Redirects to LINE Login.
"""


@app.get("/line/new/")
async def oauth_transformer(request: Request, redir: str = "/"):
    if not Settings().line.enable:
        return Errors.generate(request, 503, "LINE Login is disabled.")

    redir = safe_redirect(redir)
    authorization_url, state = Line.authorization_url()

    rr = RedirectResponse(authorization_url, status_code=302)
    rr.set_cookie(key="redir_endpoint", value=redir, max_age=300)
    rr.set_cookie(key="line_state", value=state, max_age=300, httponly=True)
    return rr


"""
Logs the user in via LINE and refreshes their LINE name and picture in the roster.
This is what LINE will redirect to.
"""


@app.get("/api/oauth/")
async def oauth_transformer_new(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    redir_endpoint: Optional[str] = Cookie(None),
    line_state: Optional[str] = Cookie(None),
    cache: RosterCache = Depends(get_cache),
    service: MemberService = Depends(get_service),
):
    redir = safe_redirect(redir_endpoint)

    if code is None:
        return Errors.generate(
            request,
            401,
            "You declined LINE log-in",
            essay="We need your LINE account to link you to the guild roster.",
        )

    if not state or not line_state or not secrets.compare_digest(state, line_state):
        return Errors.generate(request, 403, "Login timed out. Please try again.")

    try:
        identity = await run_in_threadpool(Line.fetch_identity, code, state)
    except Exception:
        logger.exception("LINE token exchange failed")
        return Errors.generate(request, 502, "LINE log-in failed. Please try again.")
    member = cache.find_by_identity(identity.line_id)

    # Create JWT. This should be the only way to issue JWTs.
    bearer = Authentication.create_jwt(identity, member)
    identity.encoded_token = bearer

    if member is not None:
        try:
            await run_in_threadpool(service.update_social_profile, member.row_num, identity)
        except RosterError:
            # A stale LINE name in the sheet should not block the login.
            logger.exception(f"Could not refresh LINE profile of {identity.line_id}")

    rr = RedirectResponse(redir, status_code=status.HTTP_302_FOUND)
    if member is not None and member.status.is_officer:
        max_age = Settings().jwt.lifetime_sudo
    else:
        max_age = Settings().jwt.lifetime_user
    rr.set_cookie(
        key="token",
        value=bearer,
        httponly=True,
        samesite="lax",
        secure=Settings().env != "dev",
        max_age=max_age,
    )
    # Clear redirect cookie.
    rr.delete_cookie("redir_endpoint")
    rr.delete_cookie("line_state")
    return rr


@app.get("/logout")
async def logout(request: Request):
    rr = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    rr.delete_cookie(key="token")
    return rr
