# SPDX-License-Identifier: MIT
# Copyright (c) 2024 Collegiate Cyber Defense Club
import logging
from typing import List, Optional

from fastapi import APIRouter, Cookie, Depends, Request
from starlette.concurrency import run_in_threadpool

from roster.models.member import SocialIdentity
from roster.util.authentication import Authentication
from roster.util.cache import RosterCache
from roster.util.credentials import GoogleCredentials
from roster.util.database import get_cache, get_credentials, get_service
from roster.util.errors import Errors, RosterError
from roster.util.members import MemberService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], responses=Errors.basic_http())


@router.get("/google/authorize")
@Authentication.admin
async def google_authorize(
    request: Request,
    token: Optional[str] = Cookie(None),
    credentials: GoogleCredentials = Depends(get_credentials),
):
    """
    Consent URL for the Google account that owns the roster spreadsheet.
    """
    return {"url": credentials.authorization_url()}


@router.get("/google/callback")
@Authentication.admin
async def google_callback(
    request: Request,
    token: Optional[str] = Cookie(None),
    code: Optional[str] = None,
    credentials: GoogleCredentials = Depends(get_credentials),
):
    """
    Exchanges the Google authorization code and stores the token.
    """
    if code is None:
        return Errors.generate(request, 400, "Missing ?code")
    try:
        await run_in_threadpool(credentials.exchange_code, code)
    except RosterError as e:
        raise Errors.from_roster_error(e)
    logger.info(f"Google token renewed by {request.state.user_jwt['line_id']}")
    return {"description": "Google token stored."}


@router.post("/refresh")
@Authentication.admin
async def post_refresh(
    request: Request,
    token: Optional[str] = Cookie(None),
    cache: RosterCache = Depends(get_cache),
):
    """
    Reloads the roster now instead of waiting for the next scheduled refresh.
    """
    snapshot = await run_in_threadpool(cache.refresh)
    return {"members": len(snapshot.members), "last_updated": snapshot.last_updated}


@router.get("/line_profiles", response_model=List[SocialIdentity])
@Authentication.admin
async def get_line_profiles(
    request: Request,
    token: Optional[str] = Cookie(None),
    service: MemberService = Depends(get_service),
):
    profiles = await run_in_threadpool(service.get_line_profiles)
    # Session tokens never leave the sheet.
    return [p.model_copy(update={"encoded_token": None}) for p in profiles]
