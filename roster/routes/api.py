# SPDX-License-Identifier: MIT
# Copyright (c) 2024 Collegiate Cyber Defense Club
import logging
from typing import Optional

from fastapi import APIRouter, Body, Cookie, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from roster.models.info import InfoModel
from roster.models.member import (
    CharacterStats,
    JoinRequest,
    MemberProfile,
    MemberStatus,
    MoodPhrase,
    PublicContact,
    RosterSnapshot,
    SocialIdentity,
)
from roster.util.authentication import Authentication
from roster.util.cache import RosterCache
from roster.util.database import get_cache, get_service
from roster.util.errors import Errors, RosterError
from roster.util.members import MemberService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["API"], responses=Errors.basic_http())

ERR_ROSTER_NOT_LOADED = HTTPException(status_code=503, detail="Roster not loaded yet")
ERR_MEMBER_NOT_FOUND = HTTPException(status_code=404, detail="Member not found")


@router.get("/")
async def get_root():
    """
    Get API information.
    """
    return InfoModel(
        name="Guild Roster",
        description="Guild membership roster kept in a Google Sheet, linked to LINE Login.",
        credits=[
            PublicContact(name="Guild officers", contact="LINE official account"),
        ],
    )


@router.get("/members", response_model=RosterSnapshot)
async def get_members(cache: RosterCache = Depends(get_cache)):
    """
    The current roster snapshot. Members of equal rank come in random order.
    """
    snapshot = cache.get()
    if snapshot is None:
        raise ERR_ROSTER_NOT_LOADED
    return snapshot


@router.get("/members/{line_id}", response_model=MemberProfile)
async def get_member(line_id: str, cache: RosterCache = Depends(get_cache)):
    member = cache.find_by_identity(line_id)
    if member is None:
        raise ERR_MEMBER_NOT_FOUND
    return member


@router.post("/members", response_model=MemberProfile)
@Authentication.member
async def join(
    request: Request,
    token: Optional[str] = Cookie(None),
    body: JoinRequest = Body(...),
    service: MemberService = Depends(get_service),
):
    """
    Adds the logged in LINE user to the roster as a regular member.
    """
    user_jwt = request.state.user_jwt
    identity = SocialIdentity(
        line_id=user_jwt["line_id"],
        display_name=user_jwt.get("name") or "",
        picture_url=user_jwt.get("pfp"),
        encoded_token=token,
        fail_count=0,
    )
    profile = MemberProfile(
        char_name=body.char_name,
        display_name=identity.display_name,
        status=MemberStatus.MEMBER,
        manager=body.manager,
        line_id=identity.line_id,
        picture_url=identity.picture_url,
        avatar_url=body.avatar_url,
        job=body.job,
        level=body.level,
        union_level=body.union_level,
    )
    try:
        return await run_in_threadpool(service.add_member, profile, identity)
    except RosterError as e:
        raise Errors.from_roster_error(e)


@router.put("/members/me/character")
@Authentication.member
async def put_character(
    request: Request,
    token: Optional[str] = Cookie(None),
    body: CharacterStats = Body(...),
    service: MemberService = Depends(get_service),
):
    member = service.cache.find_by_identity(request.state.user_jwt["line_id"])
    if member is None:
        raise ERR_MEMBER_NOT_FOUND
    try:
        await run_in_threadpool(service.update_character_stats, member.row_num, body)
    except RosterError as e:
        raise Errors.from_roster_error(e)
    return {"description": "Character updated."}


@router.put("/members/me/mood")
@Authentication.member
async def put_mood(
    request: Request,
    token: Optional[str] = Cookie(None),
    body: MoodPhrase = Body(...),
    service: MemberService = Depends(get_service),
):
    try:
        await run_in_threadpool(
            service.update_mood_phrase, request.state.user_jwt["line_id"], body.mood_phrase
        )
    except RosterError as e:
        raise Errors.from_roster_error(e)
    return {"description": "Mood phrase updated."}
