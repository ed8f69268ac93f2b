"""
The spreadsheet is the database. This module wires the credential store,
sheet gateway, roster cache and member service together from Settings and
exposes them as FastAPI dependencies.
"""
import logging

from fastapi import FastAPI, Request

from roster.util.cache import RosterCache
from roster.util.credentials import GoogleCredentials
from roster.util.members import MemberService
from roster.util.scheduler import RefreshScheduler
from roster.util.settings import Settings, config_file
from roster.util.sheets import SheetGateway

logger = logging.getLogger(__name__)


def init_db(app: FastAPI, settings: Settings = None) -> None:
    settings = settings or Settings()
    google = settings.google
    if google is None:
        logger.error("Missing google config, cannot open the roster spreadsheet")
        raise ValueError("The google section is required in " + str(config_file))
    api_key = google.api_key.get_secret_value() if google.api_key else None

    credentials = GoogleCredentials(
        google.credentials_file, google.token_file, google.scopes, api_key=api_key
    )

    def open_gateway(client):
        return SheetGateway(client, google.spreadsheet_id)

    cache = RosterCache(
        lambda: open_gateway(credentials.get_reader_client()),
        member_sheet=google.member_sheet_name,
        header_offset=settings.roster.header_offset,
    )
    service = MemberService(
        cache,
        credentials,
        open_gateway,
        member_sheet=google.member_sheet_name,
        line_profile_sheet=google.line_profile_sheet_name,
        header_offset=settings.roster.header_offset,
    )

    app.state.credentials = credentials
    app.state.roster_cache = cache
    app.state.member_service = service
    app.state.scheduler = RefreshScheduler(cache, settings.roster.refresh_interval)


def get_credentials(request: Request) -> GoogleCredentials:
    return request.app.state.credentials


def get_cache(request: Request) -> RosterCache:
    return request.app.state.roster_cache


def get_service(request: Request) -> MemberService:
    return request.app.state.member_service
