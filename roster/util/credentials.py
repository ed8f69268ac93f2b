import logging
import os

import gspread
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from roster.util.errors import ErrorCode, RosterError

logger = logging.getLogger(__name__)


class GoogleCredentials:
    """
    Owns the installed-app OAuth client and the persisted user token.

    The token file is written once an officer completes the consent flow
    (``authorization_url`` then ``exchange_code``). Every write goes through
    ``get_authorized_client``; roster loads may use an API key instead.
    """

    def __init__(self, credentials_file, token_file, scopes, api_key=None):
        self.credentials_file = credentials_file
        self.token_file = token_file
        self.scopes = list(scopes)
        self.api_key = api_key

    def _flow(self) -> Flow:
        # The code comes back in a later request, to a fresh Flow.
        flow = Flow.from_client_secrets_file(
            self.credentials_file,
            scopes=self.scopes,
            autogenerate_code_verifier=False,
        )
        flow.redirect_uri = flow.client_config["redirect_uris"][0]
        return flow

    def authorization_url(self) -> str:
        url, _ = self._flow().authorization_url(access_type="offline", prompt="consent")
        return url

    def exchange_code(self, code: str) -> None:
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except Exception as e:
            logger.exception("Error while trying to retrieve access token")
            raise RosterError(ErrorCode.ACCESS_TOKEN_FAILURE, str(e)) from e
        self._store(flow.credentials)
        logger.info(f"Stored Google token to {self.token_file}")

    def _store(self, creds: Credentials) -> None:
        with open(self.token_file, "w", encoding="utf-8") as f:
            f.write(creds.to_json())

    def load(self) -> Credentials:
        if not os.path.exists(self.token_file):
            raise RosterError(ErrorCode.ACCESS_TOKEN_FAILURE, "No stored token")
        try:
            creds = Credentials.from_authorized_user_file(self.token_file, self.scopes)
            if not creds.valid and creds.expired and creds.refresh_token:
                creds.refresh(Request())
                self._store(creds)
        except (GoogleAuthError, ValueError) as e:
            raise RosterError(ErrorCode.ACCESS_TOKEN_FAILURE, str(e)) from e
        if not creds.valid:
            raise RosterError(ErrorCode.ACCESS_TOKEN_FAILURE, "Stored token is not valid")
        return creds

    def get_authorized_client(self) -> gspread.Client:
        return gspread.authorize(self.load())

    def get_reader_client(self) -> gspread.Client:
        if self.api_key:
            return gspread.api_key(self.api_key)
        return self.get_authorized_client()
