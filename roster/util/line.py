import logging
from typing import Optional, Tuple

from requests_oauthlib import OAuth2Session

from roster.models.member import SocialIdentity
from roster.util.settings import Settings

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://access.line.me/oauth2/v2.1/authorize"
TOKEN_URL = "https://api.line.me/oauth2/v2.1/token"
PROFILE_URL = "https://api.line.me/v2/profile"


class Line:
    """
    This class handles LINE Login, from the authorization redirect to
    reading the user's profile.
    """

    def __init__(self):
        pass

    @staticmethod
    def session(state: Optional[str] = None) -> OAuth2Session:
        return OAuth2Session(
            Settings().line.channel_id,
            redirect_uri=Settings().line.callback_url,
            scope=Settings().line.scope.split(),
            state=state,
        )

    @staticmethod
    def authorization_url() -> Tuple[str, str]:
        return Line.session().authorization_url(AUTHORIZE_URL)

    @staticmethod
    def fetch_identity(code: str, state: Optional[str] = None) -> SocialIdentity:
        oauth = Line.session(state)
        oauth.fetch_token(
            TOKEN_URL,
            code=code,
            client_secret=Settings().line.channel_secret.get_secret_value(),
            include_client_id=True,
        )

        r = oauth.get(PROFILE_URL)
        r.raise_for_status()
        profile = r.json()
        logger.info(f"LINE login for {profile['userId']}")

        return SocialIdentity(
            line_id=profile["userId"],
            display_name=profile.get("displayName", ""),
            picture_url=profile.get("pictureUrl"),
        )
