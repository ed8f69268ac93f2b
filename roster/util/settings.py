import json
import logging
import os
import pathlib
import re
import subprocess
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

config_file = pathlib.Path(os.getenv("ROSTER_CONFIG_FILE", "config.yml")).resolve()
roster_env = os.getenv("ROSTER_ENV", "prod")

if roster_env == "dev":
    import hashlib
    import socket


def BitwardenConfig(settings: dict):
    """
    Takes a dict of settings loaded from yaml and adds the secrets from bitwarden to the settings dict.
    The bitwarden secrets are mapped to the settings dict using the bitwarden_mapping dict.
    The secrets are sourced based on a project id in the settings dict.
    """
    logger.debug("Loading secrets from Bitwarden")
    try:
        project_id = settings["bws"]["project_id"]
        if bool(re.search("[^a-z0-9-]", project_id)):
            raise ValueError("Invalid project id")
        command = ["bws", "secret", "list", project_id, "--output", "json"]
        env_vars = os.environ.copy()
        bitwarden_raw = subprocess.run(
            command, text=True, env=env_vars, capture_output=True
        ).stdout
    except Exception as e:
        logger.exception(e)
        raise e
    bitwarden_settings = parse_json_to_dict(bitwarden_raw)

    bitwarden_mapping = {
        "line_channel_secret": ("line", "channel_secret"),
        "google_api_key": ("google", "api_key"),
        "jwt_secret": ("jwt", "secret"),
        "telemetry_url": ("telemetry", "url"),
    }

    bitwarden_mapped = {}
    for bw_key, nested_keys in bitwarden_mapping.items():
        if bw_key in bitwarden_settings:
            top_key, nested_key = nested_keys
            if top_key not in bitwarden_mapped:
                bitwarden_mapped[top_key] = {}
            bitwarden_mapped[top_key][nested_key] = bitwarden_settings[bw_key]

    for top_key, nested_dict in bitwarden_mapped.items():
        if top_key in settings:
            for nested_key, value in nested_dict.items():
                settings[top_key][nested_key] = value
    return settings


def parse_json_to_dict(json_string):
    data = json.loads(json_string)
    return {item["key"]: item["value"] for item in data}


settings = dict()

if os.path.exists(config_file):
    with open(config_file) as f:
        settings.update(yaml.load(f, Loader=yaml.FullLoader) or {})
else:
    logger.error("No config file found at: " + str(config_file))

# If bitwarden is enabled, add secrets to settings
if settings.get("bws", {}).get("enable"):
    settings = BitwardenConfig(settings)


class GoogleConfig(BaseModel):
    """
    Represents the configuration for the Google Sheets backing store.

    Attributes:
        credentials_file (str): Path to the installed-app OAuth client secrets.
        token_file (str): Path where the authorized user token is persisted.
        spreadsheet_id (str): The spreadsheet acting as the roster database.
        member_sheet_name (str): Name of the sheet holding member rows.
        line_profile_sheet_name (str): Name of the sheet holding LINE identities.
        api_key (SecretStr): Optional API key used for read-only roster loads.
        scopes (List[str]): OAuth scopes requested during consent.
    """

    credentials_file: Optional[str] = Field("credentials.json")
    token_file: Optional[str] = Field("token.json")
    spreadsheet_id: Optional[str] = Field(None)
    member_sheet_name: Optional[str] = Field("members")
    line_profile_sheet_name: Optional[str] = Field("line_profiles")
    api_key: Optional[SecretStr] = Field(None)
    scopes: List[str] = Field(["https://www.googleapis.com/auth/spreadsheets"])
    enable: Optional[bool] = Field(True)

    @model_validator(mode="after")
    def check_required_fields(cls, values):
        if values.enable:
            for field in ["credentials_file", "token_file", "spreadsheet_id"]:
                if getattr(values, field) is None:
                    raise ValueError(f"Google {field} is required when enable is True")
        return values


if settings.get("google"):
    google_config = GoogleConfig(**settings["google"])
elif roster_env == "dev":
    google_config = GoogleConfig(enable=False)
else:
    logger.warning("Missing google config")
    google_config = None


class RosterConfig(BaseModel):
    """
    Attributes:
        refresh_interval (float): Seconds between two scheduled roster reloads.
        header_offset (int): Row number of the first data row in the members sheet.
    """

    refresh_interval: float = Field(10.0, gt=0)
    header_offset: int = Field(2, ge=1)


roster_config = RosterConfig(**settings.get("roster", {}))


class LineConfig(BaseModel):
    """
    Represents the configuration settings for LINE Login.

    Attributes:
        channel_id (str): The LINE Login channel ID.
        channel_secret (SecretStr): The LINE Login channel secret.
        callback_url (str): The callback URL registered on the LINE developer console.
        scope (str): Space separated scopes requested at login.
        enable (Optional[bool]): A flag indicating whether LINE Login is enabled.
    """

    channel_id: Optional[str] = Field(None)
    channel_secret: Optional[SecretStr] = Field(None)
    callback_url: Optional[str] = Field(None)
    scope: Optional[str] = Field("profile openid")
    enable: Optional[bool] = Field(True)

    @model_validator(mode="after")
    def check_required_fields(cls, values):
        if values.enable:
            for field in ["channel_id", "channel_secret", "callback_url"]:
                if getattr(values, field) is None:
                    raise ValueError(f"LINE {field} is required when enable is True")
        return values


if settings.get("line"):
    line_config = LineConfig(**settings["line"])
elif roster_env == "dev":
    line_config = LineConfig(enable=False)
else:
    logger.warning("Missing LINE config")
    line_config = None


class JwtConfig(BaseModel):
    """
    Configuration class for JWT (JSON Web Token) settings.

    Attributes:
        secret (SecretStr): The secret key used for signing and verifying JWTs.
        algorithm (str): The algorithm used for JWT encryption.
        lifetime_user (int): The lifetime (in seconds) of a member session.
        lifetime_sudo (int): The lifetime (in seconds) of an officer session.
    """

    secret: SecretStr
    algorithm: Optional[str] = Field("HS256")
    lifetime_user: Optional[int] = Field(2592000)
    lifetime_sudo: Optional[int] = Field(86400)


if settings.get("jwt"):
    jwt_config = JwtConfig(**settings["jwt"])
elif roster_env == "dev":
    # Provides a stable secret per dev instance, horribly insecure for prod
    hostname = socket.gethostname()
    secret = hashlib.sha256(hostname.encode("utf-8")).hexdigest()
    jwt_config = JwtConfig(secret=secret)
else:
    logger.warning("Missing jwt config")
    jwt_config = None


class TelemetryConfig(BaseModel):
    url: Optional[str] = None
    enable: Optional[bool] = False
    env: Optional[str] = "dev"


telemetry_config = TelemetryConfig(**settings.get("telemetry", {}))


class HttpConfig(BaseModel):
    domain: str


if settings.get("http"):
    http_config = HttpConfig(**settings["http"])
elif roster_env == "dev":
    http_config = HttpConfig(domain="localhost:8000")
else:
    logger.warning("Missing http config")
    http_config = None


class SingletonBaseSettingsMeta(type(BaseSettings), type):
    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super().__call__(*args, **kwargs)
        return cls._instances[cls]


class Settings(BaseSettings, metaclass=SingletonBaseSettingsMeta):
    google: Optional[GoogleConfig] = google_config
    roster: RosterConfig = roster_config
    line: Optional[LineConfig] = line_config
    jwt: Optional[JwtConfig] = jwt_config
    http: Optional[HttpConfig] = http_config
    telemetry: Optional[TelemetryConfig] = telemetry_config
    env: Optional[str] = roster_env
