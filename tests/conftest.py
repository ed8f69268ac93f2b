import os
import random
from datetime import datetime

os.environ.setdefault("ROSTER_ENV", "dev")
os.environ.setdefault("ROSTER_CONFIG_FILE", "tests/missing-config.yml")

import pytest
from fastapi.testclient import TestClient

from roster.main import app
from roster.models.member import MemberStatus, SocialIdentity
from roster.util.authentication import Authentication
from roster.util.cache import RosterCache
from roster.util.database import get_cache, get_credentials, get_service
from roster.util.errors import ErrorCode, RosterError
from roster.util.members import MemberService

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)
FIXED_STAMP = "2024/01/02 03:04:05"

# Rows as the Sheets API returns them: strings, trailing blanks dropped.
MEMBER_ROWS = [
    ["Aria", "阿瑞", "會員", "Bob", "U001", "https://p/1", "https://a/1", "Bishop", "250", "8000", "raid-lead,pvp-2", "hi", "2019/01/01 00:00:00", "2019/01/02 00:00:00"],
    ["Bob", "鮑伯", "公會長", "", "U002", "https://p/2", "https://a/2", "Hero", "275", "9000"],
    ["Cid", "席德", "離會會員", "Bob", "U003"],
    ["Dee", "蒂", "副會長", "Bob", "U004", "", "", "", "", ""],
    ["Eve", "伊芙", "會員", "Dee", "U005", "https://p/5", "", "Paladin", "", "7000"],
]

LINE_PROFILE_ROWS = [
    ["U001", "阿瑞", "https://p/1", "token-1", "2019/01/01 00:00:00", "2019/01/02 00:00:00", "0"],
    ["U002", "鮑伯", "https://p/2", "token-2", "2019/01/01 00:00:00", "2019/01/02 00:00:00"],
]


class FakeGateway:
    """In-memory stand-in for SheetGateway that records every call."""

    def __init__(self, rows=None, line_rows=None):
        self.rows = [list(r) for r in (rows if rows is not None else MEMBER_ROWS)]
        self.line_rows = [list(r) for r in (line_rows if line_rows is not None else LINE_PROFILE_ROWS)]
        self.reads = []
        self.appends = []
        self.batches = []
        self.read_error = None
        self.write_error = None

    def read_range(self, range_spec):
        self.reads.append(range_spec)
        if self.read_error:
            raise self.read_error
        if range_spec.startswith("'line_profiles'"):
            return [list(r) for r in self.line_rows]
        return [list(r) for r in self.rows]

    def append_row(self, range_spec, values):
        if self.write_error:
            raise self.write_error
        self.appends.append((range_spec, list(values)))
        row = ["" if v is None else str(v) for v in values]
        if range_spec.startswith("'line_profiles'"):
            self.line_rows.append(row)
        else:
            self.rows.append(row)
        return {}

    def batch_update(self, updates):
        if self.write_error:
            raise self.write_error
        self.batches.append(updates)
        return {}


class FakeCredentials:
    def __init__(self):
        self.fail = False
        self.clients = 0
        self.codes = []

    def get_authorized_client(self):
        if self.fail:
            raise RosterError(ErrorCode.ACCESS_TOKEN_FAILURE, "No stored token")
        self.clients += 1
        return object()

    def authorization_url(self):
        return "https://accounts.google.com/o/oauth2/auth?client_id=test"

    def exchange_code(self, code):
        self.codes.append(code)


@pytest.fixture(name="gateway")
def gateway_fixture():
    return FakeGateway()


@pytest.fixture(name="credentials")
def credentials_fixture():
    return FakeCredentials()


@pytest.fixture(name="cache")
def cache_fixture(gateway: FakeGateway):
    return RosterCache(lambda: gateway, rng=random.Random(7), clock=lambda: FIXED_NOW)


@pytest.fixture(name="service")
def service_fixture(cache: RosterCache, credentials: FakeCredentials, gateway: FakeGateway):
    return MemberService(cache, credentials, lambda client: gateway, clock=lambda: FIXED_NOW)


@pytest.fixture(name="client")
def client_fixture(cache, service, credentials):
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_service] = lambda: service
    app.dependency_overrides[get_credentials] = lambda: credentials
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="member_jwt")
def member_jwt_fixture(cache: RosterCache):
    cache.refresh()
    return Authentication.create_jwt(
        SocialIdentity(line_id="U001", display_name="阿瑞", picture_url="https://p/1"),
        cache.find_by_identity("U001"),
    )


@pytest.fixture(name="officer_jwt")
def officer_jwt_fixture(cache: RosterCache):
    cache.refresh()
    leader = cache.find_by_identity("U002")
    assert leader.status == MemberStatus.LEADER
    return Authentication.create_jwt(
        SocialIdentity(line_id="U002", display_name="鮑伯", picture_url="https://p/2"),
        leader,
    )


@pytest.fixture(name="newcomer_jwt")
def newcomer_jwt_fixture():
    return Authentication.create_jwt(
        SocialIdentity(line_id="U999", display_name="新人", picture_url="https://p/9")
    )
