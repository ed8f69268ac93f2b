import logging
from datetime import datetime
from typing import Callable, List, Union

from roster.models.member import CharacterStats, MemberProfile, SocialIdentity
from roster.util.cache import RosterCache
from roster.util.errors import ErrorCode, RosterError
from roster.util.schema import (
    LINE_PROFILE_COLUMNS,
    MEMBER_COLUMNS,
    append_range,
    cell_range,
    identity_to_row,
    partial_row,
    profile_to_row,
    row_to_identity,
    table_range,
    timestamp,
)

logger = logging.getLogger(__name__)


def backend_detail(e: Exception):
    # gspread's APIError keeps the decoded error body of the response.
    return getattr(e, "error", None) or str(e)


class MemberService:
    """
    Write-through operations on the roster sheets.

    Every operation first asks the credential store for an authorized client,
    so a missing or broken token fails with ACCESS_TOKEN_FAILURE before
    anything is written. Row numbers come from the cache's last refresh and
    are not re-checked against the sheet.
    """

    def __init__(
        self,
        cache: RosterCache,
        credentials,
        open_gateway: Callable,
        member_sheet: str = "members",
        line_profile_sheet: str = "line_profiles",
        header_offset: int = 2,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.cache = cache
        self.credentials = credentials
        self.open_gateway = open_gateway
        self.member_sheet = member_sheet
        self.line_profile_sheet = line_profile_sheet
        self.header_offset = header_offset
        self.clock = clock

    def _gateway(self):
        return self.open_gateway(self.credentials.get_authorized_client())

    def _member_cells(self, row_num, first, last=None):
        return cell_range(self.member_sheet, MEMBER_COLUMNS, row_num, first, last)

    def _last_updated(self, row_num, now):
        return {"range": self._member_cells(row_num, "last_updated"), "values": [now]}

    def _batch_update(self, gateway, updates, what):
        try:
            gateway.batch_update(updates)
        except Exception as e:
            logger.exception(f"Failed to update {what}")
            raise RosterError(ErrorCode.UPDATE_FAILED, backend_detail(e)) from e
        self.cache.refresh()

    def add_member(self, profile: MemberProfile, identity: SocialIdentity) -> MemberProfile:
        gateway = self._gateway()

        # Avoid duplicate member be added.
        if self.cache.find_by_identity(identity.line_id) is not None:
            raise RosterError(ErrorCode.MEMBER_ALREADY_EXISTS, identity.line_id)

        profile = profile.model_copy(update={"line_id": identity.line_id})
        now = timestamp(self.clock())
        try:
            gateway.append_row(
                append_range(self.member_sheet, self.header_offset),
                profile_to_row(profile, now),
            )
            gateway.append_row(
                append_range(self.line_profile_sheet, self.header_offset),
                identity_to_row(identity, now),
            )
        except Exception as e:
            logger.exception(f"Failed to append member {identity.line_id}")
            raise RosterError(ErrorCode.APPEND_FAILED, backend_detail(e)) from e

        logger.info(f"Added member {profile.char_name} ({identity.line_id})")
        self.cache.refresh()
        return self.cache.find_by_identity(identity.line_id) or profile

    def update_social_profile(self, row_num: int, identity: SocialIdentity) -> None:
        gateway = self._gateway()
        now = timestamp(self.clock())
        updates = [
            {
                "range": self._member_cells(row_num, "display_name", "picture_url"),
                "values": partial_row(
                    MEMBER_COLUMNS,
                    "display_name",
                    "picture_url",
                    {
                        "display_name": identity.display_name,
                        "picture_url": identity.picture_url,
                    },
                ),
            },
            self._last_updated(row_num, now),
            {
                "range": cell_range(
                    self.line_profile_sheet,
                    LINE_PROFILE_COLUMNS,
                    row_num,
                    "line_id",
                    "fail_count",
                ),
                "values": partial_row(
                    LINE_PROFILE_COLUMNS,
                    "line_id",
                    "fail_count",
                    {
                        "display_name": identity.display_name,
                        "picture_url": identity.picture_url,
                        "last_updated": now,
                        "fail_count": identity.fail_count,
                    },
                ),
            },
        ]
        self._batch_update(gateway, updates, f"LINE profile on row {row_num}")

    def update_character_stats(
        self, row_num: int, stats: Union[CharacterStats, MemberProfile]
    ) -> None:
        gateway = self._gateway()
        now = timestamp(self.clock())
        updates = [
            {
                "range": self._member_cells(row_num, "avatar_url", "union_level"),
                "values": partial_row(
                    MEMBER_COLUMNS,
                    "avatar_url",
                    "union_level",
                    {
                        "avatar_url": stats.avatar_url,
                        "job": stats.job,
                        "level": stats.level,
                        "union_level": stats.union_level,
                    },
                ),
            },
            self._last_updated(row_num, now),
        ]
        self._batch_update(gateway, updates, f"character on row {row_num}")

    def update_mood_phrase(self, line_id: str, mood_phrase: str) -> None:
        gateway = self._gateway()
        found = self.cache.find_by_identity(line_id)
        if found is None:
            # Mood phrases are best effort, unknown members are skipped.
            logger.info(f"Skipping mood phrase for unknown LINE ID {line_id}")
            return
        updates = [
            {
                "range": self._member_cells(found.row_num, "mood_phrase"),
                "values": [mood_phrase],
            }
        ]
        self._batch_update(gateway, updates, f"mood phrase on row {found.row_num}")

    def get_line_profiles(self) -> List[SocialIdentity]:
        try:
            rows = self._gateway().read_range(
                table_range(
                    self.line_profile_sheet, LINE_PROFILE_COLUMNS, self.header_offset
                )
            )
        except Exception as e:
            logger.warning(f"Failed to load LINE profiles: {e}")
            return []
        return [row_to_identity(row) for row in rows]
