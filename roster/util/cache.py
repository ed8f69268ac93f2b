import logging
import random
from collections import Counter
from datetime import datetime
from typing import Callable, Optional

from roster.models.member import MemberProfile, MemberStatus, RosterSnapshot
from roster.util.errors import ErrorCode
from roster.util.schema import MEMBER_COLUMNS, row_to_profile, table_range, timestamp

logger = logging.getLogger(__name__)


class RosterCache:
    """
    In-memory snapshot of the active roster, reloaded from the members sheet.

    ``refresh`` builds a complete new RosterSnapshot and swaps it in with a
    single assignment, so readers see either the old roster or the new one.
    A failed load swaps in an empty roster instead of keeping the old one.
    """

    def __init__(
        self,
        open_gateway: Callable,
        member_sheet: str = "members",
        header_offset: int = 2,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.open_gateway = open_gateway
        self.member_sheet = member_sheet
        self.header_offset = header_offset
        self.rng = rng or random.Random()
        self.clock = clock
        self._snapshot: Optional[RosterSnapshot] = None

    def _load(self):
        rows = self.open_gateway().read_range(
            table_range(self.member_sheet, MEMBER_COLUMNS, self.header_offset)
        )
        return [
            row_to_profile(row, row_num=self.header_offset + i)
            for i, row in enumerate(rows)
        ]

    def refresh(self) -> RosterSnapshot:
        try:
            members = self._load()
        except Exception as e:
            logger.warning(f"{ErrorCode.LOAD_MEMBERS_FAILED.value}: {e}")
            members = []

        # Shuffle first so members of equal rank are not listed in sheet order.
        self.rng.shuffle(members)
        members = [
            m for m in members if m.status is not None and m.status <= MemberStatus.MEMBER
        ]
        members.sort(key=lambda m: m.status)

        duplicates = [
            line_id
            for line_id, n in Counter(m.line_id for m in members if m.line_id).items()
            if n > 1
        ]
        if duplicates:
            logger.warning(f"LINE IDs linked to more than one member: {duplicates}")

        snapshot = RosterSnapshot(members=members, last_updated=timestamp(self.clock()))
        self._snapshot = snapshot
        logger.info(f"[Member data] Refreshed. Loaded {len(members)} members.")
        return snapshot

    def get(self) -> Optional[RosterSnapshot]:
        return self._snapshot

    def find_by_identity(self, line_id: str) -> Optional[MemberProfile]:
        snapshot = self._snapshot
        if snapshot is None or not line_id:
            return None
        for member in snapshot.members:
            if member.line_id == line_id:
                return member
        return None
