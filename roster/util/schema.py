"""
Positional column contracts of the two backing sheets.

Both sheets are plain grids with one header row. Every column a write
touches is looked up here by field name, so the letters only exist once.

    members        A..N  char_name .. last_updated
    line_profiles  A..G  line_id .. fail_count
"""
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from gspread.utils import absolute_range_name, rowcol_to_a1

from roster.models.member import MemberProfile, MemberStatus, SocialIdentity


MEMBER_COLUMNS = (
    "char_name",
    "display_name",
    "status",
    "manager",
    "line_id",
    "picture_url",
    "avatar_url",
    "job",
    "level",
    "union_level",
    "groups",
    "mood_phrase",
    "first_created",
    "last_updated",
)

LINE_PROFILE_COLUMNS = (
    "line_id",
    "display_name",
    "picture_url",
    "encoded_token",
    "first_created",
    "last_updated",
    "fail_count",
)

TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


def timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def column_index(columns: Sequence[str], field: str) -> int:
    """1-based column number of ``field``."""
    return columns.index(field) + 1


def cell_range(
    sheet: str,
    columns: Sequence[str],
    row: int,
    first: str,
    last: Optional[str] = None,
) -> str:
    """
    A1 range for the cells ``first``..``last`` on a single row, e.g.
    ``'members'!B5:F5``. With ``last`` omitted the range is one cell.
    """
    start = rowcol_to_a1(row, column_index(columns, first))
    if last is None or last == first:
        return absolute_range_name(sheet, start)
    end = rowcol_to_a1(row, column_index(columns, last))
    return absolute_range_name(sheet, f"{start}:{end}")


def table_range(sheet: str, columns: Sequence[str], header_offset: int) -> str:
    """Open-ended A1 range covering every data row, e.g. ``'members'!A2:N``."""
    end = rowcol_to_a1(1, len(columns))[:-1]
    return absolute_range_name(sheet, f"A{header_offset}:{end}")


def append_range(sheet: str, header_offset: int) -> str:
    return absolute_range_name(sheet, f"A{header_offset}")


def partial_row(
    columns: Sequence[str], first: str, last: str, values: Dict[str, object]
) -> List[object]:
    """
    Values for the cells ``first``..``last``. Fields missing from ``values``
    are sent as None, which the Sheets API leaves untouched.
    """
    span = columns[column_index(columns, first) - 1 : column_index(columns, last)]
    unknown = set(values) - set(span)
    if unknown:
        raise KeyError(f"Fields outside {first}..{last}: {sorted(unknown)}")
    return [values.get(field) for field in span]


def _cell(row: Sequence[str], index: int) -> Optional[str]:
    # The Sheets API drops trailing empty cells of a row.
    if index < len(row):
        value = row[index]
        return value if value != "" else None
    return None


def _int(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).replace(",", "").strip()))
    except (ValueError, OverflowError):
        return None


def parse_groups(value: Optional[str]) -> List[List[str]]:
    """``"raid-lead,pvp-2"`` -> ``[["raid", "lead"], ["pvp", "2"]]``"""
    if not value:
        return []
    return [tag.split("-") for tag in str(value).split(",") if tag]


def row_to_profile(row: Sequence[str], row_num: Optional[int] = None) -> MemberProfile:
    cells = {field: _cell(row, i) for i, field in enumerate(MEMBER_COLUMNS)}
    return MemberProfile(
        char_name=cells["char_name"] or "",
        display_name=cells["display_name"] or "",
        status=cells["status"],
        manager=cells["manager"] or "",
        line_id=cells["line_id"] or "",
        picture_url=cells["picture_url"],
        avatar_url=cells["avatar_url"],
        job=cells["job"],
        level=_int(cells["level"]),
        union_level=_int(cells["union_level"]),
        groups=parse_groups(cells["groups"]),
        mood_phrase=cells["mood_phrase"],
        first_created=cells["first_created"],
        last_updated=cells["last_updated"],
        row_num=row_num,
    )


def row_to_identity(row: Sequence[str]) -> SocialIdentity:
    cells = {field: _cell(row, i) for i, field in enumerate(LINE_PROFILE_COLUMNS)}
    return SocialIdentity(
        line_id=cells["line_id"] or "",
        display_name=cells["display_name"] or "",
        picture_url=cells["picture_url"],
        encoded_token=cells["encoded_token"],
        first_created=cells["first_created"],
        last_updated=cells["last_updated"],
        fail_count=_int(cells["fail_count"]),
    )


def profile_to_row(profile: MemberProfile, now: str) -> List[object]:
    """Full members row for a new member. Groups and mood phrase start empty."""
    status = MemberStatus.parse(profile.status)
    values = {
        "char_name": profile.char_name,
        "display_name": profile.display_name,
        "status": status.label if status else None,
        "manager": profile.manager,
        "line_id": profile.line_id,
        "picture_url": profile.picture_url,
        "avatar_url": profile.avatar_url,
        "job": profile.job,
        "level": profile.level,
        "union_level": profile.union_level,
        "groups": None,
        "mood_phrase": None,
        "first_created": now,
        "last_updated": now,
    }
    return [values[field] for field in MEMBER_COLUMNS]


def identity_to_row(identity: SocialIdentity, now: str) -> List[object]:
    values = {
        "line_id": identity.line_id,
        "display_name": identity.display_name,
        "picture_url": identity.picture_url,
        "encoded_token": identity.encoded_token,
        "first_created": now,
        "last_updated": now,
        "fail_count": identity.fail_count,
    }
    return [values[field] for field in LINE_PROFILE_COLUMNS]
