import pytest

from roster.models.member import MemberProfile, MemberStatus, SocialIdentity
from roster.util.schema import (
    LINE_PROFILE_COLUMNS,
    MEMBER_COLUMNS,
    append_range,
    cell_range,
    identity_to_row,
    parse_groups,
    partial_row,
    profile_to_row,
    row_to_identity,
    row_to_profile,
    table_range,
)

from conftest import LINE_PROFILE_ROWS, MEMBER_ROWS


def test_full_row_maps_by_position():
    profile = row_to_profile(MEMBER_ROWS[0], row_num=2)
    assert profile.char_name == "Aria"
    assert profile.display_name == "阿瑞"
    assert profile.status == MemberStatus.MEMBER
    assert profile.manager == "Bob"
    assert profile.line_id == "U001"
    assert profile.picture_url == "https://p/1"
    assert profile.avatar_url == "https://a/1"
    assert profile.job == "Bishop"
    assert profile.level == 250
    assert profile.union_level == 8000
    assert profile.groups == [["raid", "lead"], ["pvp", "2"]]
    assert profile.mood_phrase == "hi"
    assert profile.first_created == "2019/01/01 00:00:00"
    assert profile.last_updated == "2019/01/02 00:00:00"
    assert profile.row_num == 2


def test_short_row_is_padded():
    profile = row_to_profile(MEMBER_ROWS[2])
    assert profile.line_id == "U003"
    assert profile.status == MemberStatus.DEPARTED
    assert profile.level is None
    assert profile.groups == []
    assert profile.mood_phrase is None
    assert profile.row_num is None


def test_blank_numbers_are_none():
    profile = row_to_profile(MEMBER_ROWS[4])
    assert profile.level is None
    assert profile.union_level == 7000
    assert profile.avatar_url is None


def test_status_labels():
    assert MemberStatus.parse("公會長") == MemberStatus.LEADER
    assert MemberStatus.parse("副會長") == MemberStatus.VICE_LEADER
    assert MemberStatus.parse("vice-leader") == MemberStatus.VICE_LEADER
    assert MemberStatus.parse("3") == MemberStatus.MEMBER
    assert MemberStatus.parse("guest") is None
    assert MemberStatus.parse(9) is None
    assert MemberStatus.DEPARTED.label == "離會會員"
    assert MemberStatus.VICE_LEADER.is_officer
    assert not MemberStatus.MEMBER.is_officer


def test_parse_groups_skips_empty_tags():
    assert parse_groups("a-b,,c-d,") == [["a", "b"], ["c", "d"]]
    assert parse_groups(None) == []


def test_ranges():
    assert cell_range("members", MEMBER_COLUMNS, 5, "display_name", "picture_url") == "'members'!B5:F5"
    assert cell_range("members", MEMBER_COLUMNS, 5, "last_updated") == "'members'!N5"
    assert cell_range("members", MEMBER_COLUMNS, 7, "mood_phrase") == "'members'!L7"
    assert cell_range("members", MEMBER_COLUMNS, 3, "avatar_url", "union_level") == "'members'!G3:J3"
    assert table_range("members", MEMBER_COLUMNS, 2) == "'members'!A2:N"
    assert table_range("line_profiles", LINE_PROFILE_COLUMNS, 2) == "'line_profiles'!A2:G"
    assert append_range("line_profiles", 2) == "'line_profiles'!A2"


def test_partial_row_leaves_gaps():
    values = partial_row(
        MEMBER_COLUMNS, "display_name", "picture_url", {"display_name": "x", "picture_url": "y"}
    )
    assert values == ["x", None, None, None, "y"]


def test_partial_row_rejects_fields_outside_span():
    with pytest.raises(KeyError):
        partial_row(MEMBER_COLUMNS, "avatar_url", "union_level", {"mood_phrase": "x"})


def test_profile_to_row_starts_without_groups_and_mood():
    profile = MemberProfile(
        char_name="Fay",
        display_name="菲",
        status=MemberStatus.MEMBER,
        manager="Bob",
        line_id="U006",
        picture_url="https://p/6",
        level=100,
        groups=[["raid", "lead"]],
        mood_phrase="ignored",
    )
    row = profile_to_row(profile, "2024/01/02 03:04:05")
    assert len(row) == len(MEMBER_COLUMNS)
    assert row[:6] == ["Fay", "菲", "會員", "Bob", "U006", "https://p/6"]
    assert row[8] == 100
    assert row[10] is None
    assert row[11] is None
    assert row[12:] == ["2024/01/02 03:04:05", "2024/01/02 03:04:05"]


def test_identity_rows():
    identity = row_to_identity(LINE_PROFILE_ROWS[0])
    assert identity.line_id == "U001"
    assert identity.encoded_token == "token-1"
    assert identity.fail_count == 0
    assert row_to_identity(LINE_PROFILE_ROWS[1]).fail_count is None

    row = identity_to_row(
        SocialIdentity(line_id="U006", display_name="菲", encoded_token="t"), "now"
    )
    assert row == ["U006", "菲", None, "t", "now", "now", None]


def test_out_of_range_number_only_blanks_that_cell():
    row = ["Gus", "", "會員", "", "U007", "", "", "Hero", "inf", "1e400"]
    profile = row_to_profile(row, row_num=9)
    assert profile.level is None
    assert profile.union_level is None
    assert profile.line_id == "U007"
    assert profile.status == MemberStatus.MEMBER
