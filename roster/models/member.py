from enum import IntEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MemberStatus(IntEnum):
    """
    Guild rank. Lower value means higher rank, so sorting ascending puts the
    leader first. The sheet stores the guild's own labels, see ``label``.
    """

    LEADER = 1
    VICE_LEADER = 2
    MEMBER = 3
    DEPARTED = 4

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def is_officer(self) -> bool:
        return self <= MemberStatus.VICE_LEADER

    @classmethod
    def parse(cls, value) -> Optional["MemberStatus"]:
        """
        Accepts a sheet label, an enum name or a rank number. Returns None for
        anything else so unknown rows drop out of the roster.
        """
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return None
        text = str(value).strip()
        for status, label in STATUS_LABELS.items():
            if text == label:
                return status
        if text.upper().replace("-", "_") in cls.__members__:
            return cls[text.upper().replace("-", "_")]
        if text.isdigit():
            return cls.parse(int(text))
        return None


STATUS_LABELS = {
    MemberStatus.LEADER: "公會長",
    MemberStatus.VICE_LEADER: "副會長",
    MemberStatus.MEMBER: "會員",
    MemberStatus.DEPARTED: "離會會員",
}


class MemberProfile(BaseModel):
    char_name: str = ""
    display_name: str = ""
    status: Optional[MemberStatus] = None
    manager: Optional[str] = ""
    line_id: str = ""
    picture_url: Optional[str] = None
    avatar_url: Optional[str] = None
    job: Optional[str] = None
    level: Optional[int] = None
    union_level: Optional[int] = None
    groups: List[List[str]] = Field(default_factory=list)
    mood_phrase: Optional[str] = None
    first_created: Optional[str] = None
    last_updated: Optional[str] = None

    # Position in the members sheet at the last refresh, never persisted.
    row_num: Optional[int] = None

    @field_validator("status", mode="before")
    def parse_status(cls, status):
        return MemberStatus.parse(status)


class SocialIdentity(BaseModel):
    line_id: str
    display_name: str = ""
    picture_url: Optional[str] = None
    encoded_token: Optional[str] = None
    first_created: Optional[str] = None
    last_updated: Optional[str] = None
    fail_count: Optional[int] = None


class RosterSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    members: List[MemberProfile]
    last_updated: str


# What a member can edit about their character.
class CharacterStats(BaseModel):
    avatar_url: Optional[str] = None
    job: Optional[str] = None
    level: Optional[int] = Field(None, ge=0)
    union_level: Optional[int] = Field(None, ge=0)


class MoodPhrase(BaseModel):
    mood_phrase: str = Field("", max_length=200)


class JoinRequest(CharacterStats):
    char_name: str = Field(min_length=1)
    manager: Optional[str] = ""


class PublicContact(BaseModel):
    name: str
    contact: str
