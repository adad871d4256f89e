"""
Provider-shaped raw item received from the list source.

Treated as untrusted input: every field is optional and malformed values in
optional fields are coerced to "absent" instead of rejecting the whole item.
The loose shape never travels past the normalizer.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class RawPhoto(BaseModel):
    """Attached photo reference."""

    model_config = ConfigDict(extra="allow")

    url: Optional[str] = None


class RawItem(BaseModel):
    """Loosely validated post payload as returned by the upstream source."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    text: Optional[str] = None
    username: Optional[str] = None
    name: Optional[str] = None
    is_verified: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_verified", "isVerified")
    )
    timestamp: Any = None
    is_retweet: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_retweet", "isRetweet")
    )
    is_reply: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_reply", "isReply")
    )
    in_reply_to_status_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("in_reply_to_status_id", "inReplyToStatusId"),
    )
    retweeted_status: Any = Field(
        default=None, validation_alias=AliasChoices("retweeted_status", "retweetedStatus")
    )
    quoted_status: Any = Field(
        default=None, validation_alias=AliasChoices("quoted_status", "quotedStatus")
    )
    photos: list[RawPhoto] = Field(default_factory=list)
    likes: Optional[int] = None
    retweets: Optional[int] = None
    replies: Optional[int] = None
    thread: Optional[list["RawItem"]] = None

    @field_validator("id", "text", "username", "name", "in_reply_to_status_id", mode="before")
    @classmethod
    def coerce_string(cls, v: Any) -> Optional[str]:
        """Accept strings and numbers; anything else is treated as missing."""
        if isinstance(v, str):
            return v
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return None

    @field_validator("is_verified", "is_retweet", "is_reply", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> Optional[bool]:
        if isinstance(v, bool):
            return v
        if isinstance(v, int):
            return v != 0
        if isinstance(v, str) and v.lower() in ("true", "false"):
            return v.lower() == "true"
        return None

    @field_validator("likes", "retweets", "replies", mode="before")
    @classmethod
    def coerce_counter(cls, v: Any) -> Optional[int]:
        if isinstance(v, bool) or v is None:
            return None
        try:
            return int(v)
        except (TypeError, ValueError):
            return None

    @field_validator("photos", mode="before")
    @classmethod
    def coerce_photos(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        photos = []
        for photo in v:
            if isinstance(photo, str):
                photos.append({"url": photo})
            elif isinstance(photo, dict) and isinstance(photo.get("url"), str):
                photos.append(photo)
            elif isinstance(photo, RawPhoto):
                photos.append(photo)
        return photos

    @field_validator("thread", mode="before")
    @classmethod
    def coerce_thread(cls, v: Any) -> Optional[list]:
        if not isinstance(v, list):
            return None
        return [node for node in v if isinstance(node, (dict, RawItem))]

    @classmethod
    def from_payload(cls, payload: Any) -> "RawItem":
        """Build a RawItem from a decoded JSON payload.

        Non-mapping payloads yield an empty item, which the normalizer
        then rejects for lacking an identifier.
        """
        if isinstance(payload, RawItem):
            return payload
        if not isinstance(payload, dict):
            return cls()
        return cls.model_validate(payload)


RawItem.model_rebuild()
