"""
Flight duration encodings.

Providers report durations either as ISO 8601 strings (``PT7H35M``) or as
plain integer minutes. Segments keep whichever encoding the provider sent;
``parse_duration`` is the single place that turns either into minutes.
"""
import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

ISO_DURATION_RE = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


class EncodedDuration(BaseModel):
    """ISO 8601 style duration string, e.g. PT2H30M"""
    kind: Literal["encoded-string"] = "encoded-string"
    value: str


class MinutesDuration(BaseModel):
    """Duration already expressed in whole minutes"""
    kind: Literal["minutes"] = "minutes"
    value: int = Field(ge=0)


Duration = Annotated[Union[EncodedDuration, MinutesDuration], Field(discriminator="kind")]


def parse_duration(duration: Union[EncodedDuration, MinutesDuration]) -> int:
    """Normalize a duration of either encoding to minutes (0 when unparseable)"""
    if isinstance(duration, MinutesDuration):
        return duration.value

    raw = duration.value.strip().upper()
    if raw.isdigit():
        return int(raw)

    match = ISO_DURATION_RE.match(raw)
    if not match or raw == "P":
        return 0

    days = int(match.group("days") or 0)
    hours = int(match.group("hours") or 0)
    minutes = int(match.group("minutes") or 0)
    return days * 24 * 60 + hours * 60 + minutes


def duration_from_native(raw: Any) -> Union[EncodedDuration, MinutesDuration]:
    """Wrap a provider-native duration value in its tagged variant"""
    if isinstance(raw, bool):
        return MinutesDuration(value=0)
    if isinstance(raw, (int, float)):
        return MinutesDuration(value=max(int(raw), 0))
    if isinstance(raw, str):
        return EncodedDuration(value=raw)
    return MinutesDuration(value=0)
