"""Selecting which collected pictures of a patient are shown.

A picture record is a mapping of database field names to values, as stored
in the picture table. The filter checks its source, level, teeth and the
time it was taken (its id is the capture time in milliseconds).
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta

ID_KEY = "Image_ID_TEXT"
SOURCE_TYPE_KEY = "Source_Type_integer"
LEVEL_KEY = "Level_integer"
TEE_INDEXS_KEY = "Tee_Indexs_TEXT"
TEE_TEXT_KEY = "Tee_TEXT"
TEE_TYPE_KEY = "Tee_Type_TEXT"

KID = "kid"
ADULT = "adult"
LOOKBACK_DAYS = 365


class SourceType(enum.IntEnum):
    """Where a picture came from."""

    ALL = -1
    SCANNER = 0
    IMPORT = 1
    SENSOR = 2


class HasTeeType(enum.IntEnum):
    """Whether a picture must be tagged with teeth."""

    ALL = 0
    NO_TEE = 1
    HAS_TEE = 2


class PictureLevel(enum.IntEnum):
    """Picture grading; any other integer is a concrete level."""

    ALL = -1


def _to_int(value):
    """Read a stored value as an integer, 0 when it is not a number."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0


def _to_str(value):
    return value if isinstance(value, str) else ""


def _to_array(text):
    """Parse a JSON array stored as text, giving an empty list otherwise."""
    if isinstance(text, list):
        return text
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        return []
    return parsed if isinstance(parsed, list) else []


def _pts(picture):
    try:
        return int(_to_str(picture.get(ID_KEY)).strip())
    except ValueError:
        return 0


def _teeth_ok(picture, has_tee_type, tee_indexs, tee_type):
    if has_tee_type == HasTeeType.ALL:
        return True
    picture_indexs = _to_array(picture.get(TEE_INDEXS_KEY))
    if has_tee_type == HasTeeType.NO_TEE:
        return not picture_indexs
    if tee_type != _to_str(picture.get(TEE_TYPE_KEY)):
        return False
    wanted = {_to_int(index) for index in tee_indexs}
    return any(_to_int(index) in wanted for index in picture_indexs)


def matches(picture, source_type, level, has_tee_type, begin, end, tee_indexs, tee_type):
    """Tell whether *picture* passes every filter condition.

    The capture time must lie strictly between *begin* and *end*.
    """
    source_ok = int(source_type) == SourceType.ALL or int(source_type) == _to_int(
        picture.get(SOURCE_TYPE_KEY)
    )
    level_ok = int(level) == PictureLevel.ALL or int(level) == _to_int(
        picture.get(LEVEL_KEY)
    )
    teeth_ok = _teeth_ok(picture, HasTeeType(int(has_tee_type)), tee_indexs, tee_type)
    pts = _pts(picture)
    date_ok = begin < pts < end
    return source_ok and level_ok and teeth_ok and date_ok


def _default_window(now):
    now = now if now is not None else datetime.now()
    begin = now - timedelta(days=LOOKBACK_DAYS)
    end = now.replace(hour=23, minute=59, second=0, microsecond=0)
    return int(begin.timestamp() * 1000), int(end.timestamp() * 1000)


@dataclass
class PictureFilter:
    """Filter for the collected pictures page of a patient."""

    source_type: SourceType = SourceType.ALL
    level: int = PictureLevel.ALL
    has_tee_type: HasTeeType = HasTeeType.ALL
    date_begin: int | None = None
    date_end: int | None = None
    adult_indexs: list = field(default_factory=list)
    kid_indexs: list = field(default_factory=list)
    adult_text: list = field(default_factory=list)
    kid_text: list = field(default_factory=list)
    tee_type: str = ADULT
    drop_signal: bool = False

    def __post_init__(self):
        if self.date_begin is None or self.date_end is None:
            begin, end = _default_window(None)
            if self.date_begin is None:
                self.date_begin = begin
            if self.date_end is None:
                self.date_end = end

    def reinit(self):
        """Forget the chosen teeth and accept change notifications again."""
        self.adult_indexs = []
        self.kid_indexs = []
        self.drop_signal = False

    def reset(self, now=None):
        """Go back to all sources and teeth over the year up to *now*'s day end."""
        self.source_type = SourceType.ALL
        self.has_tee_type = HasTeeType.ALL
        self.date_begin, self.date_end = _default_window(now)
        self.reinit()

    def active_teeth(self):
        """Return the (indexes, texts) chosen for the current tooth type."""
        if self.tee_type == KID:
            return self.kid_indexs, self.kid_text
        return self.adult_indexs, self.adult_text

    def accepts(self, picture):
        """Tell whether *picture* passes this filter."""
        indexs, _ = self.active_teeth()
        return matches(
            picture,
            self.source_type,
            self.level,
            self.has_tee_type,
            self.date_begin,
            self.date_end,
            indexs,
            self.tee_type,
        )