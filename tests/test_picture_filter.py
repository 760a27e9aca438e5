from datetime import datetime, timedelta

import pytest

from xraydesk.picture_filter import (
    HasTeeType,
    PictureFilter,
    PictureLevel,
    SourceType,
    matches,
)


def _picture(pts=1000, source=SourceType.SENSOR, level=0, indexs="[]", tee_type="adult"):
    return {
        "Image_ID_TEXT": str(pts),
        "Source_Type_integer": int(source),
        "Level_integer": level,
        "Tee_Indexs_TEXT": indexs,
        "Tee_TEXT": "[]",
        "Tee_Type_TEXT": tee_type,
    }


def _all(picture, begin=0, end=5000, **kwargs):
    args = dict(
        source_type=SourceType.ALL,
        level=PictureLevel.ALL,
        has_tee_type=HasTeeType.ALL,
        begin=begin,
        end=end,
        tee_indexs=[],
        tee_type="adult",
    )
    args.update(kwargs)
    return matches(picture, **args)


def test_everything_all_inside_window_matches():
    assert _all(_picture()) is True


@pytest.mark.parametrize("begin,end", [(1000, 5000), (0, 1000)])
def test_date_window_is_exclusive(begin, end):
    assert _all(_picture(pts=1000), begin=begin, end=end) is False


def test_non_numeric_id_counts_as_zero():
    picture = _picture()
    picture["Image_ID_TEXT"] = "abc"
    assert _all(picture, begin=-1) is True
    assert _all(picture, begin=0) is False


def test_source_type_must_match():
    picture = _picture(source=SourceType.IMPORT)
    assert _all(picture, source_type=SourceType.IMPORT) is True
    assert _all(picture, source_type=SourceType.SENSOR) is False


def test_level_must_match():
    picture = _picture(level=3)
    assert _all(picture, level=3) is True
    assert _all(picture, level=2) is False


def test_no_tee_requires_empty_indexes():
    assert _all(_picture(indexs="[]"), has_tee_type=HasTeeType.NO_TEE) is True
    assert _all(_picture(indexs="[11]"), has_tee_type=HasTeeType.NO_TEE) is False


def test_has_tee_requires_overlap_and_same_type():
    picture = _picture(indexs="[11, 12]", tee_type="adult")
    assert _all(picture, has_tee_type=HasTeeType.HAS_TEE, tee_indexs=[12]) is True
    assert _all(picture, has_tee_type=HasTeeType.HAS_TEE, tee_indexs=[13]) is False
    assert (
        _all(picture, has_tee_type=HasTeeType.HAS_TEE, tee_indexs=[12], tee_type="kid")
        is False
    )


def test_malformed_indexes_are_empty():
    picture = _picture(indexs="not json")
    assert _all(picture, has_tee_type=HasTeeType.NO_TEE) is True


def test_reset_window_ends_at_day_end():
    now = datetime(2023, 6, 15, 10, 30)
    flt = PictureFilter()
    flt.source_type = SourceType.IMPORT
    flt.adult_indexs = [11]
    flt.drop_signal = True
    flt.reset(now)
    end = datetime(2023, 6, 15, 23, 59)
    assert flt.date_end == int(end.timestamp() * 1000)
    assert flt.date_begin == int((now - timedelta(days=365)).timestamp() * 1000)
    assert flt.source_type == SourceType.ALL
    assert flt.adult_indexs == []
    assert flt.drop_signal is False


def test_reinit_keeps_texts():
    flt = PictureFilter(adult_indexs=[1], kid_indexs=[2], adult_text=["A"])
    flt.reinit()
    assert flt.adult_indexs == [] and flt.kid_indexs == []
    assert flt.adult_text == ["A"]


def test_active_teeth_follows_tee_type():
    flt = PictureFilter(adult_indexs=[1], kid_indexs=[2], adult_text=["a"], kid_text=["k"])
    assert flt.active_teeth() == ([1], ["a"])
    flt.tee_type = "kid"
    assert flt.active_teeth() == ([2], ["k"])


def test_accepts_uses_current_teeth():
    flt = PictureFilter(date_begin=0, date_end=5000, has_tee_type=HasTeeType.HAS_TEE)
    flt.kid_indexs = [51]
    flt.tee_type = "kid"
    assert flt.accepts(_picture(indexs="[51]", tee_type="kid")) is True
    flt.tee_type = "adult"
    assert flt.accepts(_picture(indexs="[51]", tee_type="kid")) is False


def test_default_filter_accepts_recent_picture():
    now_ms = int(datetime.now().timestamp() * 1000)
    flt = PictureFilter()
    assert flt.accepts(_picture(pts=now_ms - 1000)) is True
    assert flt.accepts(_picture(pts=flt.date_begin)) is False