import configparser

import pytest

from xraydesk.persistence import CalibrationError, CalibrationStore, Preferences


@pytest.fixture
def store(tmp_path):
    return CalibrationStore(tmp_path / "data", "SN-TEST")


def test_paths_follow_layout(store, tmp_path):
    root = tmp_path / "data"
    assert store.dark_path() == root / "fixed" / "SN-TEST_dark.raw"
    assert store.light_path() == root / "fixed" / "SN-TEST_light.raw"
    assert store.factory_dark_path() == root / "factory_fixed" / "SN-TEST_dark.raw"
    assert store.factory_light_path() == root / "factory_fixed" / "SN-TEST_light.raw"


def test_save_and_load_round_trip(store):
    store.save_dark(b"\x01\x02\x03\x04")
    store.save_light(bytearray(b"\xff\x00"))
    assert store.load_dark() == b"\x01\x02\x03\x04"
    assert store.load_light() == b"\xff\x00"


def test_load_missing_gives_empty(store):
    assert store.load_dark() == b""
    assert store.load_light() == b""


def test_reset_without_factory_files_fails(store):
    store.save_dark(b"user")
    with pytest.raises(CalibrationError):
        store.reset_to_factory()
    assert store.load_dark() == b"user"


def test_reset_copies_factory_files(store):
    store.factory_dark_path().parent.mkdir(parents=True)
    store.factory_dark_path().write_bytes(b"factory-dark")
    store.factory_light_path().write_bytes(b"factory-light")
    store.save_dark(b"old-dark")
    store.save_light(b"old-light")
    targets = store.reset_to_factory()
    assert targets == (store.dark_path(), store.light_path())
    assert store.load_dark() == b"factory-dark"
    assert store.load_light() == b"factory-light"


def test_import_needs_two_files(store, tmp_path):
    with pytest.raises(CalibrationError):
        store.import_factory_files([str(tmp_path / "a_dark.raw")])


def test_import_needs_dark_and_light_names(store, tmp_path):
    first = tmp_path / "one.raw"
    second = tmp_path / "two_light.raw"
    first.write_bytes(b"1")
    second.write_bytes(b"2")
    with pytest.raises(CalibrationError):
        store.import_factory_files([first.as_posix(), second.as_posix()])


def test_import_copies_with_own_names(store, tmp_path):
    source = tmp_path / "incoming"
    source.mkdir()
    dark = source / "SN-TEST_dark.raw"
    light = source / "SN-TEST_light.raw"
    dark.write_bytes(b"dd")
    light.write_bytes(b"ll")
    written = store.import_factory_files(
        ["file:///" + light.as_posix(), dark.as_posix()]
    )
    assert [path.name for path in written] == ["SN-TEST_dark.raw", "SN-TEST_light.raw"]
    assert store.factory_dark_path().read_bytes() == b"dd"
    assert store.factory_light_path().read_bytes() == b"ll"


def test_preferences_defaults_when_file_missing(tmp_path):
    prefs = Preferences.load(tmp_path / "settings.ini")
    assert prefs.expose_second_index == 0
    assert prefs.expose_second_value == "0.00"
    assert prefs.expose_cm == "0.0"
    assert prefs.source_index == 1
    assert prefs.show_mark_bar is True
    assert prefs.default_visible_params == {}


def test_preferences_round_trip(tmp_path):
    path = tmp_path / "settings.ini"
    prefs = Preferences(
        expose_second_index=3,
        voltage_v="70",
        show_meter_bar=False,
        default_visible_params={"Rotate_integer": 90},
    )
    prefs.save(path)
    assert Preferences.load(path) == prefs


def test_preferences_written_under_general_section(tmp_path):
    path = tmp_path / "settings.ini"
    Preferences(source_index=2).save(path)
    parser = configparser.RawConfigParser()
    parser.optionxform = str
    parser.read(path, encoding="utf-8")
    assert parser["General"]["_source_index"] == "2"


def test_set_persists_and_reports_change(tmp_path):
    path = tmp_path / "settings.ini"
    prefs = Preferences.load(path)
    assert prefs.set("expose_cm", "12") is True
    assert prefs.set("expose_cm", "12") is False
    assert Preferences.load(path).expose_cm == "12"


def test_set_unknown_name_raises(tmp_path):
    prefs = Preferences.load(tmp_path / "settings.ini")
    with pytest.raises(KeyError):
        prefs.set("path", tmp_path)


def test_save_keeps_unrelated_keys(tmp_path):
    path = tmp_path / "settings.ini"
    path.write_text("[General]\nother_key=kept\n", encoding="utf-8")
    Preferences(show_filter_bar=False).save(path)
    parser = configparser.RawConfigParser()
    parser.optionxform = str
    parser.read(path, encoding="utf-8")
    assert parser["General"]["other_key"] == "kept"
    assert Preferences.load(path).show_filter_bar is False


def test_bad_values_fall_back_to_defaults(tmp_path):
    path = tmp_path / "settings.ini"
    path.write_text(
        "[General]\n_source_index=abc\n_show_mark_bar=maybe\n", encoding="utf-8"
    )
    prefs = Preferences.load(path)
    assert prefs.source_index == 1
    assert prefs.show_mark_bar is True