"""Calibration files of the sensor and the user's remembered preferences.

Calibration frames are stored per sensor serial number under a data root.
The user's own calibration lives in ``fixed/`` and the factory files in
``factory_fixed/``. Preferences live in an INI file whose keys sit in the
``[General]`` section.
"""

from __future__ import annotations

import configparser
import json
import shutil
from dataclasses import dataclass, field, fields
from pathlib import Path

from xraydesk.editing import strip_file_scheme

USER_DIR = "fixed"
FACTORY_DIR = "factory_fixed"
DARK_SUFFIX = "_dark.raw"
LIGHT_SUFFIX = "_light.raw"
GENERAL_SECTION = "General"
VISIBLE_PARAMS_KEY = "default_visible_params"


class CalibrationError(Exception):
    """Raised when calibration files are missing or cannot be copied."""


@dataclass
class CalibrationStore:
    """Dark and light calibration frames of one sensor."""

    root: Path
    serial: str = ""

    def __post_init__(self):
        self.root = Path(self.root)

    def _path(self, directory, suffix):
        return self.root / directory / f"{self.serial}{suffix}"

    def dark_path(self):
        """Path of the user's dark calibration frame."""
        return self._path(USER_DIR, DARK_SUFFIX)

    def light_path(self):
        """Path of the user's light calibration frame."""
        return self._path(USER_DIR, LIGHT_SUFFIX)

    def factory_dark_path(self):
        """Path of the factory dark calibration frame."""
        return self._path(FACTORY_DIR, DARK_SUFFIX)

    def factory_light_path(self):
        """Path of the factory light calibration frame."""
        return self._path(FACTORY_DIR, LIGHT_SUFFIX)

    @staticmethod
    def _write(path, data):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(bytes(data))
        return path

    @staticmethod
    def _read(path):
        try:
            return path.read_bytes()
        except OSError:
            return b""

    def save_dark(self, data):
        """Store a dark frame and return the path written."""
        return self._write(self.dark_path(), data)

    def save_light(self, data):
        """Store a light frame and return the path written."""
        return self._write(self.light_path(), data)

    def load_dark(self):
        """Return the stored dark frame, or empty bytes when there is none."""
        return self._read(self.dark_path())

    def load_light(self):
        """Return the stored light frame, or empty bytes when there is none."""
        return self._read(self.light_path())

    def reset_to_factory(self):
        """Replace the user's calibration frames with the factory ones."""
        sources = (self.factory_dark_path(), self.factory_light_path())
        if not all(source.exists() for source in sources):
            raise CalibrationError(
                "factory calibration files are missing; contact the sensor maker"
            )
        targets = (self.dark_path(), self.light_path())
        for target in targets:
            if target.exists():
                target.unlink()
        try:
            for source, target in zip(sources, targets):
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, target)
        except OSError as error:
            raise CalibrationError(f"cannot copy factory files: {error}") from error
        return targets

    def import_factory_files(self, files):
        """Copy a dark and a light file into the factory directory.

        *files* must hold exactly two paths or file URLs; the one whose path
        contains ``dark`` is the dark frame, the one containing ``light`` the
        light frame. Files keep their own names. Returns the paths written.
        """
        files = list(files)
        if len(files) != 2:
            raise CalibrationError("select exactly 2 files")
        sources = [strip_file_scheme(str(item)) for item in files]
        dark = light = None
        for source in sources:
            if "dark" in source:
                dark = source
        for source in sources:
            if "light" in source:
                light = source
        if dark is None or light is None:
            raise CalibrationError(
                'file names must contain "dark" and "light"; import failed'
            )
        directory = self.root / FACTORY_DIR
        written = []
        try:
            directory.mkdir(parents=True, exist_ok=True)
            for source in (dark, light):
                target = directory / source.rsplit("/", 1)[-1]
                target.write_bytes(Path(source).read_bytes())
                written.append(target)
        except OSError as error:
            raise CalibrationError(f"cannot import factory files: {error}") from error
        return tuple(written)


def _parse_int(text, default):
    try:
        return int(text.strip())
    except ValueError:
        return default


def _parse_str(text, default):
    return text


def _parse_bool(text, default):
    lowered = text.strip().lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    return default


def _parse_dict(text, default):
    try:
        parsed = json.loads(text)
    except ValueError:
        return default
    return parsed if isinstance(parsed, dict) else default


def _format(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


_SETTINGS = {
    "expose_second_index": ("_expose_second_index", _parse_int),
    "expose_second_value": ("_expose_second_value", _parse_str),
    "expose_cm": ("_expose_cm", _parse_str),
    "voltage_v": ("_voltage_v", _parse_str),
    "electricity_a": ("_electricity_a", _parse_str),
    "source_index": ("_source_index", _parse_int),
    "show_transformation_bar": ("_show_transformation_bar", _parse_bool),
    "show_fix_image_bar": ("_show_fix_image_bar", _parse_bool),
    "show_filter_bar": ("_show_filter_bar", _parse_bool),
    "show_color_space_bar": ("_show_color_space_bar", _parse_bool),
    "show_meter_bar": ("_show_meter_bar", _parse_bool),
    "show_rui_hua_bar": ("_show_rui_hua_bar", _parse_bool),
    "show_mark_bar": ("_show_mark_bar", _parse_bool),
    "show_mark_manager_bar": ("_show_mark_manager_bar", _parse_bool),
    "default_visible_params": (VISIBLE_PARAMS_KEY, _parse_dict),
}


def _new_parser():
    parser = configparser.RawConfigParser()
    parser.optionxform = str
    return parser


@dataclass
class Preferences:
    """Exposure settings and tool-bar visibility the user chose last time."""

    expose_second_index: int = 0
    expose_second_value: str = "0.00"
    expose_cm: str = "0.0"
    voltage_v: str = "0.0"
    electricity_a: str = "0.0"
    source_index: int = 1
    show_transformation_bar: bool = True
    show_fix_image_bar: bool = True
    show_filter_bar: bool = True
    show_color_space_bar: bool = True
    show_meter_bar: bool = True
    show_rui_hua_bar: bool = True
    show_mark_bar: bool = True
    show_mark_manager_bar: bool = True
    default_visible_params: dict = field(default_factory=dict)
    path: Path | None = field(default=None, compare=False, repr=False)

    @classmethod
    def load(cls, path):
        """Read preferences from *path*, using defaults for anything missing."""
        path = Path(path)
        prefs = cls(path=path)
        parser = _new_parser()
        if path.exists():
            parser.read(path, encoding="utf-8")
        if parser.has_section(GENERAL_SECTION):
            section = parser[GENERAL_SECTION]
            for name, (key, parse) in _SETTINGS.items():
                if key in section:
                    default = getattr(prefs, name)
                    setattr(prefs, name, parse(section[key], default))
        return prefs

    def save(self, path=None):
        """Write every preference to *path*, keeping unrelated keys there."""
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("no path to save preferences to")
        parser = _new_parser()
        if target.exists():
            parser.read(target, encoding="utf-8")
        if not parser.has_section(GENERAL_SECTION):
            parser.add_section(GENERAL_SECTION)
        for item in fields(self):
            if item.name in _SETTINGS:
                key, _ = _SETTINGS[item.name]
                parser.set(GENERAL_SECTION, key, _format(getattr(self, item.name)))
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as handle:
            parser.write(handle)
        self.path = target
        return target

    def set(self, name, value):
        """Change one preference, saving at once when it has a file.

        Returns True when the value changed.
        """
        if name not in _SETTINGS:
            raise KeyError(name)
        if getattr(self, name) == value:
            return False
        setattr(self, name, value)
        if self.path is not None:
            self.save(self.path)
        return True