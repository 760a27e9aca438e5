"""Editing history and export descriptions for pictures being edited.

Visible properties are the display settings of a picture: window, rotation,
brightness, filters, mirroring and whether it shows the original or the last
edited state. The history keeps snapshots of them for undo and redo.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from xraydesk.picture_filter import ID_KEY

STATE_KEY = "Image_State_Integer"
ROTATE_KEY = "Rotate_integer"
FAKE_COLOR_KEY = "Enable_Fake_Color_Filter_BOOLEAN"

ORIGIN_STATE = 0
"""State value of a picture shown as originally captured."""
LAST_STATE = 1
"""State value of a picture shown with its last edits."""

VISIBLE_KEYS = (
    "Window_Begin_integer",
    "Window_End_integer",
    "Rotate_integer",
    "Luminance_float",
    "Contrast_float",
    "Gama_float",
    "Float_float",
    "Rui_Hua_integer",
    "Enable_Fake_Color_Filter_BOOLEAN",
    "Enable_Turn_Color_Filter_BOOLEAN",
    "Filter_Index_integer",
    "Enable_Hor_Mirror_BOOLEAN",
    "Enable_Ver_Mirror_BOOLEAN",
    "Image_State_Integer",
)

GRAY16 = "16gray"
RGBA = "rgba"
FILE_SCHEME = "file:///"
EXPORT_CHECKED_TASK = "export_checked_pictures"
EXPORT_ONE_TASK = "export_one_picture"
FINAL_IMAGE_TASK = "get_final_image"

_NEGATIVE_ROTATIONS = {-90: 270, -180: 180, -270: 90, -360: 0}


def _to_int(value):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def visible_values(picture):
    """Return the visible properties held by *picture*, skipping absent ones."""
    return {key: picture[key] for key in VISIBLE_KEYS if key in picture}


@dataclass
class HistoryEntry:
    """One snapshot of a picture's visible properties."""

    picture_id: str
    properties: dict
    stack: int


@dataclass
class VisibleHistory:
    """Undo and redo trail of visible-property snapshots."""

    entries: list = field(default_factory=list)
    index: int = -1
    can_undo: bool = False
    can_redo: bool = False

    def save(self, picture_id, properties):
        """Record a snapshot, dropping any snapshots that could be redone."""
        del self.entries[self.index + 1:]
        entry = HistoryEntry(picture_id, dict(properties), len(self.entries))
        self.entries.append(entry)
        self.index = len(self.entries) - 1
        self.can_undo = len(self.entries) > 1
        self.can_redo = False
        return entry

    def undo(self):
        """Step back one snapshot and return it, or None when there is none."""
        if 0 < self.index < len(self.entries) + 1:
            self.index -= 1
        else:
            self.can_undo = False
            return None
        if self.index == 0:
            self.can_undo = False
        self.can_redo = True
        return self.entries[self.index]

    def redo(self):
        """Step forward one snapshot and return it, or None when there is none."""
        if 0 <= self.index < len(self.entries) - 1:
            self.index += 1
        else:
            self.can_redo = False
            return None
        if self.index == len(self.entries) - 1:
            self.can_redo = False
        self.can_undo = True
        return self.entries[self.index]

    def clear(self):
        """Forget every snapshot."""
        self.entries.clear()
        self.index = -1
        self.can_undo = False
        self.can_redo = False


def strip_file_scheme(url):
    """Remove every file-URL prefix from *url*, leaving a plain path."""
    return url.replace(FILE_SCHEME, "")


def normalize_rotation(angle):
    """Map negative quarter turns onto their positive equivalents."""
    return _NEGATIVE_ROTATIONS.get(angle, angle)


def rotate_pixels(pixels, angle):
    """Rotate an image array clockwise by *angle* degrees.

    Only 90, 180 and 270 (or their negative forms) rotate; any other
    angle returns an unchanged copy.
    """
    array = np.asarray(pixels)
    if array.ndim < 2:
        raise ValueError("pixels must have at least two dimensions")
    angle = normalize_rotation(angle)
    if angle == 90:
        return np.rot90(array, k=-1, axes=(0, 1)).copy()
    if angle == 180:
        return np.rot90(array, k=2, axes=(0, 1)).copy()
    if angle == 270:
        return np.rot90(array, k=1, axes=(0, 1)).copy()
    return array.copy()


def export_color(params):
    """Return the colour format a picture is exported in."""
    if _to_int(params.get(STATE_KEY)) == ORIGIN_STATE:
        return GRAY16
    return RGBA if params.get(FAKE_COLOR_KEY) is True else GRAY16


def build_export_task(params, picture_id, path, task):
    """Describe one picture export for the rendering side."""
    return {
        "rotate": _to_int(params.get(ROTATE_KEY)),
        "picture_id": picture_id,
        "path": path,
        "color": export_color(params),
        "task": task,
    }


def export_tasks_for_directory(records, ids, directory):
    """Describe exports of the pictures *ids* into *directory* as PNG files.

    *records* are picture records; ids without a record export with
    default parameters.
    """
    target = strip_file_scheme(directory)
    if target.endswith("/"):
        target = target[:-1]
    by_id = {str(record.get(ID_KEY)): record for record in records}
    return [
        build_export_task(
            by_id.get(picture_id, {}),
            picture_id,
            f"{target}/{picture_id}.png",
            EXPORT_CHECKED_TASK,
        )
        for picture_id in ids
    ]