"""The pictures of the current patient and the lists shown from them.

A picture record is a mapping of database field names to values. The
library keeps every record of the patient and three views of them: the
pictures captured today (the latest few), the collected pictures that pass
the page filter, and the pictures opened for editing.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from xraydesk.picture_filter import ID_KEY, PictureFilter

PATH_KEY = "Image_Path_TEXT"
LAST_STATE_PATH_KEY = "Image_Last_State_Path_TEXT"
PILLAR_PATH_KEY = "Image_Pillar_Path_TEXT"
PAINT_CHECKED_KEY = "Checked_For_Add_To_Paint_List_Bool"
EXPORT_CHECKED_KEY = "Checked_For_Export_Or_Delete_Bool"
SCALE_KEY = "Scale_float"

SCALE_BY_GRID = (0.25, 0.25, 0.25, 0.2, 0.15)
"""Initial zoom of an edited picture for each editing grid layout."""
TODAY_LIMIT = 4
NO_PICTURE = "-1"
NO_PATIENT = -1

_FILE_KEYS = (PATH_KEY, LAST_STATE_PATH_KEY, PILLAR_PATH_KEY)


class PictureNotFound(KeyError):
    """Raised when no picture of the patient has the given id."""


def _now_ms():
    return int(time.time() * 1000)


def _picture_id(record):
    value = record.get(ID_KEY)
    return value if isinstance(value, str) else str(value)


def _pts(picture_id):
    try:
        return int(picture_id.strip())
    except ValueError:
        return 0


def _file_paths(record):
    return [
        record[key]
        for key in _FILE_KEYS
        if isinstance(record.get(key), str) and record[key]
    ]


@dataclass
class PictureLibrary:
    """All pictures of one patient and the lists built from them."""

    filter: PictureFilter = field(default_factory=PictureFilter)
    today_pts: int = field(default_factory=_now_ms)
    edit_grid_index: int = 1
    patient_id: int = NO_PATIENT
    latest_picture_id: str = NO_PICTURE
    records: list = field(default_factory=list)
    _collected: list = field(default_factory=list, init=False, repr=False)
    _today: list = field(default_factory=list, init=False, repr=False)
    _editing: list = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        if not 0 <= self.edit_grid_index < len(SCALE_BY_GRID):
            raise ValueError(f"edit grid index out of range: {self.edit_grid_index}")

    @property
    def scale(self):
        """Initial zoom for pictures opened in the current grid layout."""
        return SCALE_BY_GRID[self.edit_grid_index]

    @property
    def collected(self):
        """Records of the pictures passing the filter, in load order."""
        return [self._require(picture_id) for picture_id in self._collected]

    @property
    def today(self):
        """Records of the latest pictures captured today."""
        return [self._require(picture_id) for picture_id in self._today]

    @property
    def editing(self):
        """Copies of the records opened for editing."""
        return [dict(entry) for entry in self._editing]

    def _find(self, picture_id):
        return next(
            (record for record in self.records if _picture_id(record) == picture_id),
            None,
        )

    def _require(self, picture_id):
        record = self._find(picture_id)
        if record is None:
            raise PictureNotFound(picture_id)
        return record

    def _reset(self, patient_id):
        self._today.clear()
        self._editing.clear()
        self._collected.clear()
        self.records = []
        self.patient_id = patient_id
        self.latest_picture_id = NO_PICTURE
        self.filter.reset()

    def _push_today(self, picture_id):
        self._today.append(picture_id)
        if len(self._today) > TODAY_LIMIT:
            del self._today[0]

    def _append_collected(self, picture_id):
        if picture_id not in self._collected:
            self._collected.append(picture_id)

    def _append_editing(self, entry):
        picture_id = _picture_id(entry)
        if any(_picture_id(item) == picture_id for item in self._editing):
            return False
        self._editing.append(entry)
        return True

    def _drop_editing(self, picture_id):
        self._editing = [
            entry for entry in self._editing if _picture_id(entry) != picture_id
        ]

    def _sync_paint_flags(self):
        editing_ids = {_picture_id(entry) for entry in self._editing}
        for picture_id in self._collected:
            self._require(picture_id)[PAINT_CHECKED_KEY] = picture_id in editing_ids

    def _discard(self, picture_id):
        record = self._require(picture_id)
        if picture_id in self._today:
            self._today.remove(picture_id)
        self._drop_editing(picture_id)
        if picture_id in self._collected:
            self._collected.remove(picture_id)
        self.records.remove(record)
        return record

    def load(self, patient_id, records):
        """Load the pictures of a patient; nothing happens for the same patient.

        Returns True when the pictures were (re)loaded.
        """
        if patient_id == self.patient_id:
            return False
        self._reset(patient_id)
        self.records = [dict(record) for record in records]
        for record in self.records:
            picture_id = _picture_id(record)
            if _pts(picture_id) > self.today_pts:
                self._push_today(picture_id)
            if self.filter.accepts(record):
                self._append_collected(picture_id)
        return True

    def add(self, record):
        """Add a newly captured or imported picture and return its record."""
        record = dict(record)
        picture_id = _picture_id(record)
        if self._find(picture_id) is not None:
            raise ValueError(f"picture already exists: {picture_id}")
        self.records.append(record)
        self._push_today(picture_id)
        if self.filter.accepts(record):
            self._append_collected(picture_id)
        self.latest_picture_id = picture_id
        return record

    def remove(self, picture_id):
        """Remove one picture everywhere and return the files it used."""
        record = self._discard(picture_id)
        if picture_id == self.latest_picture_id:
            self.latest_picture_id = NO_PICTURE
        return _file_paths(record)

    def update(self, picture_id, properties, refilter=False):
        """Change properties of a picture, optionally filtering it again."""
        record = self._require(picture_id)
        record.update(properties)
        for entry in self._editing:
            if _picture_id(entry) == picture_id:
                entry.update(properties)
        if refilter:
            if self.filter.accepts(record):
                self._append_collected(picture_id)
                if record.get(PAINT_CHECKED_KEY) is True:
                    self._append_editing(dict(record))
                    self._sync_paint_flags()
            else:
                if picture_id in self._collected:
                    self._collected.remove(picture_id)
                self._drop_editing(picture_id)
        return record

    def refresh_collected(self):
        """Filter every picture again; skipped while the filter drops signals.

        Returns True when the lists were refreshed.
        """
        if self.filter.drop_signal:
            return False
        for record in self.records:
            picture_id = _picture_id(record)
            if self.filter.accepts(record):
                self._append_collected(picture_id)
                if record.get(PAINT_CHECKED_KEY) is True:
                    self._append_editing(dict(record))
                    self._sync_paint_flags()
            else:
                if picture_id in self._collected:
                    self._collected.remove(picture_id)
                self._drop_editing(picture_id)
        return True

    def add_to_editing(self, picture_id):
        """Open a picture for editing and return its editing entry."""
        record = self._require(picture_id)
        entry = dict(record)
        entry[SCALE_KEY] = self.scale
        self._append_editing(entry)
        self._sync_paint_flags()
        record[PAINT_CHECKED_KEY] = True
        return entry

    def remove_from_editing(self, picture_id):
        """Close a picture that was open for editing."""
        self._drop_editing(picture_id)
        record = self._find(picture_id)
        if record is not None:
            record[PAINT_CHECKED_KEY] = False

    def clear_editing(self):
        """Close every picture open for editing."""
        self._editing.clear()
        for picture_id in self._collected:
            self._require(picture_id)[PAINT_CHECKED_KEY] = False

    def params(self, picture_id):
        """Return a copy of a picture's record with the editing zoom set."""
        result = dict(self._require(picture_id))
        result[SCALE_KEY] = self.scale
        return result

    def toggle(self, picture_id, key):
        """Flip a boolean property of a picture and return its new value."""
        record = self._require(picture_id)
        value = record.get(key) is not True
        self.update(picture_id, {key: value}, False)
        return value

    def checked_ids(self):
        """Ids of the collected pictures ticked for export or deletion."""
        return [
            picture_id
            for picture_id in self._collected
            if self._require(picture_id).get(EXPORT_CHECKED_KEY) is True
        ]

    def delete_checked(self):
        """Remove every ticked picture and return the files they used."""
        paths = []
        for picture_id in self.checked_ids():
            paths.extend(_file_paths(self._discard(picture_id)))
        return paths