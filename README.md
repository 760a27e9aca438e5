# xraydesk

Library code for a dental X-ray workstation. It covers a patient's pictures from the raw
sensor frame to the lists shown on screen, the editing history and the files kept on disk.

## Modules

- `xraydesk.raw_image` turns raw sensor frames into 16-bit greyscale pictures. The sensor
  is 1660 × 2280 pixels and carries 12-bit samples. Its two bottom corners are cut off.
  - `flat_field_correct(raw, dark, light)` corrects a frame against dark and light
    calibration frames. It clips the result to 0–4095 and sets the masked corners and the
    bottom edge rows to 0.
  - `stretch_minmax`, `stretch_percentile` and `invert_unscaled` produce inverted 16-bit
    pictures. The first two stretch the frame between its extremes or between its 0.05 %
    and 99.95 % points. The third only scales the frame to 16 bits. Each drops the last
    4 rows. Each raises `ValueError` when the frame has the wrong size or no contrast.
  - `corner_mask`, `point_in_triangle` and `triangle_area` describe the cut-off corners.
- `xraydesk.picture_filter` chooses which collected pictures are shown.
  - `matches` and `PictureFilter.accepts` test the source type, the level, the tagged teeth
    and the capture time. The capture time must lie strictly inside the date window.
  - By default the window runs from a year ago to 23:59 today.
  - The enums `SourceType`, `HasTeeType` and `PictureLevel` give the special filter values.
- `xraydesk.editing` supports the editing page.
  - `VisibleHistory` is the undo/redo trail of visible-property snapshots. It has `save`,
    `undo`, `redo` and `clear`, and keeps the `can_undo` and `can_redo` flags.
  - `visible_values` picks a picture's visible properties out of its record.
  - `normalize_rotation` and `rotate_pixels` rotate clockwise by quarter turns.
  - `export_color`, `build_export_task` and `export_tasks_for_directory` describe export
    jobs as dictionaries. A job's colour is `"16gray"` or `"rgba"`.
  - `strip_file_scheme` removes `file:///` prefixes.
- `xraydesk.persistence` keeps settings on disk.
  - `CalibrationStore(root, serial)` keeps the dark and light frames of each sensor in
    `root/fixed/<serial>_dark.raw` and `root/fixed/<serial>_light.raw`. The factory copies
    sit in `root/factory_fixed/`.
  - `reset_to_factory` copies the factory frames over the user's frames.
  - `import_factory_files` takes exactly two files, picks out the "dark" and "light" ones
    by name, and copies them into `factory_fixed/`.
  - Both raise `CalibrationError` on failure.
  - `Preferences` holds the exposure settings, the tool-bar visibility and the default
    visible parameters. `load` reads them from the `[General]` section of an INI file and
    `save` writes them back. `set` changes one value and saves at once.
- `xraydesk.pictures` holds the current patient's pictures.
  - `PictureLibrary` keeps every record, the latest pictures captured today (at most 4),
    the collected pictures that pass its `PictureFilter`, and the pictures opened for
    editing.
  - `remove` and `delete_checked` return the file paths the removed pictures used. They
    do not delete those files.
  - Unknown ids raise `PictureNotFound`.

## Example

```python
import numpy as np
from xraydesk.raw_image import flat_field_correct, stretch_percentile

raw = np.fromfile("frame.raw", dtype="<u2")
dark = np.fromfile("dark.raw", dtype="<u2")
light = np.fromfile("light.raw", dtype="<u2")

corrected = flat_field_correct(raw, dark, light)      # (2280, 1660) uint16
image = stretch_percentile(corrected, 1660, 2280)     # (2276, 1660) uint16
```

## What the package does not do

- It does not talk to the USB sensor.
- It does not read or write image files such as PNG or DICOM.
- It has no picture database. Records are plain dictionaries that you supply.
- It has no screens or commands.
- It does not handle reports: it cannot print, write PDF files or send to a PACS server.

## Tests

```
pip install -e .[test]
pytest
```