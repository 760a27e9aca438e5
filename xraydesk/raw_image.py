"""Turning raw 12-bit sensor frames into 16-bit greyscale pictures.

The intra-oral sensor delivers little-endian 16-bit samples of which only the
low 12 bits carry data. Its active area is a rectangle with the two bottom
corners cut off; those cut-off triangles are masked in every step below.
"""

from __future__ import annotations

import numpy as np

SENSOR_WIDTH = 1660
SENSOR_HEIGHT = 2280
CORNER_RISE = 310
"""Vertical extent of each cut-off corner triangle, in pixels."""
SMALL_CORNER_LEG = 300
LARGE_CORNER_LEG = 310
TRIMMED_ROWS = 4
"""Rows dropped from the bottom of every rendered picture."""
EDGE_ROWS = 10
"""Bottom rows ignored when gathering statistics."""
MAX_CT_VALUE = 4095
WHITE = 65535
TAIL_FRACTION = 0.05 / 100.0
_AREA_TOLERANCE = 0.0001


def triangle_area(x1, y1, x2, y2, x3, y3):
    """Return the area of the triangle with the given corners."""
    return abs(x1 * y2 + y1 * x3 + x2 * y3 - y2 * x3 - y3 * x1 - y1 * x2) / 2.0


def point_in_triangle(x, y, x1, y1, x2, y2, x3, y3):
    """Tell whether (x, y) lies inside or on the edge of the triangle."""
    whole = triangle_area(x1, y1, x2, y2, x3, y3)
    part1 = triangle_area(x, y, x2, y2, x3, y3)
    part2 = triangle_area(x1, y1, x, y, x3, y3)
    part3 = triangle_area(x1, y1, x2, y2, x, y)
    return abs(whole - part1 - part2 - part3) < _AREA_TOLERANCE


def corner_mask(width, height, leg):
    """Boolean (height, width) mask of the two bottom corner triangles.

    The left triangle has corners (0, height - 310), (0, height) and
    (leg, height); the right one mirrors it against the right edge.
    Points on an edge count as inside.
    """
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    bottom = height
    top = bottom - CORNER_RISE
    ys = np.arange(height, dtype=np.int64)[:, None]
    xs = np.arange(width, dtype=np.int64)[None, :]
    depth = (ys - top) * leg
    band = (ys >= top) & (ys <= bottom)
    left = band & (xs * CORNER_RISE <= depth)
    right = band & ((width - xs) * CORNER_RISE <= depth)
    return left | right


def _frame(data, width, height):
    """Return *data* as a (height, width) uint16 array."""
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    if isinstance(data, np.ndarray):
        array = np.asarray(data, dtype=np.uint16)
    else:
        array = np.frombuffer(bytes(data), dtype="<u2").astype(np.uint16)
    if array.size != width * height:
        raise ValueError(
            f"frame holds {array.size} samples, expected {width * height}"
        )
    return array.reshape(height, width)


def _frame_like(data):
    """Return *data* as a 2-D frame, taking sensor size for flat buffers."""
    if isinstance(data, np.ndarray) and data.ndim == 2:
        return np.asarray(data, dtype=np.uint16)
    return _frame(data, SENSOR_WIDTH, SENSOR_HEIGHT)


def _lower_band(height):
    """Boolean column vector selecting rows strictly below the corner tops."""
    return (np.arange(height) > height - CORNER_RISE)[:, None]


def _finish(pixels, height):
    return pixels[: max(height - TRIMMED_ROWS, 0)]


def flat_field_correct(raw, dark, light):
    """Correct a frame against dark and light calibration frames.

    Every valid pixel is mapped linearly so that its own dark and light
    responses land on the frame-wide averages; results are clipped to the
    12-bit range. Masked corners and the bottom edge rows become 0.
    """
    raw_frame = _frame_like(raw)
    height, width = raw_frame.shape
    dark_frame = _frame(dark, width, height).astype(np.float64)
    light_frame = _frame(light, width, height).astype(np.float64)

    valid = ~corner_mask(width, height, LARGE_CORNER_LEG)
    valid &= (np.arange(height) < height - EDGE_ROWS)[:, None]
    count = int(valid.sum())
    if count == 0:
        raise ValueError("frame has no valid pixels")

    average_dark = dark_frame[valid].sum() / count
    average_light = light_frame[valid].sum() / count

    with np.errstate(divide="ignore", invalid="ignore"):
        gain = (average_light - average_dark) / (light_frame - dark_frame)
        corrected = gain * (raw_frame.astype(np.float64) - dark_frame) + average_dark
    corrected = np.nan_to_num(corrected, nan=0.0, posinf=MAX_CT_VALUE, neginf=0.0)
    corrected = np.clip(corrected, 0, MAX_CT_VALUE)
    return np.where(valid, corrected, 0).astype(np.uint16)


def invert_unscaled(raw, width, height):
    """Render a frame by scaling 12-bit samples to 16 bits and inverting."""
    frame = _frame(raw, width, height)
    scaled = (frame.astype(np.uint32) * 16) & 0xFFFF
    result = (WHITE - scaled).astype(np.uint16)
    blank = corner_mask(width, height, SMALL_CORNER_LEG) & _lower_band(height)
    result[blank] = WHITE
    return _finish(result, height)


def stretch_minmax(raw, width, height):
    """Render a frame stretched between its smallest and largest sample."""
    frame = _frame(raw, width, height)
    mask = corner_mask(width, height, SMALL_CORNER_LEG)
    samples = frame[~mask]
    if samples.size == 0:
        raise ValueError("frame has no valid pixels")
    low = int(samples.min())
    high = int(samples.max())
    spread = float(high - low)
    if spread == 0:
        raise ValueError("frame has no contrast to stretch")

    stretched = (frame.astype(np.float64) - low) / spread * float(WHITE)
    stretched = np.clip(stretched, 0, WHITE).astype(np.uint16)
    result = (WHITE - stretched.astype(np.int64)).astype(np.uint16)
    result[mask & _lower_band(height)] = WHITE
    return _finish(result, height)


def _percentile_bounds(samples):
    """Return the 12-bit window that cuts the thinnest tails off *samples*."""
    counts = np.bincount(
        np.minimum(samples, MAX_CT_VALUE), minlength=MAX_CT_VALUE + 1
    )
    total = float(counts.sum())
    from_low = np.cumsum(counts) / total
    from_high = np.cumsum(counts[::-1]) / total
    low_index = int(np.argmax(from_low > TAIL_FRACTION))
    high_index = MAX_CT_VALUE - int(np.argmax(from_high > TAIL_FRACTION))
    return max(low_index - 1, 0), min(high_index + 1, MAX_CT_VALUE)


def stretch_percentile(raw, width, height):
    """Render a frame stretched between its 0.05 % and 99.95 % points."""
    frame = _frame(raw, width, height)
    mask = corner_mask(width, height, LARGE_CORNER_LEG)
    counted = ~mask & (np.arange(height) < height - EDGE_ROWS)[:, None]
    samples = frame[counted]
    if samples.size == 0:
        raise ValueError("frame has no valid pixels")
    low, high = _percentile_bounds(samples)
    spread = float(high - low)
    if spread == 0:
        raise ValueError("frame has no contrast to stretch")

    stretched = (frame.astype(np.float64) - low) / spread * float(WHITE)
    stretched = np.clip(stretched, 0.0, float(WHITE))
    result = (float(WHITE) - stretched).astype(np.uint16)
    result[mask] = WHITE
    return _finish(result, height)