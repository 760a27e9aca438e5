"""Dental X-ray sensor frame processing, picture filtering, editing history, calibration files and preferences."""

__version__ = "0.1.0"