"""Face landmark and rPPG analytics.

Geometry, blink/PERCLOS tracking, heart rate, respiration and HRV from a
per-frame landmark set and color-intensity sample.
"""

__all__ = [
    "landmarks",
    "geometry",
    "transform",
    "smoothing",
    "preprocess",
    "bpm",
    "respiration",
    "hrv",
    "quality",
    "ppg",
    "insights",
    "adiposity",
    "roi",
    "stabilize",
    "session",
    "service",
]

__version__ = "0.1.0"
