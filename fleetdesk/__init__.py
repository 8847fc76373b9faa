"""Back office for a small vehicle rental business."""

__version__ = "0.1.0"
