"""
Utility Modules

Supporting utilities for the pipeline:
- Screenshot discovery (files/folders -> timestamped handles)
- Image decode and normalized cropping
"""

from .screenshot_loader import collect_screenshots, screenshot_from_path
from .image_loader import decode_image, ensure_bgr, crop_normalized, crop_centered_square, resize_square

__all__ = [
    'collect_screenshots',
    'screenshot_from_path',
    'decode_image',
    'ensure_bgr',
    'crop_normalized',
    'crop_centered_square',
    'resize_square'
]
