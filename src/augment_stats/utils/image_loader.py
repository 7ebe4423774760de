"""
Image Decode and Crop Utility
Turns screenshot files into pixel arrays and cuts resolution-independent regions.

All coordinates handled here are normalized fractions of the frame size, so the
same region definitions work for 1080p, 1440p and 4K screenshots.
"""

import cv2
import numpy as np
from typing import Tuple

from ..errors import ImageDecodeError


def decode_image(path: str) -> np.ndarray:
    """
    Decode an image file into a BGR numpy array.

    Args:
        path: Path to a PNG/JPEG/BMP screenshot

    Returns:
        Frame as numpy array (H, W, 3) in BGR format

    Raises:
        ImageDecodeError: If the file is missing or cannot be decoded
    """
    try:
        # np.fromfile + imdecode handles non-ASCII paths that cv2.imread rejects
        data = np.fromfile(path, dtype=np.uint8)
    except OSError as e:
        raise ImageDecodeError(f"Could not read image: {path} ({e})")

    frame = cv2.imdecode(data, cv2.IMREAD_COLOR) if data.size else None
    if frame is None:
        raise ImageDecodeError(f"Could not decode image: {path}")
    return frame


def ensure_bgr(frame: np.ndarray) -> np.ndarray:
    """Normalize grayscale or BGRA frames to 3-channel BGR."""
    if frame is None or not isinstance(frame, np.ndarray) or frame.size == 0:
        raise ImageDecodeError("Frame is empty")
    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    if frame.ndim == 3 and frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    if frame.ndim == 3 and frame.shape[2] == 3:
        return frame
    raise ImageDecodeError(f"Unsupported frame shape: {frame.shape}")


def _clip_box(frame: np.ndarray, x0: float, y0: float, x1: float, y1: float) -> Tuple[int, int, int, int]:
    height, width = frame.shape[:2]
    left = max(0, int(round(x0)))
    top = max(0, int(round(y0)))
    right = min(width, int(round(x1)))
    bottom = min(height, int(round(y1)))
    if right <= left or bottom <= top:
        raise ImageDecodeError(
            f"Region ({x0:.1f}, {y0:.1f}, {x1:.1f}, {y1:.1f}) is outside the {width}x{height} frame"
        )
    return left, top, right, bottom


def crop_normalized(frame: np.ndarray, x: float, y: float, width: float, height: float) -> np.ndarray:
    """
    Crop a rectangle given as fractions of the frame size.

    Args:
        frame: Input frame (H, W, C)
        x: Left edge as a fraction of frame width
        y: Top edge as a fraction of frame height
        width: Region width as a fraction of frame width
        height: Region height as a fraction of frame height

    Returns:
        Cropped region, clipped to the frame bounds

    Raises:
        ImageDecodeError: If the clipped region is empty

    Example:
        >>> stage_roi = crop_normalized(frame, 0.425, 0.01, 0.15, 0.05)
    """
    frame_h, frame_w = frame.shape[:2]
    left, top, right, bottom = _clip_box(
        frame,
        x * frame_w,
        y * frame_h,
        (x + width) * frame_w,
        (y + height) * frame_h,
    )
    return frame[top:bottom, left:right]


def crop_centered_square(frame: np.ndarray, center_x: float, center_y: float,
                         size_fraction: float) -> np.ndarray:
    """
    Crop a square centered on a normalized point.

    The side length is ``size_fraction * frame_width`` so icons keep their
    aspect ratio on ultrawide screenshots.

    Args:
        frame: Input frame (H, W, C)
        center_x: Center as a fraction of frame width
        center_y: Center as a fraction of frame height
        size_fraction: Side length as a fraction of frame width

    Returns:
        Square region, clipped to the frame bounds
    """
    frame_h, frame_w = frame.shape[:2]
    size = frame_w * size_fraction
    cx = center_x * frame_w
    cy = center_y * frame_h
    left, top, right, bottom = _clip_box(
        frame, cx - size / 2, cy - size / 2, cx + size / 2, cy + size / 2
    )
    return frame[top:bottom, left:right]


def resize_square(region: np.ndarray, size: int = 64) -> np.ndarray:
    """Resample a region to a fixed ``size`` x ``size`` canvas."""
    return cv2.resize(region, (size, size), interpolation=cv2.INTER_AREA)
