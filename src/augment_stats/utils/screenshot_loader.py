"""
Screenshot Discovery Utility
Builds screenshot handles from files and folders, timestamped by file modification time.
"""

import os
from pathlib import Path
from typing import Iterable, List

from ..models import ScreenshotRef

IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.bmp', '.webp'}


def screenshot_from_path(path: str) -> ScreenshotRef:
    """
    Create a screenshot handle for one image file.

    Args:
        path: Path to image file

    Returns:
        ScreenshotRef named after the file, timestamped with its mtime in ms

    Raises:
        FileNotFoundError: If the file does not exist
    """
    file_path = Path(path)
    stat = os.stat(file_path)
    return ScreenshotRef(
        name=file_path.name,
        timestamp_ms=int(stat.st_mtime * 1000),
        path=str(file_path)
    )


def collect_screenshots(paths: Iterable[str], recursive: bool = False) -> List[ScreenshotRef]:
    """
    Expand files and folders into screenshot handles.

    Folders contribute every image file they contain (non-image files are
    ignored); explicitly listed files are always included.

    Args:
        paths: Image files and/or folders
        recursive: Descend into sub-folders

    Returns:
        Screenshot handles in discovery order (not sorted by time)

    Raises:
        FileNotFoundError: If a listed path does not exist
    """
    screenshots = []
    for raw in paths:
        path = Path(raw)
        if not path.exists():
            raise FileNotFoundError(f"No such file or folder: {raw}")
        if path.is_dir():
            pattern = '**/*' if recursive else '*'
            for child in sorted(path.glob(pattern)):
                if child.is_file() and child.suffix.lower() in IMAGE_EXTENSIONS:
                    screenshots.append(screenshot_from_path(str(child)))
        else:
            screenshots.append(screenshot_from_path(str(path)))
    return screenshots
