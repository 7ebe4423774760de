"""Augment Icon Matching.

Crops the augment icons from the panel on the left of a TFT screenshot and
names them by comparing against a reference set of icons the user has named
before. Icons that match nothing come back unnamed, so the review step can ask
a human for the name and feed it back through ``learn``.

Two similarity tests are available:
- 'dhash' (default): 64-bit difference hash compared by Hamming distance.
  Tolerates the few-pixel shifts and compression noise between screenshots.
- 'prefix': the fingerprint is the base64 PNG of the crop and two icons match
  when the strings have equal length and share a leading prefix. Cheap but
  brittle; kept for reference sets built that way.

Typical usage example:

    from icon_matcher import IconMatcher, ReferenceIconSet

    icons = ReferenceIconSet({'Featherweights': 'c3e1f0f8787c3e1f'})
    matcher = IconMatcher(icons, slot_count=3)

    for match in matcher.extract_icons(screenshot):
        print(match.slot, match.display_name)
"""

import base64
import logging
import re
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import cv2
import numpy as np

from ..config import DEFAULT_MATCH_MAX_DISTANCE, DEFAULT_SLOT_COUNT, MATCH_METHODS
from ..errors import ImageDecodeError
from ..models import IconMatch, ScreenshotRef
from ..utils.image_loader import crop_centered_square, resize_square

logger = logging.getLogger(__name__)

# Centers of the augment slots in the left panel, as fractions of the frame
SLOT_POSITIONS = [
    (0.05, 0.30),
    (0.05, 0.38),
    (0.05, 0.46),
    (0.05, 0.54),
    (0.05, 0.62),
]

ICON_SIZE_FRACTION = 0.03
CANONICAL_ICON_SIZE = 64
DEFAULT_PREFIX_LENGTH = 100

_HEX_PATTERN = re.compile(r'^[0-9a-f]+$')


class ReferenceIconSet:
    """Learned mapping from augment name to icon fingerprint.

    Entries are only added or overwritten, never removed one by one; ``clear``
    is the bulk reset. ``version`` increases with every change so a caller can
    tell whether a snapshot taken before a run is stale.
    """

    def __init__(self, icons: Optional[Dict[str, str]] = None, version: int = 0):
        self._icons: Dict[str, str] = dict(icons or {})
        self.version = version

    def learn(self, name: str, fingerprint: str) -> None:
        """Add or overwrite the fingerprint stored under ``name``."""
        self._icons[name] = fingerprint
        self.version += 1

    def get(self, name: str) -> Optional[str]:
        return self._icons.get(name)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._icons.items()))

    def names(self) -> List[str]:
        return list(self._icons)

    def snapshot(self) -> 'ReferenceIconSet':
        """Independent copy with the same version."""
        return ReferenceIconSet(self._icons, self.version)

    def merge(self, other: 'ReferenceIconSet') -> int:
        """Apply every entry of ``other``, last writer wins per name. Returns entries applied."""
        applied = 0
        for name, fingerprint in other.items():
            self.learn(name, fingerprint)
            applied += 1
        return applied

    def clear(self) -> None:
        self._icons.clear()
        self.version += 1

    def to_dict(self) -> Dict[str, str]:
        return dict(self._icons)

    def __len__(self) -> int:
        return len(self._icons)

    def __contains__(self, name: object) -> bool:
        return name in self._icons

    def __repr__(self) -> str:
        return f"ReferenceIconSet({len(self._icons)} icons, version={self.version})"


def encode_thumbnail(icon: np.ndarray) -> str:
    """Base64-encoded PNG of an icon crop."""
    success, buffer = cv2.imencode('.png', icon)
    if not success:
        raise ImageDecodeError("Could not encode icon crop as PNG")
    return base64.b64encode(buffer.tobytes()).decode('ascii')


def difference_hash(icon: np.ndarray, hash_size: int = 8) -> str:
    """
    Compute a difference hash (dHash) of an icon.

    The icon is reduced to a (hash_size + 1) x hash_size grayscale grid and
    each bit records whether a cell is brighter than its left neighbour.

    Args:
        icon: Icon crop in BGR or grayscale
        hash_size: Grid size; 8 gives a 64-bit hash

    Returns:
        Hash as a lowercase hex string (16 chars for hash_size=8)
    """
    gray = cv2.cvtColor(icon, cv2.COLOR_BGR2GRAY) if icon.ndim == 3 else icon
    small = cv2.resize(gray, (hash_size + 1, hash_size), interpolation=cv2.INTER_AREA)
    diff = small[:, 1:] > small[:, :-1]
    return np.packbits(diff.flatten()).tobytes().hex()


def hamming_distance(fp1: str, fp2: str) -> int:
    """Number of differing bits between two equal-length hex fingerprints."""
    if len(fp1) != len(fp2):
        raise ValueError(f"Fingerprint lengths differ: {len(fp1)} != {len(fp2)}")
    return bin(int(fp1, 16) ^ int(fp2, 16)).count('1')


def is_hex_fingerprint(fingerprint: str) -> bool:
    return bool(_HEX_PATTERN.match(fingerprint))


def prefix_similar(fp1: str, fp2: str, prefix_length: int = DEFAULT_PREFIX_LENGTH) -> bool:
    """Equal length and equal on the first ``prefix_length`` characters."""
    return len(fp1) == len(fp2) and fp1[:prefix_length] == fp2[:prefix_length]


class IconMatcher:
    """Extracts augment icons from screenshots and matches them to names.

    Attributes:
        reference_icons: Learned name -> fingerprint set used for matching.
        slot_count: Number of panel slots inspected per screenshot (1-5).
        match_method: 'dhash' or 'prefix'.
        max_distance: Largest Hamming distance accepted as a dHash match.
        prefix_length: Characters compared by the 'prefix' test.
        on_learn: Optional callback ``(name, fingerprint)`` used to persist
            newly learned icons.
    """

    def __init__(self,
                 reference_icons: Optional[ReferenceIconSet] = None,
                 slot_count: int = DEFAULT_SLOT_COUNT,
                 match_method: str = 'dhash',
                 max_distance: int = DEFAULT_MATCH_MAX_DISTANCE,
                 prefix_length: int = DEFAULT_PREFIX_LENGTH,
                 on_learn: Optional[Callable[[str, str], None]] = None):
        if not 1 <= slot_count <= len(SLOT_POSITIONS):
            raise ValueError(f"slot_count must be between 1 and {len(SLOT_POSITIONS)}, got {slot_count}")
        if match_method not in MATCH_METHODS:
            raise ValueError(f"Unknown match method '{match_method}', expected one of {', '.join(MATCH_METHODS)}")

        self.reference_icons = reference_icons if reference_icons is not None else ReferenceIconSet()
        self.slot_count = slot_count
        self.match_method = match_method
        self.max_distance = max_distance
        self.prefix_length = prefix_length
        self.on_learn = on_learn

    def crop_icon(self, frame: np.ndarray, slot: int) -> np.ndarray:
        """Cut one slot and resample it to the 64x64 canonical size."""
        center_x, center_y = SLOT_POSITIONS[slot]
        region = crop_centered_square(frame, center_x, center_y, ICON_SIZE_FRACTION)
        return resize_square(region, CANONICAL_ICON_SIZE)

    def fingerprint(self, icon: np.ndarray) -> str:
        if self.match_method == 'prefix':
            return encode_thumbnail(icon)
        return difference_hash(icon)

    def is_similar(self, fp1: str, fp2: str) -> bool:
        if self.match_method == 'prefix':
            return prefix_similar(fp1, fp2, self.prefix_length)
        if len(fp1) != len(fp2) or not (is_hex_fingerprint(fp1) and is_hex_fingerprint(fp2)):
            return False
        return hamming_distance(fp1, fp2) <= self.max_distance

    def match(self, fingerprint: str) -> Optional[str]:
        """
        Find the reference name for a fingerprint.

        Args:
            fingerprint: Fingerprint of a cropped icon

        Returns:
            Matching augment name, or None when nothing is similar enough.
            For 'dhash' the closest entry wins (earliest learned on ties);
            for 'prefix' the first similar entry wins.
        """
        if self.match_method == 'prefix':
            for name, reference in self.reference_icons.items():
                if self.is_similar(fingerprint, reference):
                    return name
            return None

        best_name = None
        best_distance = None
        for name, reference in self.reference_icons.items():
            if not self.is_similar(fingerprint, reference):
                continue
            distance = hamming_distance(fingerprint, reference)
            if best_distance is None or distance < best_distance:
                best_name, best_distance = name, distance
        return best_name

    def extract_icons(self, screenshot: ScreenshotRef, frame: Optional[np.ndarray] = None) -> List[IconMatch]:
        """
        Read every augment slot of a screenshot.

        Args:
            screenshot: Screenshot handle
            frame: Already decoded pixels, to avoid decoding twice

        Returns:
            One IconMatch per slot, in slot order. Unmatched slots have
            ``name=None``.

        Raises:
            ImageDecodeError: If the screenshot cannot be decoded or cropped
        """
        if frame is None:
            frame = screenshot.load_image()

        icons = []
        for slot in range(self.slot_count):
            icon = self.crop_icon(frame, slot)
            fingerprint = self.fingerprint(icon)
            name = self.match(fingerprint)
            icons.append(IconMatch(
                slot=slot,
                name=name,
                fingerprint=fingerprint,
                thumbnail=encode_thumbnail(icon)
            ))

        unknown = sum(1 for icon in icons if icon.is_unknown)
        logger.debug(f"{screenshot.name}: {len(icons) - unknown} matched, {unknown} unknown")
        return icons

    def learn(self, name: str, fingerprint: str) -> None:
        """
        Store a human-named icon, overwriting any entry with the same name.

        Args:
            name: Augment name supplied by the reviewer
            fingerprint: Fingerprint of the unknown icon

        Raises:
            ValueError: If name is empty
        """
        name = name.strip()
        if not name:
            raise ValueError("Augment name must not be empty")
        self.reference_icons.learn(name, fingerprint)
        logger.info(f"Learned augment icon '{name}'")
        if self.on_learn is not None:
            self.on_learn(name, fingerprint)
