"""
Data Model
Screenshots, game sessions, persisted game records and derived statistics.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import numpy as np

DEFAULT_PLACEMENT = 4
MIN_PLACEMENT = 1
MAX_PLACEMENT = 8
UNKNOWN_AUGMENT = 'Unknown Augment'


class SessionClass(str, Enum):
    """Which game client produced a session."""
    LIVE = 'live'
    PBE = 'pbe'

    @classmethod
    def from_filename(cls, name: str) -> 'SessionClass':
        """PBE when the screenshot name mentions 'pbe' (any case), otherwise live."""
        return cls.PBE if 'pbe' in name.lower() else cls.LIVE


class ScreenshotStatus(str, Enum):
    """Outcome of analysing one screenshot."""
    SKIPPED = 'skipped'
    EXTRACTED = 'extracted'
    RECOGNITION_FAILED = 'recognition_failed'
    DECODE_ERROR = 'decode_error'


@dataclass(frozen=True)
class ScreenshotRef:
    """Handle to one captured frame.

    Pixels are resolved lazily: ``source`` is called if given, otherwise
    ``path`` is decoded from disk.
    """
    name: str
    timestamp_ms: int
    path: Optional[str] = None
    source: Optional[Callable[[], np.ndarray]] = field(default=None, compare=False, repr=False)

    def load_image(self) -> np.ndarray:
        from .errors import ImageDecodeError
        from .utils.image_loader import decode_image, ensure_bgr

        if self.source is not None:
            return ensure_bgr(self.source())
        if self.path:
            return decode_image(self.path)
        raise ImageDecodeError(f"Screenshot {self.name} has no pixel source")


@dataclass
class ScreenshotResult:
    """Per-screenshot outcome recorded on a session."""
    name: str
    status: ScreenshotStatus
    stage: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'status': self.status.value,
            'stage': self.stage,
            'error': self.error,
        }


@dataclass
class IconMatch:
    """One augment slot read from a screenshot."""
    slot: int
    name: Optional[str]
    fingerprint: str
    thumbnail: Optional[str] = None  # base64 PNG of the canonical crop

    @property
    def is_unknown(self) -> bool:
        return self.name is None

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_AUGMENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            'slot': self.slot,
            'name': self.name,
            'fingerprint': self.fingerprint,
            'thumbnail': self.thumbnail,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IconMatch':
        return cls(
            slot=int(data['slot']),
            name=data.get('name'),
            fingerprint=data['fingerprint'],
            thumbnail=data.get('thumbnail'),
        )


def validate_placement(value: Any) -> int:
    """
    Validate a placement value.

    Args:
        value: Placement as int or numeric string

    Returns:
        Placement as int in [1, 8]

    Raises:
        ValueError: If the value is not an integer between 1 and 8
    """
    try:
        placement = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Placement must be an integer, got {value!r}")
    if isinstance(value, float) and value != placement:
        raise ValueError(f"Placement must be an integer, got {value!r}")
    if not MIN_PLACEMENT <= placement <= MAX_PLACEMENT:
        raise ValueError(f"Placement must be between {MIN_PLACEMENT} and {MAX_PLACEMENT}, got {placement}")
    return placement


@dataclass
class GameRecord:
    """A reviewed game as persisted in the stats store."""
    id: str
    date: int
    placement: int
    augments: List[str]
    group: str
    session_class: SessionClass = SessionClass.LIVE

    def __post_init__(self):
        self.placement = validate_placement(self.placement)
        self.session_class = SessionClass(self.session_class)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': self.date,
            'placement': self.placement,
            'augments': list(self.augments),
            'group': self.group,
            'type': self.session_class.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], session_class: Optional[SessionClass] = None,
                  index: int = 0) -> 'GameRecord':
        """Build a record from its stored dict.

        Records stored without an id get one derived from their date and
        position in the collection, so it is the same on every load.
        """
        return cls(
            id=data.get('id') or f"game_{int(data['date'])}_{index}",
            date=int(data['date']),
            placement=data.get('placement', DEFAULT_PLACEMENT),
            augments=list(data.get('augments', [])),
            group=data['group'],
            session_class=session_class or SessionClass(data.get('type', SessionClass.LIVE.value)),
        )


@dataclass
class Session:
    """One reconstructed game built by the pipeline and corrected by a human."""
    session_class: SessionClass
    start_time_ms: int
    screenshots: List[ScreenshotRef]
    group: str
    placement: int = DEFAULT_PLACEMENT
    augments: List[str] = field(default_factory=list)
    augment_icons: List[IconMatch] = field(default_factory=list)
    results: List[ScreenshotResult] = field(default_factory=list)
    id: str = field(default_factory=lambda: f"game_{uuid.uuid4().hex}")

    def __post_init__(self):
        if not self.screenshots:
            raise ValueError("A session needs at least one screenshot")
        self.session_class = SessionClass(self.session_class)
        self.placement = validate_placement(self.placement)

    def set_placement(self, value: Any) -> None:
        self.placement = validate_placement(value)

    def set_augments(self, icons: List[IconMatch]) -> None:
        """Replace the augment list wholesale with a new extraction."""
        self.augment_icons = list(icons)
        self.augments = [icon.display_name for icon in icons]

    def name_augment(self, index: int, name: str) -> None:
        """Give a human-supplied name to the augment at ``index``."""
        name = name.strip()
        if not name:
            raise ValueError("Augment name must not be empty")
        if not 0 <= index < len(self.augments):
            raise IndexError(f"Augment index {index} out of range for {len(self.augments)} augments")
        self.augments[index] = name

    @property
    def unknown_indices(self) -> List[int]:
        return [i for i, name in enumerate(self.augments) if name == UNKNOWN_AUGMENT]

    def to_record(self) -> GameRecord:
        return GameRecord(
            id=self.id,
            date=self.start_time_ms,
            placement=self.placement,
            augments=list(self.augments),
            group=self.group,
            session_class=self.session_class,
        )

    def to_review_dict(self) -> Dict[str, Any]:
        """Serialize for the JSON review file written by the CLI."""
        return {
            'id': self.id,
            'type': self.session_class.value,
            'start_time': self.start_time_ms,
            'group': self.group,
            'placement': self.placement,
            'augments': list(self.augments),
            'augment_icons': [icon.to_dict() for icon in self.augment_icons],
            'screenshots': [
                {'name': s.name, 'timestamp': s.timestamp_ms, 'path': s.path}
                for s in self.screenshots
            ],
            'results': [r.to_dict() for r in self.results],
        }

    @classmethod
    def from_review_dict(cls, data: Dict[str, Any]) -> 'Session':
        screenshots = [
            ScreenshotRef(name=s['name'], timestamp_ms=int(s['timestamp']), path=s.get('path'))
            for s in data.get('screenshots', [])
        ]
        results = [
            ScreenshotResult(
                name=r['name'],
                status=ScreenshotStatus(r['status']),
                stage=r.get('stage'),
                error=r.get('error'),
            )
            for r in data.get('results', [])
        ]
        return cls(
            id=data['id'],
            session_class=SessionClass(data['type']),
            start_time_ms=int(data['start_time']),
            screenshots=screenshots,
            group=data['group'],
            placement=data.get('placement', DEFAULT_PLACEMENT),
            augments=list(data.get('augments', [])),
            augment_icons=[IconMatch.from_dict(i) for i in data.get('augment_icons', [])],
            results=results,
        )


@dataclass
class AugmentStat:
    """Aggregated performance of one augment. Derived values are 0 on empty denominators."""
    name: str
    count: int = 0
    total_placement: int = 0
    wins: int = 0
    total_games: int = 0

    @property
    def avg_place(self) -> float:
        return self.total_placement / self.count if self.count > 0 else 0.0

    @property
    def win_rate(self) -> float:
        return self.wins / self.count if self.count > 0 else 0.0

    @property
    def pick_rate(self) -> float:
        return self.count / self.total_games if self.total_games > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'count': self.count,
            'total_placement': self.total_placement,
            'wins': self.wins,
            'avg_place': self.avg_place,
            'win_rate': self.win_rate,
            'pick_rate': self.pick_rate,
        }


@dataclass
class ProgressEvent:
    """Emitted once per processed screenshot."""
    current: int
    total: int
    percent: float
    stage_label: str
    file_name: str
