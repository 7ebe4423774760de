"""JSON Stats Store.

Persists reviewed games and the learned augment icon set as two JSON files in
a data directory:

    tft_stats_data.json     {"live": [game, ...], "pbe": [game, ...]}
    tft_augment_icons.json  {"Augment Name": "<fingerprint>", ...}

Every write goes to a temporary file that then replaces the target, so a
failed write raises and leaves the previous file untouched.

Typical usage example:

    from stats_store import StatsStore

    store = StatsStore('data')
    store.add_games([session.to_record() for session in reviewed])
    icons = store.load_icons()
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..augment_extraction.icon_matcher import ReferenceIconSet
from ..models import GameRecord, SessionClass

logger = logging.getLogger(__name__)

GAMES_FILENAME = 'tft_stats_data.json'
ICONS_FILENAME = 'tft_augment_icons.json'


def _write_json_atomic(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix='.tmp', dir=str(path.parent))
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


class StatsStore:
    """File-backed store for recorded games and learned icons.

    Attributes:
        data_dir: Directory holding the JSON files.
    """

    def __init__(self, data_dir: str = 'data'):
        self.data_dir = Path(data_dir)
        self.games_path = self.data_dir / GAMES_FILENAME
        self.icons_path = self.data_dir / ICONS_FILENAME

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    def _load_games_data(self) -> Dict[str, List[Dict]]:
        data = _read_json(self.games_path, {})
        for session_class in SessionClass:
            data.setdefault(session_class.value, [])
        return data

    def get_games(self, kind: Any = SessionClass.LIVE) -> List[GameRecord]:
        """
        Load every recorded game of one collection.

        Args:
            kind: SessionClass or its value ('live' / 'pbe')

        Returns:
            Games in the order they were recorded

        Raises:
            ValueError: If kind is not a known collection
        """
        session_class = SessionClass(kind)
        data = self._load_games_data()
        return [GameRecord.from_dict(g, session_class, index)
                for index, g in enumerate(data[session_class.value])]

    def get_groups(self, kind: Any = SessionClass.LIVE) -> List[str]:
        """Distinct period keys of a collection, oldest first."""
        return sorted({g.group for g in self.get_games(kind)})

    def add_games(self, records: Sequence[GameRecord]) -> int:
        """
        Record games in their collections in a single write.

        A record whose id is already stored replaces the stored game in place,
        so saving the same review file twice does not count its games twice.
        Stored games without an id get their derived id written back.

        Returns:
            Number of games that were not stored before
        """
        data = self._load_games_data()
        positions = {}
        for session_class in SessionClass:
            games = [GameRecord.from_dict(g, session_class, index)
                     for index, g in enumerate(data[session_class.value])]
            data[session_class.value] = [g.to_dict() for g in games]
            positions[session_class] = {g.id: index for index, g in enumerate(games)}

        added = 0
        for record in records:
            collection = data[record.session_class.value]
            known = positions[record.session_class]
            if record.id in known:
                collection[known[record.id]] = record.to_dict()
                continue
            known[record.id] = len(collection)
            collection.append(record.to_dict())
            added += 1

        _write_json_atomic(self.games_path, data)
        logger.info(f"Recorded {added} new games in {self.games_path}, "
                    f"updated {len(records) - added}")
        return added

    def add_game(self, record: GameRecord) -> None:
        self.add_games([record])

    def total_games(self, kind: Any = SessionClass.LIVE) -> int:
        return len(self.get_games(kind))

    def clear_games(self) -> None:
        _write_json_atomic(self.games_path, {c.value: [] for c in SessionClass})

    # ------------------------------------------------------------------
    # Learned icons
    # ------------------------------------------------------------------

    def load_icons(self) -> ReferenceIconSet:
        return ReferenceIconSet(_read_json(self.icons_path, {}))

    def save_icons(self, icons: ReferenceIconSet) -> None:
        _write_json_atomic(self.icons_path, icons.to_dict())

    def learn_icon(self, name: str, fingerprint: str) -> None:
        """Persist one learned icon. Matches the IconMatcher ``on_learn`` signature."""
        icons = self.load_icons()
        icons.learn(name, fingerprint)
        self.save_icons(icons)

    def import_icons(self, import_file: str) -> int:
        """
        Merge an exported icon database into the stored one.

        Imported entries overwrite stored entries with the same name.

        Args:
            import_file: JSON file mapping names to fingerprints

        Returns:
            Number of entries imported

        Raises:
            FileNotFoundError: If import_file does not exist
            ValueError: If the file is not a name -> fingerprint JSON object
        """
        with open(import_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in data.items()):
            raise ValueError("Invalid file format. Expected a JSON object of augment name -> fingerprint.")

        icons = self.load_icons()
        count = icons.merge(ReferenceIconSet(data))
        self.save_icons(icons)
        logger.info(f"Imported {count} augment icons from {import_file}")
        return count

    def export_icons(self, output_file: str) -> int:
        """Write the icon database to ``output_file``. Returns the number of entries."""
        icons = self.load_icons()
        _write_json_atomic(Path(output_file), icons.to_dict())
        return len(icons)

    def clear_icons(self) -> None:
        if self.icons_path.exists():
            self.icons_path.unlink()


def open_store(data_dir: Optional[str] = None) -> StatsStore:
    """Open the store in ``data_dir`` or the configured AUGMENT_STATS_DATA_DIR."""
    from ..config import get_data_dir
    return StatsStore(data_dir or get_data_dir())
