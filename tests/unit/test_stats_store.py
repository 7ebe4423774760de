"""
Unit tests for the JSON stats store.

Tests game collections, learned icons, import/export and clearing.
"""

import json

import pytest
from unittest.mock import patch

from src.augment_stats.augment_extraction import ReferenceIconSet
from src.augment_stats.models import GameRecord, SessionClass
from src.augment_stats.storage import StatsStore, open_store
from src.augment_stats.storage.stats_store import GAMES_FILENAME, ICONS_FILENAME


def record(game_id, session_class=SessionClass.LIVE, group='Live_2025-01-07', placement=4):
    return GameRecord(id=game_id, date=1736366400000, placement=placement,
                      augments=['A'], group=group, session_class=session_class)


@pytest.mark.unit
class TestGames:
    """Test suite for game persistence."""

    def test_empty_store(self, data_dir):
        """Test a fresh store has no games in either collection."""
        store = StatsStore(str(data_dir))

        assert store.get_games('live') == []
        assert store.get_games(SessionClass.PBE) == []
        assert store.total_games() == 0

    def test_add_games_routes_by_class(self, data_dir):
        """Test live and PBE games land in their own collections."""
        store = StatsStore(str(data_dir))

        written = store.add_games([record('g1'), record('g2', SessionClass.PBE, 'PBE_2025-01-08')])

        assert written == 2
        assert [g.id for g in store.get_games('live')] == ['g1']
        assert [g.id for g in store.get_games('pbe')] == ['g2']

    def test_add_games_skips_stored_ids(self, data_dir):
        """Test adding the same games twice does not count them twice."""
        store = StatsStore(str(data_dir))
        store.add_games([record('g1'), record('g2', SessionClass.PBE, 'PBE_2025-01-08')])

        written = store.add_games([record('g1', placement=1), record('g2', SessionClass.PBE, 'PBE_2025-01-08'),
                                   record('g3')])

        assert written == 1
        assert [g.id for g in store.get_games('live')] == ['g1', 'g3']
        assert store.get_games('live')[0].placement == 1
        assert store.total_games('pbe') == 1

    def test_stored_games_without_id(self, data_dir):
        """Test games stored without an id get a stable one that is written back."""
        data_dir.mkdir()
        game = {'date': 1736366400000, 'placement': 2, 'augments': ['A'], 'group': 'Live_2025-01-07'}
        (data_dir / GAMES_FILENAME).write_text(json.dumps({'live': [game, dict(game)], 'pbe': []}))
        store = StatsStore(str(data_dir))

        ids = [g.id for g in store.get_games('live')]
        assert ids == [g.id for g in store.get_games('live')]
        assert len(set(ids)) == 2

        assert store.add_games([store.get_games('live')[1]]) == 0
        data = json.loads((data_dir / GAMES_FILENAME).read_text(encoding='utf-8'))
        assert [g['id'] for g in data['live']] == ids

    def test_file_layout(self, data_dir):
        """Test the games file holds 'live' and 'pbe' lists."""
        store = StatsStore(str(data_dir))
        store.add_game(record('g1', placement=2))

        data = json.loads((data_dir / GAMES_FILENAME).read_text(encoding='utf-8'))

        assert set(data) == {'live', 'pbe'}
        assert data['live'][0]['placement'] == 2
        assert data['pbe'] == []

    def test_appends_across_instances(self, data_dir):
        """Test games persist between store instances."""
        StatsStore(str(data_dir)).add_game(record('g1'))
        StatsStore(str(data_dir)).add_game(record('g2'))

        assert StatsStore(str(data_dir)).total_games('live') == 2

    def test_get_groups(self, data_dir):
        """Test distinct period keys come back sorted."""
        store = StatsStore(str(data_dir))
        store.add_games([record('g1', group='Live_2025-01-21'), record('g2'), record('g3')])

        assert store.get_groups('live') == ['Live_2025-01-07', 'Live_2025-01-21']

    def test_unknown_kind(self, data_dir):
        """Test an unknown collection raises ValueError."""
        with pytest.raises(ValueError):
            StatsStore(str(data_dir)).get_games('ranked')

    def test_clear_games(self, data_dir):
        """Test clearing empties both collections."""
        store = StatsStore(str(data_dir))
        store.add_games([record('g1'), record('g2', SessionClass.PBE)])

        store.clear_games()

        assert store.total_games('live') == 0
        assert store.total_games('pbe') == 0

    def test_failed_write_keeps_previous_file(self, data_dir):
        """Test a failing write leaves the previous games file intact."""
        store = StatsStore(str(data_dir))
        store.add_game(record('g1'))
        before = (data_dir / GAMES_FILENAME).read_text(encoding='utf-8')

        with patch('src.augment_stats.storage.stats_store.json.dump', side_effect=OSError('disk full')):
            with pytest.raises(OSError):
                store.add_game(record('g2'))

        assert (data_dir / GAMES_FILENAME).read_text(encoding='utf-8') == before
        assert [p.name for p in data_dir.iterdir()] == [GAMES_FILENAME]


@pytest.mark.unit
class TestIcons:
    """Test suite for learned icon persistence."""

    def test_load_empty(self, data_dir):
        """Test a missing icons file loads as an empty set."""
        assert len(StatsStore(str(data_dir)).load_icons()) == 0

    def test_learn_icon_persists(self, data_dir):
        """Test learn_icon writes through to disk."""
        StatsStore(str(data_dir)).learn_icon('Featherweights', 'abcd')

        icons = StatsStore(str(data_dir)).load_icons()

        assert icons.get('Featherweights') == 'abcd'

    def test_save_and_load(self, data_dir):
        """Test a saved set loads back with the same entries."""
        store = StatsStore(str(data_dir))

        store.save_icons(ReferenceIconSet({'A': '00', 'B': '11'}))

        assert store.load_icons().to_dict() == {'A': '00', 'B': '11'}

    def test_export_import_merge(self, data_dir, tmp_path):
        """Test importing merges and imported entries win."""
        source = StatsStore(str(tmp_path / "source"))
        source.save_icons(ReferenceIconSet({'A': 'new', 'C': '33'}))
        export_file = tmp_path / "db.json"
        assert source.export_icons(str(export_file)) == 2

        target = StatsStore(str(data_dir))
        target.save_icons(ReferenceIconSet({'A': 'old', 'B': '22'}))
        imported = target.import_icons(str(export_file))

        assert imported == 2
        assert target.load_icons().to_dict() == {'A': 'new', 'B': '22', 'C': '33'}

    def test_import_invalid_format(self, data_dir, tmp_path):
        """Test a JSON list is rejected."""
        bad = tmp_path / "bad.json"
        bad.write_text('["A", "B"]', encoding='utf-8')

        with pytest.raises(ValueError):
            StatsStore(str(data_dir)).import_icons(str(bad))

    def test_import_non_string_fingerprint(self, data_dir, tmp_path):
        """Test non-string fingerprints are rejected."""
        bad = tmp_path / "bad.json"
        bad.write_text('{"A": 42}', encoding='utf-8')

        with pytest.raises(ValueError):
            StatsStore(str(data_dir)).import_icons(str(bad))

    def test_import_missing_file(self, data_dir, tmp_path):
        """Test a missing import file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            StatsStore(str(data_dir)).import_icons(str(tmp_path / "missing.json"))

    def test_clear_icons(self, data_dir):
        """Test clearing deletes the icons file."""
        store = StatsStore(str(data_dir))
        store.learn_icon('A', '00')

        store.clear_icons()

        assert not (data_dir / ICONS_FILENAME).exists()
        assert len(store.load_icons()) == 0
        store.clear_icons()


@pytest.mark.unit
class TestOpenStore:
    """Test suite for open_store."""

    def test_explicit_dir(self, data_dir):
        """Test an explicit directory wins."""
        assert open_store(str(data_dir)).data_dir == data_dir

    @patch.dict('os.environ', {'AUGMENT_STATS_DATA_DIR': 'custom_data'})
    def test_configured_dir(self):
        """Test the configured directory is used by default."""
        assert str(open_store().data_dir) == 'custom_data'
