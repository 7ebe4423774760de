"""Augment Statistics Aggregation.

Folds recorded games into per-augment statistics. Stats are always recomputed
from the full collection in scope; nothing is cached between requests.

Per augment:
- count: games (occurrences) the augment appears in. An augment listed twice
  in one game counts twice.
- avg_place: mean placement of those games
- win_rate: share of those games finished in 1st place
- pick_rate: count divided by all games in scope

Every ratio is 0 when its denominator is 0.

Typical usage example:

    from aggregator import StatsAggregator

    aggregator = StatsAggregator()
    summary = aggregator.summarize(store.get_games('live'))
    df = aggregator.to_dataframe(summary.stats)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pandas as pd

from ..models import AugmentStat

CSV_COLUMNS = ['Augment', 'Games', 'Avg Placement', 'Win Rate', 'Pick Rate']


@dataclass
class StatsSummary:
    """Scalar summaries plus per-augment stats for one scope."""
    total_games: int
    avg_placement: float
    win_rate: float
    stats: List[AugmentStat] = field(default_factory=list)


class StatsAggregator:
    """Computes augment statistics from games.

    Works on any objects exposing ``placement`` and ``augments``: pending
    Session objects as well as persisted GameRecord objects.
    """

    def aggregate(self, games: Sequence) -> List[AugmentStat]:
        """
        Compute per-augment statistics.

        Args:
            games: Games in scope

        Returns:
            One AugmentStat per augment name, in order of first appearance.
            Empty input gives an empty list.
        """
        total_games = len(games)
        stats: Dict[str, AugmentStat] = {}

        for game in games:
            for augment in game.augments:
                stat = stats.get(augment)
                if stat is None:
                    stat = stats[augment] = AugmentStat(name=augment, total_games=total_games)
                stat.count += 1
                stat.total_placement += game.placement
                if game.placement == 1:
                    stat.wins += 1

        return list(stats.values())

    def total_games(self, games: Sequence) -> int:
        return len(games)

    def overall_avg_placement(self, games: Sequence) -> float:
        if not games:
            return 0.0
        return sum(g.placement for g in games) / len(games)

    def overall_win_rate(self, games: Sequence) -> float:
        if not games:
            return 0.0
        return sum(1 for g in games if g.placement == 1) / len(games)

    def summarize(self, games: Sequence) -> StatsSummary:
        return StatsSummary(
            total_games=self.total_games(games),
            avg_placement=self.overall_avg_placement(games),
            win_rate=self.overall_win_rate(games),
            stats=self.aggregate(games)
        )

    @staticmethod
    def filter_by_group(games: Sequence, group: Optional[str]) -> List:
        """Restrict games to one period key. None keeps everything."""
        if group is None:
            return list(games)
        return [g for g in games if g.group == group]

    @staticmethod
    def to_dataframe(stats: Sequence[AugmentStat], sort_by: Optional[str] = None) -> pd.DataFrame:
        """
        Convert stats to a DataFrame.

        Args:
            stats: Output of ``aggregate``
            sort_by: Optional column to sort on (e.g. 'count', 'avg_place');
                'avg_place' sorts ascending, everything else descending

        Returns:
            DataFrame with columns name, count, total_placement, wins,
            avg_place, win_rate, pick_rate
        """
        columns = ['name', 'count', 'total_placement', 'wins', 'avg_place', 'win_rate', 'pick_rate']
        df = pd.DataFrame([s.to_dict() for s in stats], columns=columns)
        if sort_by:
            if sort_by not in columns:
                raise ValueError(f"Unknown sort column '{sort_by}', expected one of {', '.join(columns)}")
            df = df.sort_values(sort_by, ascending=(sort_by in ('name', 'avg_place')), kind='stable')
            df = df.reset_index(drop=True)
        return df

    @staticmethod
    def to_export_frame(stats: Sequence[AugmentStat]) -> pd.DataFrame:
        """Stats formatted for CSV export (2-decimal placement, 1-decimal percentages)."""
        rows = [
            [
                s.name,
                s.count,
                f"{s.avg_place:.2f}",
                f"{s.win_rate * 100:.1f}%",
                f"{s.pick_rate * 100:.1f}%"
            ]
            for s in stats
        ]
        return pd.DataFrame(rows, columns=CSV_COLUMNS)

    def export_csv(self, stats: Sequence[AugmentStat], output_file: str) -> str:
        """
        Write stats to CSV.

        Args:
            stats: Output of ``aggregate``
            output_file: Destination .csv path

        Returns:
            The path written

        Raises:
            ValueError: If there are no stats to export
        """
        if not stats:
            raise ValueError("No data to export.")
        self.to_export_frame(stats).to_csv(output_file, index=False)
        return output_file
