#!/usr/bin/env python3
"""TFT Augment Stats - Unified CLI Entry Point.

This module provides a unified command-line interface for turning Teamfight
Tactics screenshots into augment statistics. It routes commands to the
appropriate core modules.

Usage:
    python main.py process screenshots/ -o sessions.json
    python main.py save sessions.json
    python main.py stats --type live -o stats.csv
    python main.py export-icons -o augment_db.json
    python main.py import-icons augment_db.json
    python main.py clear --icons

Workflow:
    1. process: split screenshots into games and read augments -> review file
    2. edit the review file: fix placements, name "Unknown Augment" entries
    3. save: record the games and learn the newly named icons
    4. stats: per-augment pick rate, win rate and average placement

For detailed help on each command:
    python main.py process --help
    python main.py save --help
    python main.py stats --help
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional


def get_output_path(input_path: str, suffix: str, explicit_output: Optional[str] = None) -> str:
    """Get output file path with default to output/ directory with timestamp.

    Args:
        input_path: Path to input file or folder.
        suffix: Suffix to append to input name (e.g., '_sessions.json').
        explicit_output: Explicitly specified output path (takes priority).

    Returns:
        Output file path with timestamp (e.g., output/screens_sessions_20250111_143052.json).
    """
    if explicit_output:
        return explicit_output

    # Create output directory if it doesn't exist
    output_dir = Path('output')
    output_dir.mkdir(exist_ok=True)

    # Construct default path with timestamp
    from datetime import datetime
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    input_stem = Path(input_path).stem or 'batch'

    # Insert timestamp before file extension
    # e.g., "_sessions.json" becomes "_sessions_20250111_143052.json"
    suffix_parts = suffix.rsplit('.', 1)
    if len(suffix_parts) == 2:
        suffix_with_timestamp = f"{suffix_parts[0]}_{timestamp}.{suffix_parts[1]}"
    else:
        suffix_with_timestamp = f"{suffix}_{timestamp}"

    return str(output_dir / f"{input_stem}{suffix_with_timestamp}")


def ensure_output_dir(output_path: str) -> None:
    """Ensure output directory exists for the given path.

    Args:
        output_path: Full path to output file.
    """
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)


def check_output_file_exists(output_path: str) -> bool:
    """Check if output file exists and prompt user for action.

    Args:
        output_path: Path to output file.

    Returns:
        True if should proceed with writing.

    Raises:
        SystemExit: If user chooses to quit or use existing file.
    """
    if not Path(output_path).exists():
        return True

    print(f"\n⚠️  Output file already exists: {output_path}")
    print("\nWhat would you like to do?")
    print("  [U] Use existing file (skip processing)")
    print("  [O] Overwrite (continue processing)")
    print("  [Q] Quit (exit without processing)")

    while True:
        choice = input("\nChoice (U/O/Q): ").strip().upper()

        if choice == 'U':
            print(f"\n✓ Using existing file: {output_path}")
            print("Skipping processing.")
            raise SystemExit(0)
        elif choice == 'O':
            print(f"\n⚠️  Will overwrite: {output_path}")
            return True
        elif choice == 'Q':
            print("\n✓ Exiting without processing.")
            raise SystemExit(0)
        else:
            print("Invalid choice. Please enter U, O, or Q.")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the augment stats toolkit.

    Args:
        argv: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        description='TFT Augment Stats - Track augment performance from screenshots',
        epilog='For detailed help: python main.py <command> --help'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        title='Available Commands',
        description='Select a command to run',
        help='Use <command> --help for more information'
    )

    # =========================================================================
    # PROCESS COMMAND
    # =========================================================================
    process_parser = subparsers.add_parser(
        'process',
        help='Split screenshots into games and read augments',
        description='Segment screenshots into games by time gaps, OCR the stage counter '
                    'and match augment icons. Writes a JSON review file.'
    )
    process_parser.add_argument(
        'inputs',
        nargs='+',
        help='Screenshot files and/or folders'
    )
    process_parser.add_argument(
        '-o', '--output',
        help='Review file path (default: output/{input_stem}_sessions_YYYYMMDD_HHMMSS.json)'
    )
    process_parser.add_argument(
        '--gap-minutes',
        type=float,
        help='Largest gap between screenshots of one game in minutes (default: 3, or AUGMENT_GAP_THRESHOLD_MS)'
    )
    process_parser.add_argument(
        '--slots',
        type=int,
        choices=[1, 2, 3, 4, 5],
        help='Augment slots read per screenshot (default: 3, or AUGMENT_SLOT_COUNT)'
    )
    process_parser.add_argument(
        '--ocr',
        choices=['tesseract', 'paddleocr'],
        help='OCR engine for the stage counter (default: tesseract, or AUGMENT_OCR_ENGINE)'
    )
    process_parser.add_argument(
        '--gpu',
        action='store_true',
        help='Use GPU acceleration (for PaddleOCR)'
    )
    process_parser.add_argument(
        '--workers',
        type=int,
        default=1,
        help='Screenshots analysed in parallel (default: 1)'
    )
    process_parser.add_argument(
        '-r', '--recursive',
        action='store_true',
        help='Include screenshots in sub-folders'
    )
    process_parser.add_argument(
        '--data-dir',
        help='Stats data directory (default: data, or AUGMENT_STATS_DATA_DIR)'
    )
    process_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print detailed progress information'
    )

    # =========================================================================
    # SAVE COMMAND
    # =========================================================================
    save_parser = subparsers.add_parser(
        'save',
        help='Record reviewed sessions and learn newly named icons',
        description='Append reviewed sessions to the stats database and learn icons '
                    'that were named during review'
    )
    save_parser.add_argument(
        'review_file',
        help='Review JSON file (output from process, edited by hand)'
    )
    save_parser.add_argument(
        '--data-dir',
        help='Stats data directory (default: data, or AUGMENT_STATS_DATA_DIR)'
    )
    save_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print detailed progress information'
    )

    # =========================================================================
    # STATS COMMAND
    # =========================================================================
    stats_parser = subparsers.add_parser(
        'stats',
        help='Show augment statistics',
        description='Per-augment games, average placement, win rate and pick rate'
    )
    stats_parser.add_argument(
        '-t', '--type',
        choices=['live', 'pbe'],
        default='live',
        help='Game collection (default: live)'
    )
    stats_parser.add_argument(
        '-g', '--group',
        help='Restrict to one period key (e.g. Live_2025-01-07 or PBE_2025-01-08)'
    )
    stats_parser.add_argument(
        '--list-groups',
        action='store_true',
        help='List the period keys of the collection and exit'
    )
    stats_parser.add_argument(
        '--sort',
        choices=['name', 'count', 'avg_place', 'win_rate', 'pick_rate'],
        default='count',
        help='Sort column (default: count)'
    )
    stats_parser.add_argument(
        '-o', '--output',
        help='Export stats to CSV at this path'
    )
    stats_parser.add_argument(
        '--data-dir',
        help='Stats data directory (default: data, or AUGMENT_STATS_DATA_DIR)'
    )
    stats_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print detailed progress information'
    )

    # =========================================================================
    # ICON DATABASE COMMANDS
    # =========================================================================
    export_icons_parser = subparsers.add_parser(
        'export-icons',
        help='Export the learned augment icon database',
        description='Write the learned augment name -> fingerprint database to JSON'
    )
    export_icons_parser.add_argument(
        '-o', '--output',
        help='Output file path (default: output/tft_augment_db_YYYYMMDD_HHMMSS.json)'
    )
    export_icons_parser.add_argument(
        '--data-dir',
        help='Stats data directory (default: data, or AUGMENT_STATS_DATA_DIR)'
    )
    export_icons_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print detailed progress information'
    )

    import_icons_parser = subparsers.add_parser(
        'import-icons',
        help='Merge an exported augment icon database',
        description='Merge an icon database JSON into the learned icons (imported entries win)'
    )
    import_icons_parser.add_argument(
        'icons_file',
        help='Icon database JSON (output from export-icons)'
    )
    import_icons_parser.add_argument(
        '--data-dir',
        help='Stats data directory (default: data, or AUGMENT_STATS_DATA_DIR)'
    )
    import_icons_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print detailed progress information'
    )

    # =========================================================================
    # CLEAR COMMAND
    # =========================================================================
    clear_parser = subparsers.add_parser(
        'clear',
        help='Delete recorded games and/or learned icons',
        description='Delete all recorded games and/or all learned augment icons'
    )
    clear_parser.add_argument(
        '--games',
        action='store_true',
        help='Delete all recorded games (live and PBE)'
    )
    clear_parser.add_argument(
        '--icons',
        action='store_true',
        help='Delete all learned augment icons'
    )
    clear_parser.add_argument(
        '-y', '--yes',
        action='store_true',
        help='Do not ask for confirmation'
    )
    clear_parser.add_argument(
        '--data-dir',
        help='Stats data directory (default: data, or AUGMENT_STATS_DATA_DIR)'
    )
    clear_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print detailed progress information'
    )

    # Parse arguments
    args = parser.parse_args(argv)

    # Show help if no command provided
    if args.command is None:
        parser.print_help()
        return 1

    configure_logging(args.verbose)

    # =========================================================================
    # ROUTE TO APPROPRIATE COMMAND HANDLER
    # =========================================================================

    try:
        if args.command == 'process':
            return cmd_process(args)
        elif args.command == 'save':
            return cmd_save(args)
        elif args.command == 'stats':
            return cmd_stats(args)
        elif args.command == 'export-icons':
            return cmd_export_icons(args)
        elif args.command == 'import-icons':
            return cmd_import_icons(args)
        elif args.command == 'clear':
            return cmd_clear(args)
        else:
            print(f"Error: Unknown command '{args.command}'")
            return 1

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user")
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def cmd_process(args: argparse.Namespace) -> int:
    """Execute screenshot processing command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success).
    """
    from datetime import datetime
    from src.augment_stats.pipeline import build_pipeline, summarize_results
    from src.augment_stats.review import write_review_file
    from src.augment_stats.storage import open_store
    from src.augment_stats.utils import collect_screenshots

    if args.workers < 1:
        print("Error: --workers must be at least 1")
        return 1

    # Determine output path
    output_path = get_output_path(args.inputs[0], '_sessions.json', args.output)
    ensure_output_dir(output_path)

    # Check if output file already exists
    check_output_file_exists(output_path)

    try:
        screenshots = collect_screenshots(args.inputs, recursive=args.recursive)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1

    if not screenshots:
        print("Error: No screenshots found in the given inputs")
        return 1

    store = open_store(args.data_dir)
    reference_icons = store.load_icons()
    gap_threshold_ms = int(args.gap_minutes * 60 * 1000) if args.gap_minutes is not None else None

    pipeline = build_pipeline(
        reference_icons=reference_icons,
        gap_threshold_ms=gap_threshold_ms,
        slot_count=args.slots,
        ocr_engine=args.ocr,
        max_workers=args.workers,
        use_gpu=args.gpu
    )

    print("="*70)
    print("TFT SCREENSHOT PROCESSING")
    print("="*70)
    print(f"Screenshots: {len(screenshots)}")
    print(f"Output: {output_path}")
    print(f"Gap threshold: {pipeline.segmenter.gap_threshold_ms / 1000:.0f}s")
    print(f"Augment slots: {pipeline.icon_matcher.slot_count}")
    print(f"Known augment icons: {len(reference_icons)}")
    print("="*70 + "\n")

    def on_progress(progress):
        if args.verbose:
            print(f"  [{progress.current}/{progress.total}] {progress.stage_label} • {progress.file_name}")
        else:
            print(f"  {progress.percent:5.1f}% ({progress.current}/{progress.total} files) • "
                  f"{progress.stage_label}", end='\r')

    sessions = pipeline.process_files(screenshots, on_progress=on_progress)
    print()

    outcome_counts = summarize_results(sessions)

    write_review_file(sessions, output_path, metadata={
        'timestamp': datetime.now().isoformat(),
        'inputs': args.inputs,
        'processing_params': {
            'gap_threshold_ms': pipeline.segmenter.gap_threshold_ms,
            'slot_count': pipeline.icon_matcher.slot_count,
            'match_method': pipeline.icon_matcher.match_method,
            'icon_db_version': reference_icons.version
        },
        'summary': {
            'total_screenshots': len(screenshots),
            'total_games': len(sessions),
            'screenshot_outcomes': outcome_counts
        }
    })

    print(f"\n✓ Found {len(sessions)} games")
    for i, session in enumerate(sessions, 1):
        started = datetime.fromtimestamp(session.start_time_ms / 1000).strftime('%Y-%m-%d %H:%M')
        augments = ', '.join(session.augments) if session.augments else 'none detected'
        print(f"  Game {i} ({session.session_class.value.upper()}, {session.group}): "
              f"{started}, {len(session.screenshots)} screenshots, augments: {augments}")

    failed = outcome_counts['decode_error'] + outcome_counts['recognition_failed']
    if failed:
        print(f"\n⚠️  {failed} screenshots could not be read "
              f"({outcome_counts['decode_error']} decode errors, "
              f"{outcome_counts['recognition_failed']} OCR failures)")

    print(f"\n✓ Review file saved to: {output_path}")
    print("  Fix placements and name unknown augments, then run:")
    print(f"  python main.py save {output_path}")

    return 0


def cmd_save(args: argparse.Namespace) -> int:
    """Execute save command: record reviewed sessions and learn named icons.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success).
    """
    import json
    from src.augment_stats.augment_extraction import IconMatcher
    from src.augment_stats.review import learn_named_icons, read_review_file
    from src.augment_stats.storage import open_store

    try:
        sessions = read_review_file(args.review_file)
    except FileNotFoundError:
        print(f"Error: Review file not found: {args.review_file}")
        print("Run 'process' command first to generate a review file")
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in review file: {e}")
        return 1
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    store = open_store(args.data_dir)

    # Learn on a snapshot, then write the icon database once
    icons = store.load_icons().snapshot()
    matcher = IconMatcher(icons)
    learned = learn_named_icons(sessions, matcher)
    if learned:
        store.save_icons(icons)

    saved = store.add_games([s.to_record() for s in sessions])

    print(f"✓ Recorded {saved} games")
    already_saved = len(sessions) - saved
    if already_saved:
        print(f"⚠️  {already_saved} games were already recorded and have been updated, not added again")
    if learned:
        print(f"✓ Learned {learned} new augment icons")

    unknown = sum(len(s.unknown_indices) for s in sessions)
    if unknown:
        print(f"⚠️  {unknown} augments were saved as 'Unknown Augment'")

    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Execute stats command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success).
    """
    from src.augment_stats.statistics import StatsAggregator
    from src.augment_stats.storage import open_store

    store = open_store(args.data_dir)
    games = store.get_games(args.type)

    if args.list_groups:
        groups = store.get_groups(args.type)
        if not groups:
            print(f"No {args.type} games recorded")
        for group in groups:
            count = sum(1 for g in games if g.group == group)
            print(f"  {group}: {count} games")
        return 0

    aggregator = StatsAggregator()
    games = aggregator.filter_by_group(games, args.group)
    summary = aggregator.summarize(games)

    scope = f"{args.type.upper()}" + (f" / {args.group}" if args.group else "")
    print("="*70)
    print(f"AUGMENT STATS ({scope})")
    print("="*70)
    print(f"Total games: {summary.total_games}")
    print(f"Avg placement: {summary.avg_placement:.2f}")
    print(f"Win rate: {summary.win_rate * 100:.1f}%")
    print("="*70)

    if not summary.stats:
        print("No data available")
        return 0

    df = aggregator.to_dataframe(summary.stats, sort_by=args.sort)
    print(f"{'Augment':35s} {'Games':>6s} {'Avg':>6s} {'Win':>7s} {'Pick':>7s}")
    for row in df.itertuples(index=False):
        print(f"{row.name[:35]:35s} {row.count:6d} {row.avg_place:6.2f} "
              f"{row.win_rate * 100:6.1f}% {row.pick_rate * 100:6.1f}%")

    if args.output:
        ensure_output_dir(args.output)
        ordered = [summary.stats[i] for i in _stat_order(summary.stats, df)]
        aggregator.export_csv(ordered, args.output)
        print(f"\n✓ Stats exported to: {args.output}")

    return 0


def _stat_order(stats, df) -> List[int]:
    """Indices of ``stats`` in the row order of ``df``."""
    position = {s.name: i for i, s in enumerate(stats)}
    return [position[name] for name in df['name']]


def cmd_export_icons(args: argparse.Namespace) -> int:
    """Execute icon database export command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success).
    """
    from src.augment_stats.storage import open_store

    output_path = get_output_path('tft_augment_db', '.json', args.output)
    ensure_output_dir(output_path)

    store = open_store(args.data_dir)
    count = store.export_icons(output_path)

    print(f"✓ Exported {count} augment icons to: {output_path}")
    return 0


def cmd_import_icons(args: argparse.Namespace) -> int:
    """Execute icon database import command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success).
    """
    import json
    from src.augment_stats.storage import open_store

    store = open_store(args.data_dir)
    try:
        count = store.import_icons(args.icons_file)
    except FileNotFoundError:
        print(f"Error: Icon database not found: {args.icons_file}")
        return 1
    except (json.JSONDecodeError, ValueError) as e:
        print(f"Error: Invalid icon database: {e}")
        return 1

    print(f"✓ Successfully imported {count} augments")
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    """Execute clear command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success).
    """
    from src.augment_stats.storage import open_store

    if not args.games and not args.icons:
        print("Error: Nothing to clear. Pass --games and/or --icons")
        return 1

    targets = ' and '.join(t for t, flag in (('ALL recorded games', args.games),
                                             ('ALL learned augment icons', args.icons)) if flag)
    if not args.yes:
        choice = input(f"Are you sure? This will delete {targets}. (y/N): ").strip().lower()
        if choice != 'y':
            print("✓ Nothing deleted.")
            return 0

    store = open_store(args.data_dir)
    if args.games:
        store.clear_games()
    if args.icons:
        store.clear_icons()

    print(f"✓ Deleted {targets}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
