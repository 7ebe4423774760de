"""
Session Review Helpers
Apply the human review step: corrected placements and names for unknown augments.

The CLI writes pending sessions to a JSON review file. The reviewer edits
``placement`` and replaces "Unknown Augment" entries in ``augments`` with real
names; ``save`` then records the games and teaches the icon matcher every
newly named icon.
"""

import json
import logging
from typing import List, Sequence

from .augment_extraction.icon_matcher import IconMatcher
from .models import UNKNOWN_AUGMENT, Session

logger = logging.getLogger(__name__)


def write_review_file(sessions: Sequence[Session], output_file: str, metadata: dict = None) -> None:
    """Write pending sessions to a JSON review file."""
    output_data = dict(metadata or {})
    output_data['sessions'] = [s.to_review_dict() for s in sessions]
    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(output_data, f, indent=2)


def read_review_file(review_file: str) -> List[Session]:
    """
    Load reviewed sessions.

    Raises:
        FileNotFoundError: If the file does not exist
        json.JSONDecodeError: If the file is not valid JSON
        ValueError: If the file has no 'sessions' list or a session is invalid
    """
    with open(review_file, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict) or not isinstance(data.get('sessions'), list):
        raise ValueError("Review file missing 'sessions' field")
    try:
        return [Session.from_review_dict(s) for s in data['sessions']]
    except KeyError as e:
        raise ValueError(f"Review file session missing field {e}")


def learn_named_icons(sessions: Sequence[Session], matcher: IconMatcher) -> int:
    """
    Teach the matcher icons that were unknown at extraction and named in review.

    Args:
        sessions: Reviewed sessions
        matcher: Matcher whose reference set (and ``on_learn`` callback) receive
            the new names

    Returns:
        Number of icons learned
    """
    learned = 0
    for session in sessions:
        for icon in session.augment_icons:
            if not icon.is_unknown or icon.slot >= len(session.augments):
                continue
            name = session.augments[icon.slot].strip()
            if name and name != UNKNOWN_AUGMENT:
                matcher.learn(name, icon.fingerprint)
                icon.name = name
                learned += 1
    if learned:
        logger.info(f"Learned {learned} augment icons from review")
    return learned
