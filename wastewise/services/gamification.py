"""
Points, levels and the leaderboard
Every point-earning action upserts the user's total and appends a transaction
"""

import logging
import re
import threading
import zlib
from bisect import bisect_right
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from wastewise.errors import InvalidActionError
from wastewise.schemas import LeaderboardEntry, PointsAward

logger = logging.getLogger(__name__)

POINTS_SYSTEM = {
    'waste_report': 100,
    'eco_event': 500,
    'verified_implementation': 300,
    'complaint_upvote': 50,
}

LEVEL_THRESHOLDS = [
    0,       # Level 1
    1000,    # Level 2
    2500,    # Level 3
    5000,    # Level 4
    10000,   # Level 5
    20000,   # Level 6
    35000,   # Level 7
    50000,   # Level 8
    75000,   # Level 9
    100000,  # Level 10
]

MAX_LEVEL = len(LEVEL_THRESHOLDS)
LEADERBOARD_SIZE = 10
LOCK_STRIPES = 64


def level_for_points(points: int) -> int:
    """Level for a cumulative point total, 1 through 10"""
    # Number of thresholds already reached; 0 points reaches the first one
    return min(max(bisect_right(LEVEL_THRESHOLDS, points), 1), MAX_LEVEL)


def get_current_timestamp():
    """Get current timestamp in ISO format with timezone info"""
    return datetime.now(timezone.utc).isoformat()


class PointsAccountant:
    """Awards points for actions and keeps user_points in step with point_transactions.

    Awards for the same user are serialized so the read-modify-write of the
    total cannot lose an update. If the transaction insert fails after the
    total was written, the previous total is put back before the error is
    re-raised.
    """

    def __init__(self, client, lock_stripes: int = LOCK_STRIPES):
        self.client = client
        # Fixed pool; users hashing to the same stripe just share a lock
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(lock_stripes)]

    def _lock_for(self, user_id: str) -> threading.Lock:
        return self._locks[zlib.crc32(str(user_id).encode()) % len(self._locks)]

    def get_user_points(self, user_id: str) -> Optional[Dict[str, Any]]:
        response = self.client.table('user_points').select('*').eq('user_id', user_id).limit(1).execute()
        return response.data[0] if response.data else None

    def award_points(self, user_id: str, action: str, reference_id: str) -> PointsAward:
        if action not in POINTS_SYSTEM:
            raise InvalidActionError(f"Unknown point action: {action}")
        points = POINTS_SYSTEM[action]

        with self._lock_for(user_id):
            previous = self.get_user_points(user_id)
            current_points = previous['points'] if previous else 0
            new_points = current_points + points
            new_level = level_for_points(new_points)

            self.client.table('user_points').upsert({
                'user_id': user_id,
                'points': new_points,
                'level': new_level,
                'updated_at': get_current_timestamp()
            }, on_conflict='user_id').execute()

            try:
                self.client.table('point_transactions').insert({
                    'user_id': user_id,
                    'points': points,
                    'reason': f"{action}: {reference_id}"
                }).execute()
            except Exception:
                self._restore(user_id, previous)
                raise

        logger.info("Awarded %d points to %s for %s (total %d, level %d)",
                    points, user_id, action, new_points, new_level)
        return PointsAward(points=new_points, level=new_level)

    def _restore(self, user_id: str, previous: Optional[Dict[str, Any]]):
        try:
            if previous is None:
                self.client.table('user_points').delete().eq('user_id', user_id).execute()
            else:
                self.client.table('user_points').upsert(previous, on_conflict='user_id').execute()
        except Exception as e:
            # the award error is re-raised by the caller
            logger.error("Could not restore points for %s after failed award: %s", user_id, e)


def display_name(email: Optional[str]) -> str:
    """Initials from the local part of an email, e.g. jane.doe@x -> JD"""
    if not email:
        return "Anonymous"
    local = email.split('@')[0]
    initials = ''.join(part[0] for part in re.split(r'[._-]+', local) if part)
    return initials.upper() or "Anonymous"


def get_leaderboard(client, limit: int = LEADERBOARD_SIZE) -> List[LeaderboardEntry]:
    """Top users by points; ties go to the lower user_id"""
    limit = min(limit, LEADERBOARD_SIZE)
    response = client.table('user_points').select(
        'user_id, points, level, user:users!user_points_user_id_fkey(email)'
    ).order('points', desc=True).order('user_id').limit(limit).execute()

    rows = sorted(response.data or [], key=lambda r: (-(r.get('points') or 0), str(r.get('user_id'))))

    leaderboard = []
    for rank, row in enumerate(rows[:limit], start=1):
        email = (row.get('user') or {}).get('email')
        points = row.get('points') or 0
        leaderboard.append(LeaderboardEntry(
            rank=rank,
            user_id=str(row['user_id']),
            points=points,
            level=row.get('level') or level_for_points(points),
            email=email,
            display_name=display_name(email),
        ))
    return leaderboard
