"""Watch complaint upvotes and report complaints that became eligible for escalation.

Usage:
  python -m wastewise.scripts.watch_complaints

Polls Supabase `complaints` and `complaint_upvotes`, keeps local projections of
both, and prints a line whenever a complaint crosses the escalation threshold
without having been forwarded to the authority yet.
"""

from collections import Counter
from typing import Set

from wastewise.database import get_supabase
from wastewise.schemas import Complaint
from wastewise.services.complaints import can_escalate
from wastewise.services.realtime import ChangeEvent, Projection, TableSubscription


class EscalationWatcher:
    def __init__(self, client, interval_seconds: float = 3.0):
        self.complaints = Projection()
        self.upvotes = Projection()
        self.complaint_feed = TableSubscription(client, 'complaints', interval_seconds=interval_seconds)
        self.upvote_feed = TableSubscription(client, 'complaint_upvotes', interval_seconds=interval_seconds)
        self.reported: Set[str] = set()

    def upvote_counts(self) -> Counter:
        return Counter(str(row.get('complaint_id')) for row in self.upvotes.rows.values())

    def eligible(self):
        counts = self.upvote_counts()
        for row in self.complaints.rows.values():
            complaint = Complaint(**row)
            if can_escalate(counts[complaint.id], complaint):
                yield complaint, counts[complaint.id]

    def _newly_eligible(self):
        found = []
        for complaint, upvotes in self.eligible():
            if complaint.id not in self.reported:
                self.reported.add(complaint.id)
                found.append((complaint, upvotes))
        return found

    def _refresh_complaints(self):
        for event in self.complaint_feed.poll():
            self.complaints.apply(event)

    def step(self):
        """Poll both tables once and return complaints that just became eligible"""
        self._refresh_complaints()
        for event in self.upvote_feed.poll():
            self.upvotes.apply(event)
        return self._newly_eligible()

    def on_upvote_change(self, event: ChangeEvent):
        self.upvotes.apply(event)
        self._refresh_complaints()
        for complaint, upvotes in self._newly_eligible():
            print(f"Complaint {complaint.id} ({complaint.title!r}) has {upvotes} upvotes and can be escalated")


def watch(interval_seconds: float = 3.0):
    watcher = EscalationWatcher(get_supabase(), interval_seconds)
    try:
        watcher.upvote_feed.watch(watcher.on_upvote_change)
    except KeyboardInterrupt:
        print('Watcher stopped by user')


if __name__ == '__main__':
    watch()
