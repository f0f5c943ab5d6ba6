"""
Community complaints
Posting, evidence upload, upvotes and escalation to the local authority
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from postgrest.exceptions import APIError

from wastewise import config
from wastewise.errors import UNIQUE_VIOLATION, EscalationRejected, NotFoundError, UpvoteRejected
from wastewise.schemas import AuthorityStatus, Complaint, UserSession
from wastewise.services.geolocation import Geolocator
from wastewise.storage import unique_filename, upload_file

logger = logging.getLogger(__name__)

AUTHORITY_FORWARDED_MESSAGE = "Complaint forwarded to local waste management authority"


def can_escalate(upvotes: int, complaint: Complaint, threshold: Optional[int] = None) -> bool:
    """Escalation is offered once a complaint has enough support and was never forwarded"""
    threshold = config.ESCALATION_THRESHOLD if threshold is None else threshold
    return upvotes >= threshold and not complaint.authority_notified


@dataclass
class UpvoteProjection:
    """Local view of one complaint's upvotes, updated before the store confirms"""

    upvotes: int
    has_upvoted: bool = False
    _snapshot: List[tuple] = field(default_factory=list, repr=False)

    def apply(self):
        self._snapshot.append((self.upvotes, self.has_upvoted))
        self.upvotes += 1
        self.has_upvoted = True

    def confirm(self, upvotes: int):
        self._snapshot.clear()
        self.upvotes = upvotes
        self.has_upvoted = True

    def revert(self):
        if self._snapshot:
            self.upvotes, self.has_upvoted = self._snapshot.pop()

    def merge_count(self, upvotes: int):
        """Push notification from the store; last message wins"""
        self.upvotes = upvotes


class ComplaintService:
    def __init__(self, client, threshold: Optional[int] = None):
        self.client = client
        self.threshold = config.ESCALATION_THRESHOLD if threshold is None else threshold

    def get_complaint(self, complaint_id: str) -> Complaint:
        response = self.client.table('complaints').select('*').eq('id', complaint_id).limit(1).execute()
        if not response.data:
            raise NotFoundError("Complaint not found")
        return Complaint(**response.data[0])

    def list_complaints(self) -> List[Complaint]:
        response = self.client.table('complaints').select('*').order('upvotes', desc=True).execute()
        return [Complaint(**row) for row in response.data or []]

    def create_complaint(self, user: UserSession, title: str, description: str, location: str,
                         media_urls: Optional[List[str]] = None) -> Complaint:
        response = self.client.table('complaints').insert({
            'user_id': user.id,
            'title': title,
            'description': description,
            'location': location,
            'media_urls': media_urls or [],
            'upvotes': 0,
            'authority_notified': False,
        }).execute()
        if not response.data:
            raise RuntimeError("Failed to insert complaint into database")
        complaint = Complaint(**response.data[0])
        logger.info("Complaint %s created by %s", complaint.id, user.id)
        return complaint

    def upload_media(self, user: UserSession, filename: str, content: bytes, content_type: str) -> str:
        """Store one piece of evidence and return its public URL"""
        path = f"complaints/{user.id}/{unique_filename(filename)}"
        return upload_file(self.client, config.MEDIA_BUCKET, path, content, content_type)

    def has_upvoted(self, complaint_id: str, user_id: str) -> bool:
        response = self.client.table('complaint_upvotes').select('id') \
            .eq('complaint_id', complaint_id).eq('user_id', user_id).execute()
        return bool(response.data)

    def count_upvotes(self, complaint_id: str) -> int:
        """Live count, taken from the join table rather than the cached column"""
        response = self.client.table('complaint_upvotes').select('id', count='exact') \
            .eq('complaint_id', complaint_id).execute()
        if response.count is not None:
            return response.count
        return len(response.data or [])

    def check_upvote(self, complaint: Complaint, user: Optional[UserSession]):
        if user is None:
            raise UpvoteRejected("not_authenticated", "Please sign in to upvote")
        if complaint.user_id == user.id:
            raise UpvoteRejected("own_complaint", "Cannot upvote own complaint")
        if self.has_upvoted(complaint.id, user.id):
            raise UpvoteRejected("already_upvoted", "Already upvoted")

    def upvote(self, complaint: Complaint, user: Optional[UserSession]) -> int:
        """Record the user's upvote and return the refreshed count"""
        self.check_upvote(complaint, user)

        try:
            self.client.table('complaint_upvotes').insert({
                'complaint_id': complaint.id,
                'user_id': user.id
            }).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise UpvoteRejected("already_upvoted", "Already upvoted") from e
            raise

        upvotes = self.count_upvotes(complaint.id)
        self.client.table('complaints').update({'upvotes': upvotes}).eq('id', complaint.id).execute()
        logger.info("Complaint %s upvoted by %s (%d upvotes)", complaint.id, user.id, upvotes)
        return upvotes

    def upvote_optimistic(self, projection: UpvoteProjection, complaint: Complaint,
                          user: Optional[UserSession]) -> UpvoteProjection:
        """Apply locally, write remotely, then confirm or roll the projection back"""
        if projection.has_upvoted:
            raise UpvoteRejected("already_upvoted", "Already upvoted")
        projection.apply()
        try:
            upvotes = self.upvote(complaint, user)
        except Exception:
            projection.revert()
            raise
        projection.confirm(upvotes)
        return projection

    def redirect_to_authority(self, complaint_id: str, geolocator: Geolocator) -> Complaint:
        """Forward a well-supported complaint, stamped with the reporter's position.

        The complaint is only updated once a position is known; a failed
        lookup leaves it untouched so the escalation can be retried.
        """
        complaint = self.get_complaint(complaint_id)
        if complaint.authority_notified:
            raise EscalationRejected("already_notified", "Complaint was already forwarded to the authority")

        upvotes = self.count_upvotes(complaint_id)
        if not can_escalate(upvotes, complaint, self.threshold):
            raise EscalationRejected(
                "not_enough_upvotes",
                f"Complaint needs {self.threshold} upvotes before it can be escalated"
            )

        position = geolocator.current_position()

        response = self.client.table('complaints').update({
            'authority_notified': True,
            'authority_status': AuthorityStatus.PENDING.value,
            'authority_location': {
                'latitude': position.latitude,
                'longitude': position.longitude,
                'accuracy': position.accuracy
            },
            'authority_updates': [AUTHORITY_FORWARDED_MESSAGE]
        }).eq('id', complaint_id).eq('authority_notified', False).execute()

        # Another escalation got there between the read and this write
        if not response.data:
            raise EscalationRejected("already_notified", "Complaint was already forwarded to the authority")

        logger.info("Complaint %s forwarded to authority", complaint_id)
        return Complaint(**response.data[0])
