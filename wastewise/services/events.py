"""Community clean-up events."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from postgrest.exceptions import APIError

from wastewise.errors import UNIQUE_VIOLATION, EventJoinRejected, NotFoundError
from wastewise.schemas import Event, EventCreate, UserSession

logger = logging.getLogger(__name__)


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def is_past(event: Event, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return _aware(event.date) < _aware(now)


class EventService:
    def __init__(self, client):
        self.client = client

    def list_events(self) -> List[Event]:
        response = self.client.table('events').select('*').order('date').execute()
        return [Event(**row) for row in response.data or []]

    def get_event(self, event_id: str) -> Event:
        response = self.client.table('events').select('*').eq('id', event_id).limit(1).execute()
        if not response.data:
            raise NotFoundError("Event not found")
        return Event(**response.data[0])

    def create_event(self, user: UserSession, event: EventCreate) -> Event:
        response = self.client.table('events').insert({
            'user_id': user.id,
            'title': event.title,
            'description': event.description,
            'location': event.location,
            'date': event.date.isoformat(),
            'max_participants': event.max_participants,
        }).execute()
        if not response.data:
            raise RuntimeError("Failed to insert event into database")
        created = Event(**response.data[0])
        logger.info("Event %s created by %s", created.id, user.id)
        return created

    def has_joined(self, event_id: str, user_id: str) -> bool:
        response = self.client.table('event_participants').select('id') \
            .eq('event_id', event_id).eq('user_id', user_id).execute()
        return bool(response.data)

    def count_participants(self, event_id: str) -> int:
        response = self.client.table('event_participants').select('id', count='exact') \
            .eq('event_id', event_id).execute()
        if response.count is not None:
            return response.count
        return len(response.data or [])

    def check_join(self, event: Event, user: Optional[UserSession], now: Optional[datetime] = None):
        if user is None:
            raise EventJoinRejected("not_authenticated", "Please sign in to join events")
        if event.user_id == user.id:
            raise EventJoinRejected("own_event", "Cannot join your own event")
        if event.is_full:
            raise EventJoinRejected("event_full", "Event is full")
        if is_past(event, now):
            raise EventJoinRejected("event_past", "Event has already taken place")
        if self.has_joined(event.id, user.id):
            raise EventJoinRejected("already_joined", "Already joined this event")

    def join_event(self, event: Event, user: Optional[UserSession], now: Optional[datetime] = None) -> int:
        """Add the user to the event and return the refreshed participant count"""
        self.check_join(event, user, now)

        try:
            self.client.table('event_participants').insert({
                'event_id': event.id,
                'user_id': user.id
            }).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise EventJoinRejected("already_joined", "Already joined this event") from e
            raise

        # Concurrent joins may have taken the last seat since the event was read
        participants = self.count_participants(event.id)
        if participants > event.max_participants:
            self.client.table('event_participants').delete() \
                .eq('event_id', event.id).eq('user_id', user.id).execute()
            raise EventJoinRejected("event_full", "Event is full")

        self.client.table('events').update({'current_participants': participants}) \
            .eq('id', event.id).execute()
        logger.info("User %s joined event %s (%d/%d)", user.id, event.id,
                    participants, event.max_participants)
        return participants
