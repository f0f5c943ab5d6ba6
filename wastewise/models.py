from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text, ForeignKey, ARRAY, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.sql import false, func
import uuid

Base = declarative_base()

class User(Base):
    __tablename__ = 'users'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    email = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    points = relationship("UserPoints", back_populates="user", uselist=False)
    waste_reports = relationship("WasteReport", back_populates="user")

class WasteReport(Base):
    __tablename__ = 'waste_reports'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    image_url = Column(String, nullable=False)
    classification = Column(String, nullable=False)  # 'Recyclable', 'Hazardous', 'Organic', 'Non-Recyclable', 'Industrial'
    confidence_score = Column(Float, default=0.0)
    recommendations = Column(ARRAY(Text))
    status = Column(String, default='completed')
    carbon_footprint = Column(Float)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="waste_reports")
    footprint = relationship("CarbonFootprint", back_populates="waste_report", uselist=False,
                             cascade="all, delete-orphan")

class CarbonFootprint(Base):
    __tablename__ = 'carbon_footprints'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    waste_report_id = Column(UUID(as_uuid=True), ForeignKey('waste_reports.id', ondelete='CASCADE'), unique=True, nullable=False)
    carbon_impact = Column(Float, nullable=False)
    reduction_suggestions = Column(ARRAY(Text))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    waste_report = relationship("WasteReport", back_populates="footprint")

class UserPoints(Base):
    __tablename__ = 'user_points'
    __table_args__ = (
        CheckConstraint('points >= 0', name='user_points_non_negative'),
        CheckConstraint('level BETWEEN 1 AND 10', name='user_points_level_range'),
    )

    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', name='user_points_user_id_fkey'), primary_key=True, nullable=False)
    points = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="points")

class PointTransaction(Base):
    __tablename__ = 'point_transactions'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    points = Column(Integer, nullable=False)
    reason = Column(String, nullable=False)  # '<action>: <reference id>'
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class Complaint(Base):
    __tablename__ = 'complaints'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String, nullable=False)
    status = Column(String, default='pending')
    upvotes = Column(Integer, nullable=False, default=0, server_default='0')  # count of complaint_upvotes rows, kept by ComplaintService.upvote
    media_urls = Column(ARRAY(String), default=list)

    # Authority escalation, set once
    authority_notified = Column(Boolean, nullable=False, default=False, server_default=false())
    authority_status = Column(String, nullable=True)  # 'pending', 'in_progress', 'resolved'
    authority_location = Column(JSONB, nullable=True)
    authority_updates = Column(ARRAY(Text), default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    upvote_rows = relationship("ComplaintUpvote", back_populates="complaint", cascade="all, delete-orphan")

class ComplaintUpvote(Base):
    __tablename__ = 'complaint_upvotes'
    __table_args__ = (
        UniqueConstraint('complaint_id', 'user_id', name='complaint_upvotes_one_per_user'),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    complaint_id = Column(UUID(as_uuid=True), ForeignKey('complaints.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    complaint = relationship("Complaint", back_populates="upvote_rows")

class Event(Base):
    __tablename__ = 'events'
    __table_args__ = (
        CheckConstraint('current_participants <= max_participants', name='events_not_over_capacity'),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    max_participants = Column(Integer, nullable=False, default=10)
    current_participants = Column(Integer, nullable=False, default=0, server_default='0')  # kept by EventService.join_event
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class EventParticipant(Base):
    __tablename__ = 'event_participants'
    __table_args__ = (
        UniqueConstraint('event_id', 'user_id', name='event_participants_one_per_user'),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    event_id = Column(UUID(as_uuid=True), ForeignKey('events.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
