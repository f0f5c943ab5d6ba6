from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class WasteCategory(str, Enum):
    RECYCLABLE = "Recyclable"
    HAZARDOUS = "Hazardous"
    ORGANIC = "Organic"
    NON_RECYCLABLE = "Non-Recyclable"
    INDUSTRIAL = "Industrial"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["WasteCategory"]:
        """Exact match on the category name, None for anything else"""
        if value is None:
            return None
        try:
            return cls(value.strip())
        except ValueError:
            return None


class AuthorityStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


# Service results

class CarbonFootprint(BaseModel):
    impact: float
    suggestions: List[str] = []


class CarbonStats(BaseModel):
    total_impact: float
    chart: List[Dict[str, Any]]
    suggestions: List[str]


class ClassificationResult(BaseModel):
    classification: str
    confidence: float = 0.0
    recommendations: List[str] = []

    @property
    def category(self) -> Optional[WasteCategory]:
        return WasteCategory.parse(self.classification)


class PointsAward(BaseModel):
    points: int
    level: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    points: int
    level: int
    email: Optional[str] = None
    display_name: str


class Position(BaseModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


class UserSession(BaseModel):
    id: str
    email: Optional[str] = None
    access_token: Optional[str] = None


# Store rows

class WasteReport(BaseModel):
    id: str
    user_id: str
    image_url: str
    classification: str
    confidence_score: float = 0.0
    recommendations: List[str] = []
    status: Optional[str] = "completed"
    carbon_footprint: Optional[float] = None
    created_at: Optional[datetime] = None


class Complaint(BaseModel):
    id: str
    user_id: str
    title: str
    description: str = ""
    location: str = ""
    status: str = "pending"
    upvotes: int = 0
    media_urls: List[str] = []
    authority_notified: bool = False
    authority_status: Optional[AuthorityStatus] = None
    authority_location: Optional[Dict[str, Any]] = None
    authority_updates: List[str] = []
    created_at: Optional[datetime] = None


class Event(BaseModel):
    id: str
    user_id: str
    title: str
    description: str = ""
    location: str = ""
    date: datetime
    max_participants: int
    current_participants: int = 0
    created_at: Optional[datetime] = None

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants


# Request bodies

class EventCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    date: datetime
    max_participants: int = Field(10, ge=1)


class ComplaintCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    media_urls: List[str] = []


class EscalationRequest(BaseModel):
    """Device position; when omitted the server looks the position up itself"""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy: Optional[float] = None
