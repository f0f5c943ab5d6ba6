#!/usr/bin/env python3
"""
WasteWise FastAPI Backend
Waste classification, carbon tracking and community action
Using Supabase for auth, storage and the database
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Query, Request, UploadFile, File
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from wastewise import __version__, config
from wastewise.auth import current_user, optional_user, sign_out
from wastewise.database import get_supabase
from wastewise.errors import (
    ClassificationError, GeolocationError, InvalidActionError, InvalidUploadError,
    NotFoundError, RuleViolation, StorageError, WasteWiseError,
)
from wastewise.schemas import (
    CarbonFootprint, CarbonStats, Complaint, ComplaintCreate, EscalationRequest, Event,
    EventCreate, LeaderboardEntry, PointsAward, Position, UserSession, WasteReport,
)
from wastewise.services.carbon import carbon_impact, get_carbon_stats
from wastewise.services.classification import GeminiClassifier
from wastewise.services.complaints import ComplaintService, can_escalate
from wastewise.services.events import EventService
from wastewise.services.gamification import PointsAccountant, get_leaderboard, level_for_points
from wastewise.services.geolocation import Geolocator, IPGeolocator, StaticGeolocator
from wastewise.services.realtime import TableSubscription
from wastewise.services.waste_reports import WasteReportService

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


def get_current_timestamp():
    """Get current timestamp in ISO format with timezone info"""
    return datetime.now(timezone.utc).isoformat()


app = FastAPI(
    title="WasteWise API",
    description="Waste classification, carbon footprint and community engagement",
    version=__version__
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error translation

ERROR_STATUS = [
    (NotFoundError, 404),
    (InvalidUploadError, 400),
    (InvalidActionError, 400),
    (ClassificationError, 502),
    (GeolocationError, 502),
    (StorageError, 502),
]

RULE_STATUS = {
    'not_authenticated': 401,
    'own_complaint': 403,
    'own_event': 403,
}


def status_for(error: WasteWiseError) -> int:
    if isinstance(error, RuleViolation):
        return RULE_STATUS.get(error.reason, 409)
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


@app.exception_handler(WasteWiseError)
async def wastewise_error_handler(request: Request, exc: WasteWiseError):
    status_code = status_for(exc)
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, RuleViolation):
        content["reason"] = exc.reason
    return JSONResponse(status_code=status_code, content=content)


# Service dependencies

@lru_cache()
def get_classifier() -> GeminiClassifier:
    return GeminiClassifier()


@lru_cache(maxsize=None)
def _accountant_for(supabase) -> PointsAccountant:
    return PointsAccountant(supabase)


def get_accountant(supabase=Depends(get_supabase)) -> PointsAccountant:
    # Shared per client so per-user award locks span requests
    return _accountant_for(supabase)


def get_waste_report_service(
    supabase=Depends(get_supabase),
    classifier: GeminiClassifier = Depends(get_classifier),
    accountant: PointsAccountant = Depends(get_accountant),
) -> WasteReportService:
    return WasteReportService(supabase, classifier, accountant)


def get_complaint_service(supabase=Depends(get_supabase)) -> ComplaintService:
    return ComplaintService(supabase)


def get_event_service(supabase=Depends(get_supabase)) -> EventService:
    return EventService(supabase)


def get_geolocator(request: Request, body: Optional[EscalationRequest] = None) -> Geolocator:
    """Device coordinates when the client sent them, otherwise an IP lookup"""
    if body is not None and body.latitude is not None and body.longitude is not None:
        return StaticGeolocator(Position(latitude=body.latitude, longitude=body.longitude, accuracy=body.accuracy))
    client_ip = request.client.host if request.client else None
    return IPGeolocator(ip_address=client_ip)


def _fail(action: str, e: Exception):
    logger.error("Error %s: %s", action, e)
    raise HTTPException(status_code=500, detail=f"Failed to {action}: {str(e)}")


# API Routes

@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "message": "WasteWise API is running",
        "version": __version__,
        "status": "healthy",
        "database": "Supabase PostgreSQL",
        "timestamp": get_current_timestamp()
    }


# Waste reports

@app.post("/api/waste-reports", response_model=WasteReport)
async def submit_waste_report(
    file: UploadFile = File(...),
    user: UserSession = Depends(current_user),
    service: WasteReportService = Depends(get_waste_report_service),
):
    """Upload a waste photo, classify it and record the report"""
    try:
        content = await file.read()
        return service.submit(user, file.filename, content, file.content_type)
    except WasteWiseError:
        raise
    except Exception as e:
        _fail("submit waste report", e)


@app.get("/api/waste-reports", response_model=List[WasteReport])
async def list_waste_reports(
    user: UserSession = Depends(current_user),
    service: WasteReportService = Depends(get_waste_report_service),
):
    try:
        return service.list_reports(user.id)
    except Exception as e:
        _fail("load waste reports", e)


@app.delete("/api/waste-reports/{report_id}")
async def delete_waste_report(
    report_id: str,
    user: UserSession = Depends(current_user),
    service: WasteReportService = Depends(get_waste_report_service),
):
    try:
        service.delete_report(user, report_id)
        return {"success": True, "id": report_id}
    except WasteWiseError:
        raise
    except Exception as e:
        _fail("delete report", e)


# Carbon footprint

@app.get("/api/carbon/stats", response_model=CarbonStats)
async def carbon_stats(user: UserSession = Depends(current_user), supabase=Depends(get_supabase)):
    try:
        return get_carbon_stats(supabase, user.id)
    except Exception as e:
        _fail("load carbon data", e)


@app.get("/api/carbon/{classification}", response_model=CarbonFootprint)
async def carbon_lookup(classification: str):
    return carbon_impact(classification)


# Gamification

@app.get("/api/leaderboard", response_model=List[LeaderboardEntry])
async def leaderboard(supabase=Depends(get_supabase)):
    try:
        return get_leaderboard(supabase)
    except Exception as e:
        _fail("load leaderboard", e)


@app.get("/api/points/me", response_model=PointsAward)
async def my_points(
    user: UserSession = Depends(current_user),
    accountant: PointsAccountant = Depends(get_accountant),
):
    try:
        row = accountant.get_user_points(user.id)
    except Exception as e:
        _fail("load points", e)
    points = row['points'] if row else 0
    return PointsAward(points=points, level=level_for_points(points))


# Events

@app.get("/api/events", response_model=List[Event])
async def list_events(service: EventService = Depends(get_event_service)):
    try:
        return service.list_events()
    except Exception as e:
        _fail("load events", e)


@app.post("/api/events", response_model=Event)
async def create_event(
    event: EventCreate,
    user: UserSession = Depends(current_user),
    service: EventService = Depends(get_event_service),
):
    try:
        return service.create_event(user, event)
    except Exception as e:
        _fail("create event", e)


@app.post("/api/events/{event_id}/join")
async def join_event(
    event_id: str,
    user: Optional[UserSession] = Depends(optional_user),
    service: EventService = Depends(get_event_service),
):
    try:
        event = service.get_event(event_id)
        participants = service.join_event(event, user)
        return {"success": True, "event_id": event_id, "current_participants": participants}
    except WasteWiseError:
        raise
    except Exception as e:
        _fail("join event", e)


# Complaints

@app.get("/api/complaints", response_model=List[Complaint])
async def list_complaints(service: ComplaintService = Depends(get_complaint_service)):
    try:
        return service.list_complaints()
    except Exception as e:
        _fail("load complaints", e)


@app.post("/api/complaints", response_model=Complaint)
async def create_complaint(
    complaint: ComplaintCreate,
    user: UserSession = Depends(current_user),
    service: ComplaintService = Depends(get_complaint_service),
):
    try:
        return service.create_complaint(user, complaint.title, complaint.description,
                                        complaint.location, complaint.media_urls)
    except Exception as e:
        _fail("submit complaint", e)


@app.post("/api/complaints/media")
async def upload_complaint_media(
    files: List[UploadFile] = File(...),
    user: UserSession = Depends(current_user),
    service: ComplaintService = Depends(get_complaint_service),
):
    """Upload up to five images or videos as complaint evidence"""
    if len(files) > 5:
        raise HTTPException(status_code=400, detail="At most 5 files can be attached")

    urls = []
    for upload in files:
        if not upload.content_type or not upload.content_type.startswith(('image/', 'video/')):
            raise HTTPException(status_code=400, detail="File must be an image or video")
        content = await upload.read()
        urls.append(service.upload_media(user, upload.filename, content, upload.content_type))
    return {"success": True, "media_urls": urls}


@app.get("/api/complaints/{complaint_id}")
async def get_complaint(
    complaint_id: str,
    user: Optional[UserSession] = Depends(optional_user),
    service: ComplaintService = Depends(get_complaint_service),
):
    """Complaint with its live upvote count and what the viewer may do with it"""
    complaint = service.get_complaint(complaint_id)
    upvotes = service.count_upvotes(complaint_id)
    has_upvoted = bool(user) and service.has_upvoted(complaint_id, user.id)
    return {
        "complaint": complaint,
        "upvotes": upvotes,
        "has_upvoted": has_upvoted,
        "can_upvote": bool(user) and not has_upvoted and complaint.user_id != user.id,
        "can_escalate": can_escalate(upvotes, complaint, service.threshold),
    }


@app.post("/api/complaints/{complaint_id}/upvote")
async def upvote_complaint(
    complaint_id: str,
    user: Optional[UserSession] = Depends(optional_user),
    service: ComplaintService = Depends(get_complaint_service),
):
    complaint = service.get_complaint(complaint_id)
    upvotes = service.upvote(complaint, user)
    return {
        "success": True,
        "upvotes": upvotes,
        "can_escalate": can_escalate(upvotes, complaint, service.threshold),
    }


@app.post("/api/complaints/{complaint_id}/escalate", response_model=Complaint)
async def escalate_complaint(
    complaint_id: str,
    user: UserSession = Depends(current_user),
    service: ComplaintService = Depends(get_complaint_service),
    geolocator: Geolocator = Depends(get_geolocator),
):
    """Redirect a well-supported complaint to the local authority"""
    logger.info("User %s escalating complaint %s", user.id, complaint_id)
    return service.redirect_to_authority(complaint_id, geolocator)


@app.get("/api/complaints/{complaint_id}/upvotes/stream")
async def stream_upvotes(
    complaint_id: str,
    supabase=Depends(get_supabase),
    interval: float = Query(3.0, ge=1),
):
    """Server-sent events with the live upvote count whenever it changes"""
    subscription = TableSubscription(supabase, 'complaint_upvotes', filters={'complaint_id': complaint_id},
                                     interval_seconds=interval)

    async def event_generator():
        last_count = None
        while True:
            try:
                # poll() is a blocking Supabase call
                await run_in_threadpool(subscription.poll)
                count = len(subscription.snapshot)
            except Exception as e:
                logger.warning("Upvote stream for %s failed: %s", complaint_id, e)
                yield f"data: {json.dumps({'type': 'error', 'timestamp': get_current_timestamp()})}\n\n"
            else:
                if count != last_count:
                    last_count = count
                    yield f"data: {json.dumps({'type': 'upvotes', 'complaint_id': complaint_id, 'upvotes': count})}\n\n"
            await asyncio.sleep(interval)

    return StreamingResponse(event_generator(), media_type="text/event-stream")


# Auth

@app.post("/api/auth/sign-out")
async def sign_out_route(user: UserSession = Depends(current_user), supabase=Depends(get_supabase)):
    try:
        sign_out(supabase, user)
    except Exception as e:
        _fail("sign out", e)
    return {"success": True}


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting WasteWise API with Supabase...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
