"""
/trip routes: AI itinerary generation and the caller's saved trips.
"""

import time
from contextlib import asynccontextmanager
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from tripplanner.api.schemas import (
    ErrorResponse, GeneratedItinerary, PlanTripRequest, SaveTripRequest,
    TripRecord, TripStatusUpdate,
)
from tripplanner.core.planning.orchestrator import TripPlanner
from tripplanner.core.security import get_current_user_id
from tripplanner.core.settings import get_settings
from tripplanner.core.trip_store import TripStore, build_trip_record

logger = structlog.get_logger(__name__)

settings = get_settings()

router = APIRouter(prefix="/trip", tags=["trips"])

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address, enabled=settings.ENABLE_RATE_LIMITING)


@asynccontextmanager
async def performance_timer(operation: str):
    """Context manager for timing operations"""
    start = time.time()
    try:
        yield
    finally:
        duration = time.time() - start
        logger.info("operation_completed", operation=operation, duration_seconds=round(duration, 2))


def get_trip_planner(request: Request) -> TripPlanner:
    return request.app.state.planner


def get_trip_store(request: Request) -> TripStore:
    return request.app.state.trip_store


@router.post(
    "/plan-trip",
    response_model=GeneratedItinerary,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid trip parameters"},
        401: {"description": "Missing or invalid access token"},
        429: {"description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "AI planner unavailable or returned an unusable plan"},
        504: {"model": ErrorResponse, "description": "Planning did not finish in time"},
    },
    summary="Generate an AI itinerary",
    description="Generates a day-by-day itinerary with an AI model and geocodes every activity",
)
@limiter.limit(settings.RATE_LIMIT_PLAN)
async def plan_trip(
    request: Request,
    payload: PlanTripRequest,
    user_id: str = Depends(get_current_user_id),  # auth gate
    planner: TripPlanner = Depends(get_trip_planner),
):
    async with performance_timer("trip_planning"):
        itinerary = await planner.plan(payload)
    logger.info("trip_planned", trip_id=itinerary.trip_id, user_id=user_id)
    return itinerary


@router.post("/trips", response_model=TripRecord, response_model_exclude_none=True,
             status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_WRITE)
async def save_trip(
    request: Request,
    payload: SaveTripRequest,
    user_id: str = Depends(get_current_user_id),
    store: TripStore = Depends(get_trip_store),
):
    """Save a generated itinerary as a draft trip"""
    record = build_trip_record(payload.itinerary, owner_id=user_id, trip_name=payload.trip_name)
    return store.create(record)


@router.get("/trips", response_model=List[TripRecord], response_model_exclude_none=True)
@limiter.limit(settings.RATE_LIMIT_READ)
async def list_trips(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    store: TripStore = Depends(get_trip_store),
):
    return store.list(user_id)


@router.get("/trips/{trip_id}", response_model=TripRecord, response_model_exclude_none=True)
@limiter.limit(settings.RATE_LIMIT_READ)
async def read_trip(
    request: Request,
    trip_id: str,
    user_id: str = Depends(get_current_user_id),
    store: TripStore = Depends(get_trip_store),
):
    record = store.get(trip_id, user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Trip not found")
    return record


@router.patch("/trips/{trip_id}", response_model=TripRecord, response_model_exclude_none=True)
@limiter.limit(settings.RATE_LIMIT_WRITE)
async def update_trip_status(
    request: Request,
    trip_id: str,
    payload: TripStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    store: TripStore = Depends(get_trip_store),
):
    record = store.update_status(trip_id, user_id, payload.status)
    if record is None:
        raise HTTPException(status_code=404, detail="Trip not found")
    return record


@router.delete("/trips/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.RATE_LIMIT_WRITE)
async def delete_trip(
    request: Request,
    trip_id: str,
    user_id: str = Depends(get_current_user_id),
    store: TripStore = Depends(get_trip_store),
):
    if not store.delete(trip_id, user_id):
        raise HTTPException(status_code=404, detail="Trip not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
