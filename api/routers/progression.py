"""
Progression router for modality progression analytics.

This router provides endpoints for:
- Recording a session measurement (flexibility, balance, power, stability)
- Reading a stored series within a retention window
- Trend-metric data points filtered by date and value range
- Scores, trend, prediction and milestones for a series
- Pruning old samples
- Peak power records across exercises
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Path
from pydantic import BaseModel, Field

from api.deps import get_current_user, get_progression_service
from application.exceptions import SampleValidationError, StorageError
from backend.core.progression_service import ProgressionService
from domain.models import (
    Achievement,
    Celebration,
    DataPoint,
    Milestone,
    Modality,
    Prediction,
    Record,
    Sample,
    Trend,
)

router = APIRouter(
    prefix="/progression",
    tags=["Progression"],
)


# =============================================================================
# Request / Response Models
# =============================================================================


class RecordSampleRequest(BaseModel):
    """Request body for recording a session measurement."""
    measurement: Dict[str, Any] = Field(
        ...,
        description="Raw modality fields; percentages are clamped to [0, 100]",
    )
    timestamp: Optional[datetime] = Field(
        None,
        description="Session time (default: now)",
    )


class IngestApiResponse(BaseModel):
    """Response model for the ingest endpoint."""
    sample: Dict[str, Any]
    series: List[Dict[str, Any]]
    scores: Dict[str, Any]
    trend: Trend
    prediction: Optional[Prediction] = None
    new_achievements: List[Achievement] = Field(default_factory=list)
    celebrations: List[Celebration] = Field(default_factory=list)
    next_milestone: Optional[Milestone] = None
    celebrate: bool = False


class SeriesApiResponse(BaseModel):
    """Response model for a stored series."""
    modality: Modality
    exercise_id: str
    samples: List[Dict[str, Any]]
    total: int


class DataPointsApiResponse(BaseModel):
    """Response model for trend-metric data points."""
    modality: Modality
    exercise_id: str
    points: List[DataPoint]
    total: int


class SummaryApiResponse(BaseModel):
    """Response model for series analytics."""
    modality: Modality
    exercise_id: str
    sample_count: int
    scores: Dict[str, Any]
    trend: Trend
    prediction: Optional[Prediction] = None
    next_milestone: Optional[Milestone] = None
    milestones: List[Milestone] = Field(default_factory=list)


class PowerRecordsApiResponse(BaseModel):
    """Response model for peak power records."""
    records: List[Record]
    total: int


# =============================================================================
# Helpers
# =============================================================================


# Valid exercise ID pattern: lowercase letters, numbers, and hyphens
EXERCISE_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$|^[a-z0-9]$")


def _validate_exercise_id(exercise_id: str) -> None:
    """Validate exercise ID format."""
    if not EXERCISE_ID_PATTERN.match(exercise_id):
        raise HTTPException(
            status_code=400,
            detail="Invalid exercise_id format. Use lowercase letters, numbers, and hyphens only."
        )


def _dump(samples: List[Sample]) -> List[Dict[str, Any]]:
    return [s.model_dump(mode="json") for s in samples]


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/power/records", response_model=PowerRecordsApiResponse)
async def get_power_records(
    exercise_id: List[str] = Query(..., description="Power exercise IDs (repeatable)"),
    user_id: str = Depends(get_current_user),
    service: ProgressionService = Depends(get_progression_service),
) -> PowerRecordsApiResponse:
    """
    Get peak power output per exercise.

    Returns one record per exercise with data, sorted by power descending.
    Ties keep the earliest session.
    """
    for eid in exercise_id:
        _validate_exercise_id(eid)

    records = service.get_peak_records(user_id, exercise_id)
    return PowerRecordsApiResponse(records=records, total=len(records))


@router.post(
    "/{modality}/exercises/{exercise_id}/samples",
    response_model=IngestApiResponse,
    status_code=201,
)
async def record_sample(
    request: RecordSampleRequest,
    modality: Modality = Path(..., description="Exercise modality"),
    exercise_id: str = Path(..., description="Exercise ID"),
    user_id: str = Depends(get_current_user),
    service: ProgressionService = Depends(get_progression_service),
) -> IngestApiResponse:
    """
    Record a session measurement.

    Out-of-range percentages are clamped. Returns the updated series with
    scores, trend, prediction and any newly reached milestones or records.
    """
    _validate_exercise_id(exercise_id)

    try:
        result = service.record_sample(
            user_id,
            exercise_id,
            modality,
            request.measurement,
            timestamp=request.timestamp,
        )
    except SampleValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return IngestApiResponse(
        sample=result.sample.model_dump(mode="json"),
        series=_dump(result.series),
        scores=result.scores,
        trend=result.trend,
        prediction=result.prediction,
        new_achievements=result.new_achievements,
        celebrations=result.celebrations,
        next_milestone=result.next_milestone,
        celebrate=result.celebrate,
    )


@router.get("/{modality}/exercises/{exercise_id}/series", response_model=SeriesApiResponse)
async def get_series(
    modality: Modality = Path(..., description="Exercise modality"),
    exercise_id: str = Path(..., description="Exercise ID"),
    retention_days: Optional[float] = Query(
        None,
        gt=0,
        description="Only samples newer than this many days (default: configured retention)",
    ),
    user_id: str = Depends(get_current_user),
    service: ProgressionService = Depends(get_progression_service),
) -> SeriesApiResponse:
    """
    Get the stored series for an exercise.

    Returns an empty series when there is no data or the store is unavailable.
    """
    _validate_exercise_id(exercise_id)

    samples = service.get_series(user_id, exercise_id, modality, retention_days=retention_days)
    return SeriesApiResponse(
        modality=modality,
        exercise_id=exercise_id,
        samples=_dump(samples),
        total=len(samples),
    )


@router.get("/{modality}/exercises/{exercise_id}/points", response_model=DataPointsApiResponse)
async def get_data_points(
    modality: Modality = Path(..., description="Exercise modality"),
    exercise_id: str = Path(..., description="Exercise ID"),
    start: Optional[datetime] = Query(None, description="Earliest session time (inclusive)"),
    end: Optional[datetime] = Query(None, description="Latest session time (inclusive)"),
    min_value: Optional[float] = Query(None, description="Smallest metric value (inclusive)"),
    max_value: Optional[float] = Query(None, description="Largest metric value (inclusive)"),
    user_id: str = Depends(get_current_user),
    service: ProgressionService = Depends(get_progression_service),
) -> DataPointsApiResponse:
    """
    Get the series as (timestamp, value) points of the modality's trend metric.
    """
    _validate_exercise_id(exercise_id)

    points = service.get_data_points(
        user_id,
        exercise_id,
        modality,
        start=start,
        end=end,
        min_value=min_value,
        max_value=max_value,
    )
    return DataPointsApiResponse(
        modality=modality,
        exercise_id=exercise_id,
        points=points,
        total=len(points),
    )


@router.get("/{modality}/exercises/{exercise_id}/summary", response_model=SummaryApiResponse)
async def get_summary(
    modality: Modality = Path(..., description="Exercise modality"),
    exercise_id: str = Path(..., description="Exercise ID"),
    user_id: str = Depends(get_current_user),
    service: ProgressionService = Depends(get_progression_service),
) -> SummaryApiResponse:
    """
    Get scores, trend, prediction and milestones for an exercise.
    """
    _validate_exercise_id(exercise_id)

    summary = service.get_summary(user_id, exercise_id, modality)
    return SummaryApiResponse(
        modality=modality,
        exercise_id=exercise_id,
        sample_count=summary.sample_count,
        scores=summary.scores,
        trend=summary.trend,
        prediction=summary.prediction,
        next_milestone=summary.next_milestone,
        milestones=summary.milestones,
    )


@router.delete("/{modality}/exercises/{exercise_id}/samples", response_model=SeriesApiResponse)
async def prune_samples(
    modality: Modality = Path(..., description="Exercise modality"),
    exercise_id: str = Path(..., description="Exercise ID"),
    older_than_days: Optional[float] = Query(
        None,
        gt=0,
        description="Drop samples older than this many days (default: configured retention)",
    ),
    user_id: str = Depends(get_current_user),
    service: ProgressionService = Depends(get_progression_service),
) -> SeriesApiResponse:
    """
    Drop old samples from a series and return what remains.
    """
    _validate_exercise_id(exercise_id)

    try:
        samples = service.prune_series(user_id, exercise_id, modality, older_than_days)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return SeriesApiResponse(
        modality=modality,
        exercise_id=exercise_id,
        samples=_dump(samples),
        total=len(samples),
    )
