"""API router exposing manuscript correction intake and job status."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field

from corrector.document import DocumentFormatDetector
from corrector.errors import ClientInputError
from corrector.jobs import JobRecord, JobRegistry, get_job_registry
from corrector.services.correction import CorrectionService, get_correction_service

router = APIRouter(prefix="/correction", tags=["correction"])

STARTED_MESSAGE = (
    "Le serveur travaille sur votre manuscrit. La correction peut prendre plusieurs heures."
)


class CorrectionStartResponse(BaseModel):
    """Acknowledgement returned as soon as a job is scheduled."""

    jobId: str
    status: str = "started"
    message: str = STARTED_MESSAGE


class JobStatusResponse(BaseModel):
    """Current state of a correction job."""

    jobId: str
    filename: str
    status: str
    createdAt: datetime
    updatedAt: datetime
    totalCorrections: Optional[int] = Field(None, ge=0)
    totalTokens: Optional[int] = Field(None, ge=0)
    error: Optional[str] = None


def _serialise_job(record: JobRecord) -> JobStatusResponse:
    return JobStatusResponse(
        jobId=record.job_id,
        filename=record.filename,
        status=record.status.value,
        createdAt=record.created_at,
        updatedAt=record.updated_at,
        totalCorrections=record.total_corrections,
        totalTokens=record.total_tokens,
        error=record.error,
    )


@router.post("/start", status_code=202, response_model=CorrectionStartResponse)
async def start_correction(
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(None),
    service: CorrectionService = Depends(get_correction_service),
) -> CorrectionStartResponse:
    """Accept a DOCX manuscript and correct it in the background."""

    if file is None:
        raise HTTPException(status_code=400, detail="Aucun fichier fourni")
    try:
        DocumentFormatDetector.detect(file.content_type)
    except ClientInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    data = await file.read()
    filename = file.filename or "manuscript.docx"
    job_id = service.register_job(filename)
    background_tasks.add_task(
        service.process_document,
        job_id,
        filename,
        data,
        file_size=len(data),
        uploaded_at=datetime.now(timezone.utc),
    )
    return CorrectionStartResponse(jobId=job_id)


@router.get("/{job_id}", response_model=JobStatusResponse)
def get_correction_status(
    job_id: str,
    registry: JobRegistry = Depends(get_job_registry),
) -> JobStatusResponse:
    """Return the in-memory state of ``job_id``."""

    record = registry.get(job_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return _serialise_job(record)
