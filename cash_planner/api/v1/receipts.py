"""Receipt file upload and management"""

from typing import List

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from cash_planner.api.dependencies import get_receipt_storage, tracked_command
from cash_planner.api.v1.schemas import ReceiptUploadResponse, StorageStatsResponse, StoredFileResponse
from cash_planner.config import config
from cash_planner.domain.exceptions import ValidationError
from cash_planner.domain.parsing import month_id
from cash_planner.infrastructure.observability.metrics import receipt_upload_bytes_histogram
from cash_planner.infrastructure.storage.receipts import ReceiptStorage

router = APIRouter()


@router.post("/receipts", response_model=ReceiptUploadResponse, status_code=201)
def upload_receipt(
    request: Request,
    file: UploadFile = File(...),
    storage: ReceiptStorage = Depends(get_receipt_storage),
):
    """Store a receipt under the current month's folder and return its public URL"""
    content = file.file.read()
    if not content:
        raise ValidationError("Empty file")
    if len(content) > config.receipt_max_bytes:
        raise ValidationError(f"File exceeds {config.receipt_max_bytes} bytes")

    with tracked_command(request, "upload_receipt", size_bytes=len(content)):
        url = storage.upload(content, file.filename or "file", file.content_type)

    receipt_upload_bytes_histogram.observe(len(content))
    return ReceiptUploadResponse(url=url, size_bytes=len(content))


@router.delete("/receipts", status_code=204)
def delete_receipt(
    request: Request,
    url: str = Query(..., description="Public URL returned at upload"),
    storage: ReceiptStorage = Depends(get_receipt_storage),
):
    with tracked_command(request, "delete_receipt"):
        storage.delete(url)


@router.get("/receipts/stats", response_model=StorageStatsResponse)
def get_receipt_stats(storage: ReceiptStorage = Depends(get_receipt_storage)):
    return StorageStatsResponse.model_validate(storage.stats())


@router.get("/receipts/{year}/{month}", response_model=List[StoredFileResponse])
def list_receipts(year: int, month: int, storage: ReceiptStorage = Depends(get_receipt_storage)):
    target = month_id(year, month)
    return [StoredFileResponse.model_validate(f) for f in storage.list_by_month(target.year, target.month)]
