"""Dependency injection for FastAPI endpoints"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from cash_planner.domain.models import Settings
from cash_planner.infrastructure.database.repositories import SettingsRepository
from cash_planner.infrastructure.database.session import get_db
from cash_planner.infrastructure.observability.logging import log_command
from cash_planner.infrastructure.observability.metrics import record_command
from cash_planner.infrastructure.storage.receipts import ReceiptStorage


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_settings(db: Session = Depends(get_db)) -> Settings:
    """Persisted settings, defaults when none were saved yet"""
    return SettingsRepository(db).load() or Settings()


def get_receipt_storage() -> ReceiptStorage:
    """Provide receipt storage client"""
    return ReceiptStorage.from_config()


@contextmanager
def tracked_command(request: Request, command: str, **fields: Any) -> Iterator[None]:
    """Time a command, count its outcome and log it once completed"""
    start_time = time.time()
    request_id = get_request_id(request)
    try:
        yield
    except Exception as e:
        record_command(command, success=False)
        logging.warning(f"Command {command} failed: {e}", extra={"request_id": request_id, "command": command})
        raise

    record_command(command, success=True)
    log_command(request_id, command, (time.time() - start_time) * 1000, **fields)
