"""HTTP handlers for the ``/inventory`` endpoints."""
from __future__ import annotations

import logging
from typing import Awaitable, Optional, TypeVar

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ledger.engine import LedgerEngine
from ledger.errors import (
    ConfigurationError,
    InsufficientStockError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from ledger.records import ImageUpload
from ledger.schemas import IssueRequest, ReceiveRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["inventory"])

T = TypeVar("T")


class InternalFailure(LedgerError):
    """Unexpected failure inside a handler, reported without internals."""

    kind = "internal"


def status_for(exc: LedgerError) -> int:
    if isinstance(exc, (ValidationError, InsufficientStockError)):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    return 500


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": str(exc), "kind": exc.kind})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request: {details}", "kind": ValidationError.kind},
    )


def get_engine(request: Request) -> LedgerEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is not None:
        return engine
    clients = getattr(request.app.state, "clients", None)
    if clients is not None:
        clients.sheets.require()
    raise ConfigurationError("Google Sheets not initialized")


async def _execute(operation: Awaitable[T], failure_message: str) -> T:
    try:
        return await operation
    except LedgerError:
        raise
    except Exception as exc:
        logger.exception(failure_message)
        raise InternalFailure(failure_message) from exc


async def _image_from(upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return ImageUpload(
        filename=upload.filename,
        mime_type=upload.content_type or "application/octet-stream",
        content=content,
    )


@router.post("/add", status_code=201)
async def add_inventory_with_image(
    image: Optional[UploadFile] = File(None),
    entry: Optional[str] = Form(None),
    engine: LedgerEngine = Depends(get_engine),
):
    upload = await _image_from(image)
    if upload is None:
        raise ValidationError("No image file uploaded")
    if not entry:
        raise ValidationError("Missing inventory entry")
    data = await _execute(
        engine.add_with_image(entry, upload),
        "Failed to add inventory entry and upload image",
    )
    return {"message": "Inventory entry and image uploaded successfully", "data": data}


@router.get("/search")
async def search_inventory(
    keyword: Optional[str] = Query(None),
    engine: LedgerEngine = Depends(get_engine),
):
    results = await _execute(engine.search(keyword), "Failed to search inventory")
    return {"results": results}


@router.post("/issue")
async def issue_inventory(payload: IssueRequest, engine: LedgerEngine = Depends(get_engine)):
    outcome = await _execute(
        engine.issue(
            item_code=payload.item_code,
            quantity=payload.issuance_qty,
            actor=payload.issued_by,
            activity=payload.activity,
            location=payload.location,
            notes=payload.notes,
        ),
        "Failed to issue inventory",
    )
    return {"message": "Inventory issued successfully", **outcome.to_dict()}


@router.post("/receive")
async def receive_inventory(payload: ReceiveRequest, engine: LedgerEngine = Depends(get_engine)):
    outcome = await _execute(
        engine.receive(
            item_code=payload.item_code,
            quantity=payload.receipt_qty,
            actor=payload.received_by,
            location=payload.location,
            notes=payload.notes,
        ),
        "Failed to receive inventory",
    )
    return {"message": "Inventory received successfully", **outcome.to_dict()}


@router.post("/addNewItem", status_code=201)
async def add_new_item_without_code(
    image: Optional[UploadFile] = File(None),
    receiptQty: Optional[str] = Form(None),  # noqa: N803 - form field names match the client
    location: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    returnableItem: Optional[str] = Form(None),  # noqa: N803
    receivedBy: Optional[str] = Form(None),  # noqa: N803
    notes: Optional[str] = Form(None),
    engine: LedgerEngine = Depends(get_engine),
):
    upload = await _image_from(image)
    outcome = await _execute(
        engine.add_new_item_without_code(
            quantity=receiptQty,
            location=location,
            description=description,
            returnable_item=returnableItem,
            actor=receivedBy,
            notes=notes,
            image=upload,
        ),
        "Failed to add new item",
    )
    return {"message": "New item logged successfully", **outcome.to_dict()}


__all__ = [
    "InternalFailure",
    "get_engine",
    "ledger_error_handler",
    "request_validation_handler",
    "router",
    "status_for",
]
