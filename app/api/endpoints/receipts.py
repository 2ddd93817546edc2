# app/api/endpoints/receipts.py
import logging
import uuid
from pathlib import Path
from typing import Annotated, Optional
from fastapi import APIRouter, HTTPException, status, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from app.core import config, schemas, models
from app.core.receipts.ocr import ExtractionError, extract_text
from app.core.receipts.parser import parse_receipt_text
from app.core.security import get_current_user

router = APIRouter(prefix="/receipts", tags=["Receipts"])

user_dep = Annotated[models.User, Depends(get_current_user)]

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".pdf", ".txt"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "application/pdf", "text/plain"}

CHUNK_SIZE = 64 * 1024


async def read_limited(upload: UploadFile, limit: int) -> bytes:
    # Stop as soon as the limit is passed, never buffer a huge upload
    if upload.size is not None and upload.size > limit:
        raise HTTPException(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "File is too large"
        )

    chunks = []
    received = 0
    while True:
        chunk = await upload.read(CHUNK_SIZE)
        if not chunk:
            break
        received += len(chunk)
        if received > limit:
            raise HTTPException(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "File is too large"
            )
        chunks.append(chunk)
    return b"".join(chunks)


def owned_receipt_path(filename: str, owner_id: int) -> Path:
    # Plain file names only, and only the caller's own receipts
    if Path(filename).name != filename or not filename.startswith(
        f"receipt-{owner_id}-"
    ):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "File not found")
    path = Path(config.UPLOAD_DIR) / filename
    if not path.is_file():
        raise HTTPException(status.HTTP_404_NOT_FOUND, "File not found")
    return path


@router.post("/upload", response_model=schemas.ReceiptUploadResponse)
async def upload_receipt(
    current_user: user_dep,
    receipt: Annotated[Optional[UploadFile], File()] = None,
    extracted_text: Annotated[Optional[str], Form()] = None,
):
    if receipt is None or not receipt.filename:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "No file uploaded")

    extension = Path(receipt.filename).suffix.lower()
    content_type = (receipt.content_type or "").split(";")[0].strip().lower()
    if extension not in ALLOWED_EXTENSIONS or content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, "Only image, PDF and text files are allowed"
        )

    content = await read_limited(receipt, config.MAX_UPLOAD_SIZE)
    if not content:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "No file uploaded")

    # Text sent by the client wins over our own OCR
    if extracted_text:
        text = extracted_text
    else:
        try:
            text = await run_in_threadpool(extract_text, content, extension)
        except ExtractionError as error:
            logger.error(f"Failed to extract text from {receipt.filename}: {error}")
            raise HTTPException(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Error processing receipt"
            )

    filename = f"receipt-{current_user.id}-{uuid.uuid4().hex}{extension}"
    upload_dir = Path(config.UPLOAD_DIR)
    try:
        upload_dir.mkdir(parents=True, exist_ok=True)
        (upload_dir / filename).write_bytes(content)
    except OSError as error:
        logger.error(f"Failed to store receipt {filename}: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Error processing receipt"
        )
    extracted = parse_receipt_text(text)
    logger.info(f"Stored receipt {filename} for user {current_user.id}")

    return schemas.ReceiptUploadResponse(
        message="Receipt uploaded and processed successfully",
        file=schemas.ReceiptFile(
            filename=filename,
            original_name=receipt.filename,
            path=f"/receipts/{filename}",
        ),
        extracted_text=text,
        extracted_data=schemas.ReceiptDataResponse.model_validate(extracted),
    )


@router.post("/parse", response_model=schemas.ReceiptDataResponse)
async def parse_receipt(payload: schemas.ReceiptText, current_user: user_dep):
    return schemas.ReceiptDataResponse.model_validate(parse_receipt_text(payload.text))


@router.get("/{filename}")
async def get_receipt(filename: str, current_user: user_dep):
    return FileResponse(owned_receipt_path(filename, current_user.id))


@router.delete("/{filename}")
async def delete_receipt(filename: str, current_user: user_dep):
    path = owned_receipt_path(filename, current_user.id)
    try:
        path.unlink()
    except OSError as error:
        logger.error(f"Failed to delete receipt {filename}: {error}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Delete failed")
    return {"message": "File deleted successfully"}
