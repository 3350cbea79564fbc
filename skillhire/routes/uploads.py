# ========================================
# skillhire/routes/uploads.py
# ========================================

import re
import uuid

from fastapi import APIRouter, Depends, File, Response, UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.config import Settings, get_settings
from skillhire.database import get_db
from skillhire.services.users import set_profile_field
from skillhire.utils.auth import require_candidate, require_employer
from skillhire.utils.errors import BadRequestException
from skillhire.utils.logging import get_logger
from skillhire.utils.storage import LOGOS, RESUMES, ObjectStorage, get_storage

logger = get_logger(__name__)

router = APIRouter(tags=["Uploads"])

LOGO_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
RESUME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


async def _read_checked(file: UploadFile, allowed: set, settings: Settings, kind: str) -> bytes:
    if file.content_type not in allowed:
        raise BadRequestException(f"Invalid file type for {kind}")

    contents = await file.read()
    if not contents:
        raise BadRequestException("No file uploaded")
    if len(contents) > settings.max_upload_bytes:
        raise BadRequestException(f"File size exceeds {settings.max_upload_mb}MB limit")
    return contents


def safe_filename(filename: str) -> str:
    """Basename reduced to letters, digits, dot, dash and underscore."""
    name = re.sub(r"[^A-Za-z0-9._-]", "_", (filename or "").replace("\\", "/").rsplit("/", 1)[-1])
    return name.strip(".") or "upload"


def _object_key(owner_id: str, filename: str) -> str:
    return f"{owner_id}/{uuid.uuid4().hex}_{safe_filename(filename)}"


# ✅ 1. COMPANY LOGO (Employer)
@router.post("/api/upload/logo")
async def upload_logo(
    file: UploadFile = File(...),
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    contents = await _read_checked(file, LOGO_TYPES, settings, "logo. Please upload an image")
    url = await storage.put_object(
        LOGOS,
        _object_key(employer["clerk_id"], file.filename),
        contents,
        file.content_type,
        metadata={"user_id": employer["clerk_id"], "original_filename": file.filename},
    )
    await set_profile_field(db, employer, "employer_profile.company_logo", url)

    logger.info("logo_uploaded", user_id=employer["clerk_id"], size=len(contents))
    return {"url": url, "message": "Logo uploaded successfully"}


# ✅ 2. RESUME (Candidate)
@router.post("/api/upload/resume")
async def upload_resume(
    file: UploadFile = File(...),
    candidate: dict = Depends(require_candidate),
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    contents = await _read_checked(file, RESUME_TYPES, settings, "resume. Please upload a PDF, DOC or DOCX")
    url = await storage.put_object(
        RESUMES,
        _object_key(candidate["clerk_id"], file.filename),
        contents,
        file.content_type,
        metadata={"user_id": candidate["clerk_id"], "original_filename": file.filename},
    )
    await set_profile_field(db, candidate, "candidate_profile.resume_url", url)

    logger.info("resume_uploaded", user_id=candidate["clerk_id"], size=len(contents))
    return {"url": url, "filename": safe_filename(file.filename), "message": "Resume uploaded successfully"}


# ✅ 3. SERVE A STORED FILE (public)
@router.get("/files/{bucket}/{file_id}")
async def get_file(bucket: str, file_id: str, storage: ObjectStorage = Depends(get_storage)):
    """Raster images render inline; everything else downloads."""
    contents, content_type, filename = await storage.open_object(bucket, file_id)
    disposition = "inline" if content_type in LOGO_TYPES else "attachment"
    return Response(
        content=contents,
        media_type=content_type,
        headers={
            "Content-Disposition": f'{disposition}; filename="{safe_filename(filename)}"',
            "X-Content-Type-Options": "nosniff",
        },
    )
