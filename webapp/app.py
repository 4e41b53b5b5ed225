"""FastAPI app: dashboard, public v1, API-key, share and render-callback routes."""

from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from fastapi import FastAPI, File, Form, Header, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from config import get_settings
from core import ApiCredential, JobOrigin, RenderCompletion, VideoJob
from auth import RateLimitDecision
from utils.exceptions import (
    ClientInputError,
    CredentialLimitExceeded,
    InvalidTransition,
    JobNotFound,
    PRReelError,
    RateLimited,
    Unauthorized,
)
from webapp.runtime import get_api_key_service, get_orchestrator, get_rate_limiter

logger = logging.getLogger(__name__)


class CreateVideoPayload(BaseModel):
    """Dashboard create body. ``prUrl`` is the legacy single-URL form."""

    pr_urls: List[str] = Field(default_factory=list, alias="prUrls")
    pr_url: Optional[str] = Field(default=None, alias="prUrl")

    model_config = {"populate_by_name": True}

    def urls(self) -> List[str]:
        if self.pr_urls:
            return list(self.pr_urls)
        return [self.pr_url] if self.pr_url else []


class PublicCreateVideoPayload(BaseModel):
    pr_urls: List[str] = Field(default_factory=list)
    pr_urls_camel: List[str] = Field(default_factory=list, alias="prUrls")
    webhook_url: Optional[str] = None

    model_config = {"populate_by_name": True}

    @field_validator("webhook_url")
    @classmethod
    def _validate_webhook_url(cls, value: Optional[str]) -> Optional[str]:
        text = str(value or "").strip()
        if not text:
            return None
        parsed = urlparse(text)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("Invalid webhook_url format")
        return text

    @model_validator(mode="after")
    def _merge_urls(self):
        if not self.pr_urls and self.pr_urls_camel:
            self.pr_urls = list(self.pr_urls_camel)
        return self


class CreateApiKeyPayload(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("Name is required")
        return text


def _error_status(exc: PRReelError) -> int:
    if isinstance(exc, RateLimited):
        return 429
    if isinstance(exc, Unauthorized):
        return 401
    if isinstance(exc, (ClientInputError, CredentialLimitExceeded)):
        return 400
    if isinstance(exc, JobNotFound):
        return 404
    if isinstance(exc, InvalidTransition):
        return 409
    return 500


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    message = str(errors[0].get("msg") or "Invalid request body")
    return message.removeprefix("Value error, ")


def _require_owner(x_user_id: Optional[str]) -> str:
    owner_id = str(x_user_id or "").strip()
    if not owner_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return owner_id


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    return body


def _job_view(job: VideoJob) -> Dict[str, Any]:
    payload = job.model_dump(mode="json", exclude={"result_webhook_url"})
    payload["pr_count"] = job.pr_count
    payload["share_url"] = get_orchestrator().share_url(job)
    return payload


def _share_view(job: VideoJob) -> Dict[str, Any]:
    fields = {
        "id",
        "pr_url",
        "repo_owner",
        "repo_name",
        "pr_number",
        "pr_title",
        "pr_description",
        "pr_author",
        "pr_author_avatar",
        "files_changed",
        "additions",
        "deletions",
        "summary",
        "change_type",
        "video_url",
        "thumbnail_url",
        "status",
        "duration_seconds",
        "share_id",
        "view_count",
        "created_at",
    }
    return job.model_dump(mode="json", include=fields)


def _credential_view(credential: ApiCredential) -> Dict[str, Any]:
    return credential.model_dump(mode="json", exclude={"key_hash", "owner_id"})


app = FastAPI(title="PR Reel API", version="1")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.mount(
    "/media",
    StaticFiles(directory=get_settings().storage.media_root, check_dir=False),
    name="media",
)


@app.exception_handler(PRReelError)
async def handle_domain_error(request: Request, exc: PRReelError) -> JSONResponse:
    status = _error_status(exc)
    headers: Dict[str, str] = {}
    if isinstance(exc, RateLimited):
        decision = RateLimitDecision(False, exc.limit, 0, exc.reset_at.timestamp())
        headers = decision.headers()
    if status >= 500:
        logger.error("request_failed path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": exc.message}, headers=headers)


@app.get("/api/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


# Dashboard


@app.post("/api/videos")
async def create_video(payload: CreateVideoPayload, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    owner_id = _require_owner(x_user_id)
    job = get_orchestrator().create_job(owner_id, payload.urls(), origin=JobOrigin.DASHBOARD)
    return _job_view(job)


@app.get("/api/videos")
async def list_videos(x_user_id: Optional[str] = Header(default=None)) -> List[Dict[str, Any]]:
    owner_id = _require_owner(x_user_id)
    return [_job_view(job) for job in get_orchestrator().list_jobs(owner_id)]


@app.get("/api/videos/{job_id}")
async def get_video(job_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    owner_id = _require_owner(x_user_id)
    return _job_view(get_orchestrator().get_job(owner_id, job_id))


@app.delete("/api/videos/{job_id}")
async def delete_video(job_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    owner_id = _require_owner(x_user_id)
    get_orchestrator().delete_job(owner_id, job_id)
    return {"success": True}


@app.post("/api/videos/{job_id}/retry")
async def retry_video(job_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    owner_id = _require_owner(x_user_id)
    job = get_orchestrator().retry_job(owner_id, job_id)
    return {"success": True, "status": job.status.value}


@app.post("/api/videos/{job_id}/recording")
async def upload_recording(
    job_id: str,
    file: Optional[UploadFile] = File(default=None),
    duration_ms: int = Form(default=0),
    x_user_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    owner_id = _require_owner(x_user_id)
    data = b""
    content_type = ""
    if file is not None:
        try:
            data = await file.read()
            content_type = str(file.content_type or "")
        finally:
            await file.close()
    job = get_orchestrator().attach_recording(
        owner_id,
        job_id,
        data=data,
        content_type=content_type,
        duration_ms=duration_ms,
    )
    return {"success": True, "recording": job.screen_recording.model_dump(mode="json")}


@app.get("/api/videos/{job_id}/recording")
async def get_recording(job_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    owner_id = _require_owner(x_user_id)
    job = get_orchestrator().get_job(owner_id, job_id)
    if job.screen_recording is None:
        raise HTTPException(status_code=404, detail="Recording not found")
    return job.screen_recording.model_dump(mode="json")


@app.delete("/api/videos/{job_id}/recording")
async def delete_recording(job_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    owner_id = _require_owner(x_user_id)
    if not get_orchestrator().remove_recording(owner_id, job_id):
        raise HTTPException(status_code=404, detail="Recording not found")
    return {"success": True}


# Render callback


@app.post("/api/webhook/render-complete")
async def render_complete(request: Request, authorization: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    secret = str(get_settings().render.webhook_secret or "").strip()
    supplied = str(authorization or "")
    if not secret or not hmac.compare_digest(supplied.encode("utf-8"), f"Bearer {secret}".encode("utf-8")):
        raise HTTPException(status_code=401, detail="Unauthorized")

    body = await _json_body(request)
    if not any(str(body.get(key) or "").strip() for key in ("jobId", "videoId", "video_id")):
        raise HTTPException(status_code=400, detail="Video ID is required")
    try:
        completion = RenderCompletion.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_message(exc)) from exc

    get_orchestrator().complete_render(completion)
    return {"success": True}


# Public API (API-key authenticated)


@app.post("/api/v1/videos", status_code=202)
async def create_video_v1(
    request: Request,
    response: Response,
    authorization: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    credential = get_api_key_service().authenticate(authorization)
    decision = get_rate_limiter().hit(credential.id)

    body = await _json_body(request)
    try:
        payload = PublicCreateVideoPayload.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_message(exc)) from exc

    orchestrator = get_orchestrator()
    job = orchestrator.create_job(
        credential.owner_id,
        payload.pr_urls,
        origin=JobOrigin.API,
        result_webhook_url=payload.webhook_url,
    )
    response.headers.update(decision.headers())
    return {
        "job_id": job.id,
        "video_id": job.id,
        "status": job.status.value,
        "share_url": orchestrator.share_url(job),
        "status_url": orchestrator.status_url(job),
    }


@app.get("/api/v1/videos/{job_id}")
async def get_video_v1(job_id: str, authorization: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    credential = get_api_key_service().authenticate(authorization)
    orchestrator = get_orchestrator()
    job = orchestrator.get_job(credential.owner_id, job_id)
    return {
        "video_id": job.id,
        "status": job.status.value,
        "share_url": orchestrator.share_url(job),
        "video_url": job.video_url,
        "error": job.error_message,
        "created_at": job.created_at.isoformat(),
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
    }


# API keys


@app.get("/api/api-keys")
async def list_api_keys(x_user_id: Optional[str] = Header(default=None)) -> List[Dict[str, Any]]:
    owner_id = _require_owner(x_user_id)
    return [_credential_view(item) for item in get_api_key_service().list_keys(owner_id)]


@app.post("/api/api-keys", status_code=201)
async def create_api_key(request: Request, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    owner_id = _require_owner(x_user_id)
    body = await _json_body(request)
    try:
        payload = CreateApiKeyPayload.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_message(exc)) from exc

    issued = get_api_key_service().issue(owner_id, payload.name)
    view = _credential_view(issued.credential)
    view["key"] = issued.key
    return view


@app.delete("/api/api-keys/{key_id}")
async def revoke_api_key(key_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    owner_id = _require_owner(x_user_id)
    if not get_api_key_service().revoke(owner_id, key_id):
        raise HTTPException(status_code=404, detail="API key not found or already revoked")
    return {"success": True}


# Share


@app.get("/api/share/{share_id}")
async def get_shared_video(share_id: str) -> Dict[str, Any]:
    return _share_view(get_orchestrator().view_shared(share_id))
