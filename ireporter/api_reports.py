"""
Report API Endpoints
====================

One router per report kind, built by the same factory:

- GET    /{kind}s                 - List (own reports; all for admins)
- GET    /{kind}s/{id}            - Get one
- POST   /{kind}s                 - Create (multipart, files in `media`)
- PUT    /{kind}s/{id}            - Full update (multipart, media replaced)
- POST   /{kind}s/{id}/media      - Add media (appended)
- PATCH  /{kind}s/{id}/location   - Update location
- PATCH  /{kind}s/{id}/comment    - Update description
- PATCH  /{kind}s/{id}/status     - Change status (admin only)
- DELETE /{kind}s/{id}            - Delete draft
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .auth import AuthContext, get_auth_context, require_admin
from .db.models import ReportKind
from .db.session import get_db
from .lifecycle import ReportLifecycleEngine
from .notifications import NotificationDispatcher
from .schemas import CommentUpdate, LocationUpdate, StatusUpdate, success
from .storage import LocalMediaStorage, get_media_storage
from .store import RecordStore

logger = logging.getLogger(__name__)


def get_notification_dispatcher(background_tasks: BackgroundTasks) -> NotificationDispatcher:
    """Status side effects run after the response when no Redis queue is configured"""
    return NotificationDispatcher(background_tasks=background_tasks)


def _respond(status: int, data) -> JSONResponse:
    return JSONResponse(status_code=status, content=success(status, data))


async def _with_uploads(storage: LocalMediaStorage, uploads: Optional[List[UploadFile]], operation):
    """Save uploads, run the engine operation; drop the files again if it fails"""
    files = await storage.save_all(uploads)
    try:
        return await run_in_threadpool(operation, files)
    except Exception:
        storage.discard(files)
        raise


def build_report_router(kind: ReportKind) -> APIRouter:
    kind = ReportKind(kind)
    router = APIRouter(prefix=f"/{kind.value}s", tags=[f"{kind.value}s"])

    def get_lifecycle_engine(
        db: Session = Depends(get_db),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    ) -> ReportLifecycleEngine:
        return ReportLifecycleEngine(kind, RecordStore(db), dispatcher)

    @router.get("")
    def list_reports(
        auth: AuthContext = Depends(get_auth_context),
        engine: ReportLifecycleEngine = Depends(get_lifecycle_engine),
    ):
        return _respond(200, engine.list(auth))

    @router.get("/{report_id}")
    def get_report(
        report_id: int,
        auth: AuthContext = Depends(get_auth_context),
        engine: ReportLifecycleEngine = Depends(get_lifecycle_engine),
    ):
        return _respond(200, engine.get(report_id))

    @router.post("")
    async def create_report(
        title: Optional[str] = Form(None),
        description: Optional[str] = Form(None),
        latitude: Optional[str] = Form(None),
        longitude: Optional[str] = Form(None),
        media: Optional[List[UploadFile]] = File(None),
        auth: AuthContext = Depends(get_auth_context),
        engine: ReportLifecycleEngine = Depends(get_lifecycle_engine),
        storage: LocalMediaStorage = Depends(get_media_storage),
    ):
        result = await _with_uploads(
            storage, media,
            lambda files: engine.create(auth, title, description, latitude, longitude, files),
        )
        return _respond(201, result)

    @router.put("/{report_id}")
    async def update_report(
        report_id: int,
        title: Optional[str] = Form(None),
        description: Optional[str] = Form(None),
        latitude: Optional[str] = Form(None),
        longitude: Optional[str] = Form(None),
        media: Optional[List[UploadFile]] = File(None),
        auth: AuthContext = Depends(get_auth_context),
        engine: ReportLifecycleEngine = Depends(get_lifecycle_engine),
        storage: LocalMediaStorage = Depends(get_media_storage),
    ):
        result = await _with_uploads(
            storage, media,
            lambda files: engine.update(report_id, auth, title, description, latitude, longitude, files),
        )
        return _respond(200, result)

    @router.post("/{report_id}/media")
    async def add_report_media(
        report_id: int,
        media: Optional[List[UploadFile]] = File(None),
        auth: AuthContext = Depends(get_auth_context),
        engine: ReportLifecycleEngine = Depends(get_lifecycle_engine),
        storage: LocalMediaStorage = Depends(get_media_storage),
    ):
        result = await _with_uploads(
            storage, media,
            lambda files: engine.add_media(report_id, auth, files),
        )
        return _respond(200, result)

    @router.patch("/{report_id}/location")
    def update_report_location(
        report_id: int,
        body: LocationUpdate,
        auth: AuthContext = Depends(get_auth_context),
        engine: ReportLifecycleEngine = Depends(get_lifecycle_engine),
    ):
        return _respond(200, engine.update_location(report_id, auth, body.latitude, body.longitude))

    @router.patch("/{report_id}/comment")
    def update_report_comment(
        report_id: int,
        body: CommentUpdate,
        auth: AuthContext = Depends(get_auth_context),
        engine: ReportLifecycleEngine = Depends(get_lifecycle_engine),
    ):
        return _respond(200, engine.update_comment(report_id, auth, body.description))

    @router.patch("/{report_id}/status")
    def update_report_status(
        report_id: int,
        body: StatusUpdate,
        admin: AuthContext = Depends(require_admin),
        engine: ReportLifecycleEngine = Depends(get_lifecycle_engine),
    ):
        logger.info(f"Admin {admin.user_id} sets {kind.value} {report_id} status to {body.status}")
        return _respond(200, engine.transition_status(report_id, body.status))

    @router.delete("/{report_id}")
    def delete_report(
        report_id: int,
        auth: AuthContext = Depends(get_auth_context),
        engine: ReportLifecycleEngine = Depends(get_lifecycle_engine),
    ):
        return _respond(200, engine.delete(report_id, auth))

    return router


red_flags_router = build_report_router(ReportKind.RED_FLAG)
interventions_router = build_report_router(ReportKind.INTERVENTION)
