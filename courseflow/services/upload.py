import asyncio
import logging
import threading
from typing import Optional

from fastapi import HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from courseflow.core.constants import StorageFolderEnum
from courseflow.core.exceptions import StorageUnavailable, UploadCancelled
from courseflow.crud.course import course as crud_course
from courseflow.crud.user import user as crud_user
from courseflow.schemas.upload import UploadResult
from courseflow.schemas.user import UserContext
from courseflow.services.course import course_service
from courseflow.services.storage import StorageRouter, StoredObject, storage_router
from courseflow.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 0.5


class UploadService:

    @staticmethod
    def _require_image(file: UploadFile):
        if not (file.content_type or "").startswith("image/"):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Invalid file type. Please upload an image."
            )

    @staticmethod
    async def _watch_disconnect(request: Request, cancel_event: threading.Event):
        while not cancel_event.is_set():
            if await request.is_disconnected():
                logger.warning(f"Client disconnected during upload to {request.url.path}")
                cancel_event.set()
                return
            await asyncio.sleep(DISCONNECT_POLL_SECONDS)

    async def _store(
        self,
        request: Optional[Request],
        file: UploadFile,
        folder: StorageFolderEnum,
        storage: StorageRouter,
    ) -> StoredObject:
        file.file.seek(0, 2)
        if file.file.tell() == 0:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Uploaded file is empty.")
        file.file.seek(0)

        cancel_event = threading.Event()
        watcher = asyncio.create_task(self._watch_disconnect(request, cancel_event)) if request else None
        try:
            return await run_in_threadpool(
                storage.store,
                folder.value,
                file.filename,
                file.file,
                file.content_type,
                cancel_event,
            )
        except UploadCancelled as e:
            logger.warning(str(e))
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Upload cancelled.")
        except StorageUnavailable as e:
            logger.error(f"Storage unavailable while uploading {file.filename}: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="File storage is currently unavailable."
            )
        finally:
            cancel_event.set()
            if watcher:
                watcher.cancel()

    @staticmethod
    def _result(stored: StoredObject, folder: StorageFolderEnum, file: UploadFile, storage: StorageRouter) -> UploadResult:
        return UploadResult(
            reference=stored.reference,
            url=storage.resolve_url(stored.reference),
            folder=folder.value,
            filename=stored.filename,
            size=stored.size,
            content_type=file.content_type,
            mode=stored.mode,
        )

    def _require_course_owner(self, db: Session, course_id: int, current_user_context: UserContext):
        course = crud_course.get(db, id=course_id)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        permission_helper.require_course_mutation_permission(current_user_context, course)
        return course

    async def upload_material(
        self,
        db: Session,
        file: UploadFile,
        current_user_context: UserContext,
        course_id: Optional[int] = None,
        request: Optional[Request] = None,
        storage: StorageRouter = storage_router,
    ) -> UploadResult:
        # unscoped uploads carry no ownership check
        if course_id is not None:
            self._require_course_owner(db, course_id, current_user_context)

        stored = await self._store(request, file, StorageFolderEnum.MATERIALS, storage)
        logger.info(
            f"User {current_user_context.user.id} uploaded material {stored.reference} "
            f"({stored.size} bytes, {stored.mode})"
        )
        return self._result(stored, StorageFolderEnum.MATERIALS, file, storage)

    async def upload_course_thumbnail(
        self,
        db: Session,
        file: UploadFile,
        current_user_context: UserContext,
        course_id: Optional[int] = None,
        request: Optional[Request] = None,
        storage: StorageRouter = storage_router,
    ) -> UploadResult:
        self._require_image(file)
        if course_id is not None:
            self._require_course_owner(db, course_id, current_user_context)

        stored = await self._store(request, file, StorageFolderEnum.IMAGES, storage)
        if course_id is not None:
            await course_service.set_thumbnail(
                db, course_id, stored.reference, current_user_context, storage=storage
            )
        logger.info(f"User {current_user_context.user.id} uploaded thumbnail {stored.reference}")
        return self._result(stored, StorageFolderEnum.IMAGES, file, storage)

    async def upload_avatar(
        self,
        db: Session,
        file: UploadFile,
        current_user_context: UserContext,
        request: Optional[Request] = None,
        storage: StorageRouter = storage_router,
    ) -> UploadResult:
        self._require_image(file)
        stored = await self._store(request, file, StorageFolderEnum.AVATARS, storage)

        user = crud_user.get(db, id=current_user_context.user.id)
        previous = user.avatar
        crud_user.update(db, db_obj=user, obj_in={"avatar": stored.reference})
        if previous and previous != stored.reference:
            storage.delete(StorageFolderEnum.AVATARS.value, previous)

        logger.info(f"User {user.id} replaced avatar with {stored.reference}")
        return self._result(stored, StorageFolderEnum.AVATARS, file, storage)

    async def upload_assignment_file(
        self,
        db: Session,
        file: UploadFile,
        current_user_context: UserContext,
        request: Optional[Request] = None,
        storage: StorageRouter = storage_router,
    ) -> UploadResult:
        stored = await self._store(request, file, StorageFolderEnum.ASSIGNMENTS, storage)
        logger.info(f"User {current_user_context.user.id} uploaded assignment file {stored.reference}")
        return self._result(stored, StorageFolderEnum.ASSIGNMENTS, file, storage)


upload_service = UploadService()
