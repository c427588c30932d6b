from typing import Annotated

from fastapi import Depends

from bandsheets.auth import get_current_user, get_optional_user, get_user_repository
from bandsheets.config import settings
from bandsheets.database import get_db
from bandsheets.event_store.service import EventStoreService
from bandsheets.imports.processor import ImportProcessor
from bandsheets.imports.service import ImportExportService
from bandsheets.setlists.repository import SetlistRepository
from bandsheets.setlists.service import SetlistService
from bandsheets.sheets.repository import SheetRepository
from bandsheets.sheets.service import SheetService
from bandsheets.users.repository import UserRepository
from bandsheets.users.schemas import Principal
from bandsheets.users.service import UserService

UserRepoDep = Annotated[UserRepository, Depends(get_user_repository)]
CurrentUser = Annotated[Principal, Depends(get_current_user)]
OptionalUser = Annotated[Principal | None, Depends(get_optional_user)]


def get_event_store() -> EventStoreService:
    return EventStoreService(get_db())


def get_user_service(users: UserRepoDep) -> UserService:
    return UserService(users)


def get_sheet_service(users: UserRepoDep) -> SheetService:
    return SheetService(
        get_event_store(),
        SheetRepository(get_db()),
        users,
        default_public=settings.sheet_default_public,
    )


SheetServiceDep = Annotated[SheetService, Depends(get_sheet_service)]


def get_setlist_service(sheets: SheetServiceDep) -> SetlistService:
    return SetlistService(
        get_event_store(),
        SetlistRepository(get_db()),
        sheets,
        default_public=settings.setlist_default_public,
    )


def get_import_processor(sheets: SheetServiceDep) -> ImportProcessor:
    return ImportProcessor(sheets, default_public=settings.import_default_public)


def get_import_export_service(
    sheets: SheetServiceDep,
    processor: Annotated[ImportProcessor, Depends(get_import_processor)],
) -> ImportExportService:
    return ImportExportService(sheets, processor)


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
SetlistServiceDep = Annotated[SetlistService, Depends(get_setlist_service)]
ImportExportServiceDep = Annotated[ImportExportService, Depends(get_import_export_service)]
