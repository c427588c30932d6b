import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from bandsheets.auth_router import router as auth_router
from bandsheets.config import settings
from bandsheets.database import close_database, get_db, init_database
from bandsheets.exception_handlers import register_exception_handlers
from bandsheets.imports.router import router as import_export_router
from bandsheets.logging_config import setup_logging
from bandsheets.setlists.router import router as setlists_router
from bandsheets.sheets.router import router as sheets_router
from bandsheets.users.repository import create_user_repository

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_database()
    app.state.user_repo = create_user_repository(settings.user_store, get_db())
    logger.info("startup_complete", user_store=settings.user_store, db_path=settings.db_path)
    yield
    await close_database()


app = FastAPI(
    title="Band Sheets",
    description="Song structure sheets, setlists and sheet import/export",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


register_exception_handlers(app)

app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(sheets_router, prefix="/api/sheets", tags=["sheets"])
app.include_router(setlists_router, prefix="/api/setlists", tags=["setlists"])
app.include_router(import_export_router, prefix="/api/import-export", tags=["import-export"])


@app.get("/api/health")
async def health():
    from bandsheets.database import check_health

    await check_health()
    return {"status": "healthy"}
