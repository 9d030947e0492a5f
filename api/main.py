import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from configs import access
from configs import repository as config_repository
from configs import router as configs_router
from core import db, settings

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # A broken shared-access file stops startup before the pool is opened.
    app.state.shared_access = access.load_shared_access(settings.app_config_path())
    await db.init_pool()
    try:
        if settings.auto_migrate():
            await config_repository.ensure_schema()
        yield
    finally:
        await db.close_pool()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(configs_router.router, tags=["configs"])


@app.exception_handler(db.StorageError)
async def storage_error_handler(request: Request, exc: db.StorageError) -> JSONResponse:
    logger.exception("storage_error method=%s path=%s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Storage unavailable."})


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/ready")
async def ready() -> JSONResponse:
    if not await db.ping():
        return JSONResponse(status_code=503, content={"status": "not_ready", "reason": "database unreachable"})
    return JSONResponse({"status": "ready"})


@app.get("/")
def root() -> dict:
    return {"message": "shared-config api"}
