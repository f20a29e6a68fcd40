import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from parkops.core.config import settings
from parkops.core.errors import ParkOpsError
from parkops.api.v1.api import api_router
from parkops.db.session import get_store

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger("parkops")


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = get_store()
    if settings.SEED_DEMO_DATA:
        from parkops.seed import run as run_seed
        with store.session() as db:
            run_seed(db)
    log.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)
    yield
    store.dispose()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# CORS: use CORS_ORIGINS from env in production; default to localhost for dev
_default_origins = [
    "http://127.0.0.1:3000", "http://localhost:3000",
    "http://127.0.0.1:8080", "http://localhost:8080",
]
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ParkOpsError)
async def park_ops_error(request: Request, exc: ParkOpsError):
    if exc.status_code == 409:
        log.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok"}
