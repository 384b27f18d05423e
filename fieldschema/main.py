from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fieldschema.api.audit import router as audit_router
from fieldschema.api.fields import router as fields_router
from fieldschema.api.health import router as health_router
from fieldschema.api.root import router as root_router
from fieldschema.core.config import settings
from fieldschema.core.errors import SchemaError
from fieldschema.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    logger.info("Starting field schema service", app_env=settings.APP_ENV)
    yield


app = FastAPI(title="Field Schema Service", lifespan=lifespan)

# CORS middleware for the admin UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchemaError)
async def schema_error_handler(request: Request, exc: SchemaError):
    logger.warning(
        "Schema change rejected",
        code=exc.code,
        message=exc.message,
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


app.include_router(root_router)
app.include_router(health_router)
app.include_router(fields_router)
app.include_router(audit_router)
