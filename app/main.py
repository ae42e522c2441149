import logging
from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from fastapi.openapi.utils import get_openapi
from fastapi.exceptions import RequestValidationError
from app.core.config import settings
from app.core.services import build_services
from app.db.database import init_db, async_engine
from app.api import auth, certificates, events, logs, sheet, stats, sync, verify
from app.core.exceptions import (
    CustomHTTPException,
    SheetDBError,
    validation_exception_handler,
    http_exception_handler,
    sheetdb_exception_handler,
)
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import JSONResponse
from fastapi.requests import Request



logger = logging.getLogger("uvicorn.error")

@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    app.state.services = build_services(settings)
    logger.info(f"{settings.PROJECT_TITLE} started ({settings.ENVIRONMENT})")
    yield
    # Pending sheet write-backs are flushed before the client closes
    await app.state.services.close()
    await async_engine.dispose()

app = FastAPI(
    title=settings.PROJECT_TITLE,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.PROJECT_VERSION,
    lifespan=lifespan
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again later."}
    )

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception Handlers
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(CustomHTTPException, http_exception_handler)
app.add_exception_handler(SheetDBError, sheetdb_exception_handler)

# API Routers
api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(certificates.router, tags=["Certificates"])
api_router.include_router(events.router, tags=["Events"])
api_router.include_router(stats.router, tags=["Stats"])
api_router.include_router(sheet.router, tags=["Sheet"])
api_router.include_router(sync.router, tags=["Sync"])
api_router.include_router(verify.router, tags=["Verification"])
api_router.include_router(logs.router, tags=["Logs"])
app.include_router(api_router)

def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=settings.PROJECT_TITLE,
        version=settings.PROJECT_VERSION,
        description=settings.PROJECT_DESCRIPTION,
        routes=app.routes,
    )

    # Add security scheme without overwriting existing components
    security_scheme = {
        "OAuth2PasswordBearer": {
            "type": "oauth2",
            "flows": {
                "password": {
                    "tokenUrl": "/api/auth/token",
                    "scopes": {
                        "mod": "Read-only dashboard access",
                        "admin": "Certificate management and sync",
                        "super_admin": "Account management"
                    }
                }
            }
        }
    }

    openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {}).update(security_scheme)

    # Everything except public verification requires a token
    for path in openapi_schema["paths"].values():
        for operation in path.values():
            tags = operation.get("tags", [])
            if tags and not any(tag in tags for tag in ["Verification", "Authentication"]):
                operation.setdefault("security", []).append({"OAuth2PasswordBearer": []})

    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

@app.get("/", include_in_schema=False)
async def health_check():
    return {
        "status": "healthy",
        "version": settings.PROJECT_VERSION,
        "docs": "/docs"
    }
