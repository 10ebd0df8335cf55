from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from brandscope.config import get_settings
from brandscope.routers import auth, sessions, analyze, exports, notifications

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Brandscope API starting", environment=settings.ENVIRONMENT)
    yield
    logger.info("Brandscope API shutting down")


app = FastAPI(
    title=settings.APP_NAME,
    description="Brand social-media analytics and report exports",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    logger.error("api: unhandled error", path=request.url.path, method=request.method, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include routers
app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(sessions.router, prefix=settings.API_PREFIX)
app.include_router(analyze.router, prefix=settings.API_PREFIX)
app.include_router(exports.router, prefix=settings.API_PREFIX)
app.include_router(notifications.router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "brandscope-api", "version": "1.0.0"}


@app.get("/")
async def root():
    return {
        "message": "Brandscope API",
        "docs": "/docs",
        "health": "/health",
    }
