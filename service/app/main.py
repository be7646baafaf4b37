from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import get_settings
from app.errors import AppError
from app.logging_config import api_logger as logger
from app.api.bots import router as bots_router
from app.api.projects import router as projects_router
from app.api.files import router as files_router
from app.api.ai import router as ai_router, limiter
from app.api.github import router as github_router
from app.telegram_bot.manager import get_bot_manager

app = FastAPI(
    title="botforge API",
    description="Telegram bots on LLM completions, plus AI-assisted code projects",
    version="0.1.0"
)

app.state.limiter = limiter


# Lifecycle events
@app.on_event("startup")
async def startup_event():
    # Live connections don't survive restarts; bots stay inactive until toggled
    logger.info("[STARTUP] botforge API ready")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop every live bot on application shutdown."""
    logger.info("[SHUTDOWN] Stopping Telegram bots...")
    await get_bot_manager().deactivate_all()
    logger.info("[SHUTDOWN] Bots stopped")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error mapping
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "errors": exc.errors}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path")),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request", "errors": errors}
    )


app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": "0.1.0",
        "live_bots": len(get_bot_manager().live_bot_ids)
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "botforge API",
        "docs": "/docs"
    }


# Include routers
app.include_router(bots_router)
app.include_router(projects_router)
app.include_router(files_router)
app.include_router(ai_router)
app.include_router(github_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
