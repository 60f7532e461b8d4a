from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, users
from .config import settings
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

setup_logging()

# Create FastAPI app
app = FastAPI(
    title="Sapphire Onboard API",
    description="Confidential user onboarding on Oasis Sapphire with Hoodi subdomains",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["Content-Type", "X-Function-Name"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(users.router, tags=["Users"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Sapphire Onboard API",
        "version": "0.1.0",
        "description": "Confidential user onboarding on Oasis Sapphire with Hoodi subdomains",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sapphire_onboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
