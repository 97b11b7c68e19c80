from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fleetflow.core.config import settings
from fleetflow.core.errors import register_exception_handlers
from fleetflow.api.v1.router import api_router
from fleetflow.core.startup import lifespan

VERSION = "1.0.0"

app = FastAPI(
    title="FleetFlow API",
    description="Multi-tenant fleet management: companies, managers, drivers and invitations.",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}
