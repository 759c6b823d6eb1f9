from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api.v1.api import api_router
from backend.app.core.config import settings
from backend.app.core.logging import setup_logging
from backend.app.middleware.request_id import RequestIDMiddleware

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title="Medical Equipment Back-Office")

# ─── CORS: restrict to configured origins ─────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# ─── Custom middleware (outermost executes first) ─────────────────────────────
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}
