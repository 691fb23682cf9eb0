from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from pydantic import BaseModel, Field

from anna.core.errors import NotFoundError, ValidationError
from anna.core.memory import MemoryStore, build_store
from config.settings import get_settings


settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="[%(asctime)s] %(levelname)s - %(message)s",
)
logger = logging.getLogger("anna")

app = FastAPI(title="ANNA Memory Service", version="1.0.0")

# CORS: open during development, otherwise restricted to FRONTEND_ORIGIN
if settings.app_env.lower() in {"dev", "development", "local"} or settings.frontend_origin == "*":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@lru_cache(maxsize=1)
def get_store() -> MemoryStore:
    return build_store(get_settings())


class SessionStartRequest(BaseModel):
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    owner_hint: Optional[str] = Field(default=None, alias="ownerHint")


class UpsertRequest(BaseModel):
    memory_id: Optional[str] = Field(default=None, alias="memoryId")
    # Entries are validated by the store so that a bad entry is a 400, not a 422.
    patch: Optional[List[Any]] = None


class ResetRequest(BaseModel):
    memory_id: Optional[str] = Field(default=None, alias="memoryId")
    session_id: Optional[str] = Field(default=None, alias="sessionId")


@app.exception_handler(ValidationError)
async def _validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def _bad_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Rejected malformed request: %s", exc.errors())
    return JSONResponse(status_code=400, content={"error": "invalid request body"})


@app.exception_handler(Exception)
async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Request %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}


router = APIRouter()


@router.post("/session/start")
def session_start(req: SessionStartRequest, store: MemoryStore = Depends(get_store)) -> Dict[str, Any]:
    result = store.start(req.session_id, req.owner_hint)
    logger.info(
        "Session start: session_id=%s memory_id=%s version=%s items=%s",
        result.session_id,
        result.memory_id,
        result.memory_version,
        len(result.items),
    )
    return result.to_payload()


@router.get("/memory")
def memory_get(
    memory_id: Optional[str] = Query(default=None, alias="memoryId"),
    store: MemoryStore = Depends(get_store),
) -> Dict[str, Any]:
    return store.get(memory_id).to_payload()


@router.post("/memory/upsert")
def memory_upsert(req: UpsertRequest, store: MemoryStore = Depends(get_store)) -> Dict[str, Any]:
    record = store.upsert(req.memory_id, req.patch)
    return record.to_payload()


@router.post("/memory/reset")
def memory_reset(req: ResetRequest, store: MemoryStore = Depends(get_store)) -> Dict[str, Any]:
    if req.memory_id:
        store.reset(req.memory_id)
    elif req.session_id:
        store.reset_session(req.session_id)
    else:
        raise ValidationError("memoryId or sessionId missing")
    return {"ok": True}


# Older clients call the bare paths, newer ones go through /api.
app.include_router(router)
app.include_router(router, prefix="/api")


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
