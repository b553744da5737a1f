"""FastAPI trigger endpoint for content refresh runs."""

from __future__ import annotations

from datetime import datetime, timezone
import hmac
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import FastAPI, Header, HTTPException

from core import RefreshResponse
from webapp import runtime


logger = logging.getLogger(__name__)

app = FastAPI(title="Content Refresh API")


def _bearer_token(authorization: Optional[str]) -> str:
    text = str(authorization or "").strip()
    if text[:7].lower() != "bearer ":
        return ""
    return text[7:].strip()


def is_authorized(authorization: Optional[str]) -> bool:
    """Constant-time match against the service role key or the worker token."""
    token = _bearer_token(authorization)
    if not token:
        return False
    matched = False
    for expected in runtime.get_auth_tokens():
        # evaluate every token so timing does not reveal which one matched
        if hmac.compare_digest(token.encode("utf-8"), str(expected).encode("utf-8")):
            matched = True
    return matched


def _reject(message: str = "Unauthorized") -> Dict[str, Any]:
    return RefreshResponse(
        success=False,
        message=message,
        request_id=f"refresh_{uuid4().hex[:8]}",
        error=message,
    ).model_dump(mode="json", exclude_none=True)


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat(timespec="seconds")}


@app.post("/refresh_content")
async def refresh_content(authorization: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    """
    Start a refresh run in the background.

    Always answers HTTP 200; the body's ``success`` says whether the run was started.
    """
    if not is_authorized(authorization):
        logger.warning("Rejected refresh_content trigger: bad or missing bearer token")
        return _reject()
    try:
        response = runtime.get_service().trigger()
    except Exception as exc:
        logger.exception(f"refresh_content could not start: {exc}")
        response = RefreshResponse(
            success=False,
            message="Content refresh could not be started",
            request_id=f"refresh_{uuid4().hex[:8]}",
            error=str(exc),
        )
    return response.model_dump(mode="json", exclude_none=True)


@app.get("/freshness")
async def freshness(authorization: Optional[str] = Header(default=None)) -> List[Dict[str, Any]]:
    """Per-source fetch health, worst first."""
    if not is_authorized(authorization):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return await runtime.get_service().freshness()


@app.get("/refresh_content/{request_id}")
def get_refresh_run(request_id: str, authorization: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    if not is_authorized(authorization):
        raise HTTPException(status_code=401, detail="Unauthorized")
    run = runtime.get_service().get_run(request_id)
    if run is None:
        raise HTTPException(status_code=404, detail="run not found")
    return run.model_dump(mode="json")
