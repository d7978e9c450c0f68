"""Read-only HTTP routes for session snapshots and results."""
from __future__ import annotations

import re
from typing import Dict, List

from fastapi import APIRouter, HTTPException, Request, Response

from api.schemas import ChallengeView, SessionView
from services.coordinator import SessionCoordinator
from services.models import Session
from session_reports import generate_results_pdf


router = APIRouter()


def _coordinator(request: Request) -> SessionCoordinator:
    return request.app.state.coordinator


def _load(coordinator: SessionCoordinator, session_id: str, reconciled: bool = False) -> Session:
    store = coordinator.store
    session = store.get_reconciled(session_id) if reconciled else store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="session not found")
    return session


def _safe_slug(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "-", value).strip("-").lower()


@router.get("/healthz")
def healthz(request: Request) -> Dict[str, object]:
    coordinator = _coordinator(request)
    return {"status": "ok", "sessions": len(coordinator.store), "connections": len(coordinator.router)}


@router.get("/api/sessions", response_model=List[SessionView])
def list_sessions(request: Request) -> List[SessionView]:
    return _coordinator(request).session_views()


@router.get("/api/sessions/{session_id}", response_model=SessionView)
def fetch_session(session_id: str, request: Request) -> SessionView:
    coordinator = _coordinator(request)
    return coordinator.view(_load(coordinator, session_id, reconciled=True))


@router.get("/api/challenges", response_model=List[ChallengeView])
def list_challenges(request: Request) -> List[ChallengeView]:
    table = _coordinator(request).table
    return [
        ChallengeView(
            title=challenge.title,
            description=challenge.description,
            default_variant=challenge.default_variant,
            variants=list(challenge.variants),
        )
        for challenge in table.challenges.values()
    ]


@router.get("/api/sessions/{session_id}/report")
def fetch_results_pdf(session_id: str, request: Request) -> Response:
    coordinator = _coordinator(request)
    session = _load(coordinator, session_id)
    payload = generate_results_pdf(session, coordinator.score(session))
    filename = f"{_safe_slug(session.subject_name) or session.id}-results.pdf"
    headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}
    return Response(content=payload, media_type="application/pdf", headers=headers)


__all__ = ["router"]
