"""
Practice Sessions API
=====================

Thin HTTP surface over ``StandaloneSession``: every route forwards one user
intent and returns the session snapshot.

Error mapping:
- ValidationFailure -> 400
- DeviceUnavailable -> 503
- unknown session   -> 404
"""

from __future__ import annotations

import base64
import binascii
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..capture import AudioDevice, make_audio_device
from ..errors import DeviceUnavailable, ValidationFailure
from ..evaluation import EvaluationClient
from ..illustration import Illustrator
from ..item_bank import list_items
from ..models import TestPart
from ..session import StandaloneSession, result_view


router = APIRouter(prefix="/practice", tags=["practice"])

# In-memory only; sessions live as long as the process
_sessions: Dict[str, StandaloneSession] = {}


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_evaluator() -> EvaluationClient:
	return EvaluationClient()


def get_illustrator() -> Illustrator:
	return Illustrator()


def get_audio_device() -> AudioDevice:
	return make_audio_device()


@contextmanager
def translate_errors() -> Iterator[None]:
	try:
		yield
	except ValidationFailure as exc:
		raise HTTPException(status_code=400, detail=str(exc))
	except DeviceUnavailable as exc:
		raise HTTPException(status_code=503, detail=str(exc))


def decode_audio(audio_base64: str) -> bytes:
	# Accept bare base64 or a data: URI as produced by FileReader.readAsDataURL
	if audio_base64.startswith("data:") and "," in audio_base64:
		audio_base64 = audio_base64.split(",", 1)[1]
	try:
		return base64.b64decode(audio_base64, validate=True)
	except (binascii.Error, ValueError):
		raise HTTPException(status_code=400, detail="audio_base64 is not valid base64")


def _get_session(session_id: str) -> StandaloneSession:
	session = _sessions.get(session_id)
	if session is None:
		raise HTTPException(status_code=404, detail="session not found")
	return session


# ============================================================================
# REQUEST MODELS
# ============================================================================

class CreateSessionRequest(BaseModel):
	part: TestPart


class ToggleRequest(BaseModel):
	item_id: int


class RangeRequest(BaseModel):
	first: int
	last: int


class AudioChunkRequest(BaseModel):
	audio_base64: str


class AnswerRequest(BaseModel):
	index: int = Field(ge=0)
	text: str


# ============================================================================
# ROUTES
# ============================================================================

@router.get("/items/{part}")
async def items(part: TestPart) -> List[Dict[str, Any]]:
	return [item.model_dump() for item in list_items(part)]


@router.post("/sessions")
async def create_session(
	req: CreateSessionRequest,
	evaluator: EvaluationClient = Depends(get_evaluator),
	illustrator: Illustrator = Depends(get_illustrator),
	device: AudioDevice = Depends(get_audio_device),
):
	session = StandaloneSession(req.part, evaluator=evaluator, illustrator=illustrator, device=device)
	_sessions[session.id] = session
	return session.snapshot()


@router.get("/sessions/{session_id}")
async def get_session(session_id: str):
	return _get_session(session_id).snapshot()


@router.get("/sessions/{session_id}/results")
async def results(session_id: str):
	return [result_view(r) for r in _get_session(session_id).results]


@router.post("/sessions/{session_id}/selection/toggle")
async def toggle(session_id: str, req: ToggleRequest):
	session = _get_session(session_id)
	with translate_errors():
		session.toggle(req.item_id)
	return session.snapshot()


@router.post("/sessions/{session_id}/selection/range")
async def select_range(session_id: str, req: RangeRequest):
	session = _get_session(session_id)
	with translate_errors():
		session.select_range(req.first, req.last)
	return session.snapshot()


@router.post("/sessions/{session_id}/selection/all")
async def select_all(session_id: str):
	session = _get_session(session_id)
	with translate_errors():
		session.select_all()
	return session.snapshot()


@router.post("/sessions/{session_id}/selection/clear")
async def clear_selection(session_id: str):
	session = _get_session(session_id)
	with translate_errors():
		session.clear_selection()
	return session.snapshot()


@router.post("/sessions/{session_id}/start")
async def start(session_id: str):
	session = _get_session(session_id)
	with translate_errors():
		session.start()
	return session.snapshot()


@router.post("/sessions/{session_id}/preparation")
async def begin_preparation(session_id: str):
	session = _get_session(session_id)
	with translate_errors():
		session.begin_preparation()
	return session.snapshot()


@router.post("/sessions/{session_id}/capture/begin")
async def begin_capture(session_id: str):
	session = _get_session(session_id)
	with translate_errors():
		session.begin_capture()
	return session.snapshot()


@router.post("/sessions/{session_id}/capture/audio")
async def push_audio(session_id: str, req: AudioChunkRequest):
	session = _get_session(session_id)
	chunk = decode_audio(req.audio_base64)
	with translate_errors():
		session.push_audio(chunk)
	return {"received": len(chunk)}


@router.post("/sessions/{session_id}/capture/answers")
async def write_answer(session_id: str, req: AnswerRequest):
	session = _get_session(session_id)
	with translate_errors():
		session.write_answer(req.index, req.text)
	return session.snapshot()


@router.post("/sessions/{session_id}/capture/end")
async def end_capture(session_id: str, wait: bool = False):
	"""Stop the capture. With ``wait=true`` the response is sent once evaluation has settled."""
	session = _get_session(session_id)
	session.end_capture()
	if wait:
		await session.settle()
	return session.snapshot()


@router.post("/sessions/{session_id}/retry")
async def retry(session_id: str):
	session = _get_session(session_id)
	with translate_errors():
		session.retry()
	return session.snapshot()


@router.post("/sessions/{session_id}/advance")
async def advance(session_id: str):
	session = _get_session(session_id)
	with translate_errors():
		session.advance()
	return session.snapshot()


@router.post("/sessions/{session_id}/restart")
async def restart(session_id: str):
	session = _get_session(session_id)
	with translate_errors():
		session.restart()
	return session.snapshot()


@router.delete("/sessions/{session_id}")
async def close(session_id: str):
	session = _get_session(session_id)
	session.close()
	_sessions.pop(session_id, None)
	return {"closed": session_id}
