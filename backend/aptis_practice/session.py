"""
Practice Session
================

State machine for one practice session:

	selecting -> practicing -> evaluating -> reviewing -> (practicing | finished)

``StandaloneSession`` evaluates each item as soon as it is captured.
``EmbeddedSession`` is one part of a Full Test: it has a fixed item, skips
selection, and hands its answers to the full test's answer store instead of
evaluating them.

All intents are synchronous and raise ``ValidationFailure`` (leaving the state
untouched) when they are not legal in the current state. Evaluation and
illustration run as event-loop tasks; ``settle()`` waits for them.
"""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .capture import AudioDevice, CaptureController, make_audio_device
from .errors import ValidationFailure
from .evaluation import EvaluationClient
from .illustration import Illustration, Illustrator
from .item_bank import list_items
from .models import (
	AudioArtifact,
	CapturedArtifact,
	CapturePhase,
	EvaluationResult,
	Modality,
	PracticeItem,
	SessionResult,
	SessionState,
	TestPart,
	TextArtifact,
)
from .parts import PartProfile, profile_for
from .rubrics import fallback_results, rubric_for

if TYPE_CHECKING:
	from .full_test import AnswerStore


logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
	part: TestPart
	state: SessionState = SessionState.SELECTING
	selection: Set[int] = field(default_factory=set)
	queue: Tuple[PracticeItem, ...] = ()
	item_index: int = 0
	prompt_index: int = 0
	attempt: int = 1
	artifacts: List[CapturedArtifact] = field(default_factory=list)
	# Result awaiting the user's retry/advance decision
	review: Optional[SessionResult] = None
	results: List[SessionResult] = field(default_factory=list)
	illustrations: Dict[int, Tuple[Illustration, ...]] = field(default_factory=dict)


# ============================================================================
# VIEWS
# ============================================================================

def artifact_view(artifact: CapturedArtifact) -> Dict[str, Any]:
	if isinstance(artifact, AudioArtifact):
		return {
			"kind": "audio",
			"mime_type": artifact.mime_type,
			"duration_seconds": artifact.duration_seconds,
			"playback_ref": artifact.playback_ref,
		}
	return {"kind": "text", "answers": list(artifact.answers)}


def result_view(result: SessionResult) -> Dict[str, Any]:
	return {
		"item_id": result.item.id,
		"topic": result.item.topic,
		"prompts": list(result.item.prompts),
		"attempt": result.attempt,
		"score": result.score,
		"evaluations": [e.model_dump() for e in result.evaluations],
		"artifacts": [artifact_view(a) for a in result.artifacts],
	}


# ============================================================================
# SESSION
# ============================================================================

class PracticeSession:
	def __init__(
		self,
		part: TestPart,
		*,
		items: Optional[Iterable[PracticeItem]] = None,
		device: Optional[AudioDevice] = None,
		illustrator: Optional[Illustrator] = None,
		profile: Optional[PartProfile] = None,
		interval: Optional[float] = None,
		rng: Optional[random.Random] = None,
	) -> None:
		self.id: str = uuid.uuid4().hex
		self.profile = profile or profile_for(part)
		self.bank: Tuple[PracticeItem, ...] = tuple(items) if items is not None else list_items(part)
		self.ctx = SessionContext(part=part)
		if device is None and self.profile.modality == Modality.AUDIO:
			device = make_audio_device()
		self.capture = CaptureController(device, interval=interval)
		self.illustrator = illustrator
		self._rng = rng or random.Random()
		self._tasks: Set[asyncio.Task] = set()
		self._illustration_tasks: Dict[int, asyncio.Task] = {}
		self.closed = False

	# ------------------------------------------------------------------
	# read-only views
	# ------------------------------------------------------------------

	@property
	def part(self) -> TestPart:
		return self.ctx.part

	@property
	def state(self) -> SessionState:
		return self.ctx.state

	@property
	def results(self) -> Tuple[SessionResult, ...]:
		return tuple(self.ctx.results)

	@property
	def current_item(self) -> Optional[PracticeItem]:
		if self.ctx.item_index < len(self.ctx.queue):
			return self.ctx.queue[self.ctx.item_index]
		return None

	@property
	def current_prompt(self) -> Optional[str]:
		item = self.current_item
		if item is None or self.ctx.prompt_index >= len(item.prompts):
			return None
		return item.prompts[self.ctx.prompt_index]

	def snapshot(self) -> Dict[str, Any]:
		item = self.current_item
		review = self.ctx.review
		illustrations = self.ctx.illustrations.get(item.id, ()) if item is not None else ()
		return {
			"session_id": self.id,
			"part": self.part.value,
			"state": self.state.value,
			"phase": self.capture.phase.value,
			"remaining": self.capture.remaining,
			"selection": sorted(self.ctx.selection),
			"queue": [i.id for i in self.ctx.queue],
			"item_index": self.ctx.item_index,
			"item": item.model_dump() if item is not None else None,
			"prompt_index": self.ctx.prompt_index,
			"prompt": self.current_prompt,
			"attempt": self.ctx.attempt,
			"answers": list(self.capture.answers),
			"illustrations": [i.model_dump() for i in illustrations],
			"review": result_view(review) if review is not None else None,
			"results": [result_view(r) for r in self.ctx.results],
		}

	# ------------------------------------------------------------------
	# helpers
	# ------------------------------------------------------------------

	def _require(self, *states: SessionState) -> None:
		if self.closed:
			raise ValidationFailure("Session is closed")
		if self.ctx.state not in states:
			allowed = ", ".join(s.value for s in states)
			raise ValidationFailure(f"Not allowed while {self.ctx.state.value} (expected {allowed})")

	def _track(self, task: asyncio.Task) -> asyncio.Task:
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
		return task

	def _bank_ids(self) -> Set[int]:
		return {i.id for i in self.bank}

	def _reset_item(self) -> None:
		self.ctx.prompt_index = 0
		self.ctx.artifacts = []
		self.ctx.review = None

	def _enter_item(self) -> None:
		item = self.current_item
		if item is None or not self.profile.illustrations or self.illustrator is None:
			return
		if item.id in self.ctx.illustrations or item.id in self._illustration_tasks:
			return
		task = asyncio.get_running_loop().create_task(self._illustrate(item))
		self._illustration_tasks[item.id] = task
		self._track(task)

	async def _illustrate(self, item: PracticeItem) -> None:
		try:
			self.ctx.illustrations[item.id] = await self.illustrator.illustrate(item, self.profile.illustrations)
		finally:
			self._illustration_tasks.pop(item.id, None)

	async def settle(self) -> None:
		"""Wait until every pending evaluation and illustration task has finished."""
		while self._tasks:
			await asyncio.gather(*list(self._tasks), return_exceptions=True)

	# ------------------------------------------------------------------
	# selecting
	# ------------------------------------------------------------------

	def toggle(self, item_id: int) -> None:
		self._require(SessionState.SELECTING)
		if item_id not in self._bank_ids():
			raise ValidationFailure(f"Unknown item {item_id}")
		if item_id in self.ctx.selection:
			self.ctx.selection.discard(item_id)
		else:
			self.ctx.selection.add(item_id)

	def select_range(self, first: int, last: int) -> None:
		"""Add every item whose id lies in ``first..last`` (inclusive)."""
		self._require(SessionState.SELECTING)
		ids = {i for i in self._bank_ids() if first <= i <= last}
		if first > last or not ids:
			raise ValidationFailure(f"No items in range {first}-{last}")
		self.ctx.selection |= ids

	def select_all(self) -> None:
		self._require(SessionState.SELECTING)
		self.ctx.selection = self._bank_ids()

	def clear_selection(self) -> None:
		self._require(SessionState.SELECTING)
		self.ctx.selection = set()

	def start(self) -> None:
		self._require(SessionState.SELECTING)
		if not self.ctx.selection:
			raise ValidationFailure("Select at least one item to start")
		queue = [item for item in self.bank if item.id in self.ctx.selection]
		self._rng.shuffle(queue)
		self.ctx.queue = tuple(queue)
		self.ctx.item_index = 0
		self.ctx.attempt = 1
		self.ctx.results = []
		self._reset_item()
		self.ctx.state = SessionState.PRACTICING
		logger.info("Session %s started %s with %d item(s)", self.id, self.part.value, len(queue))
		self._enter_item()

	# ------------------------------------------------------------------
	# practicing
	# ------------------------------------------------------------------

	def _capture_seconds(self) -> Optional[int]:
		return self.profile.response_seconds

	def _initial_answers(self) -> Sequence[str]:
		return ()

	def begin_preparation(self) -> None:
		self._require(SessionState.PRACTICING)
		if self.profile.preparation_seconds is None:
			raise ValidationFailure(f"{self.part.value} has no preparation time")
		if self.ctx.artifacts:
			raise ValidationFailure("Preparation is only available before the first answer")
		self.capture.begin_preparation(self.profile.preparation_seconds, on_expire=self._preparation_done)

	def _preparation_done(self) -> None:
		# Recording waits for an explicit begin_capture
		logger.info("Session %s: preparation time is up", self.id)

	def begin_capture(self) -> asyncio.Future:
		self._require(SessionState.PRACTICING)
		item = self.current_item
		prompt_index = self.ctx.prompt_index

		def on_complete(artifact: CapturedArtifact) -> None:
			self._on_captured(item, prompt_index, artifact)

		return self.capture.begin_capture(
			self._capture_seconds(),
			self.profile.modality,
			slots=self.profile.prompts_per_capture(item),
			initial=self._initial_answers(),
			on_complete=on_complete,
		)

	def write_answer(self, index: int, text: str) -> None:
		self._require(SessionState.PRACTICING)
		self.capture.write(index, text)

	def push_audio(self, chunk: bytes) -> None:
		self._require(SessionState.PRACTICING)
		self.capture.push(chunk)

	def end_capture(self) -> Optional[CapturedArtifact]:
		"""Stop the running capture. Calling it again (or after expiry) is a no-op."""
		if self.closed:
			return None
		return self.capture.end_capture()

	def _on_captured(self, item: PracticeItem, prompt_index: int, artifact: CapturedArtifact) -> None:
		self.ctx.artifacts.append(artifact)
		if prompt_index < self.profile.captures_for(item) - 1:
			self.ctx.prompt_index = prompt_index + 1
			return
		self._on_item_captured(item, tuple(self.ctx.artifacts))

	def _on_item_captured(self, item: PracticeItem, artifacts: Tuple[CapturedArtifact, ...]) -> None:
		raise NotImplementedError

	# ------------------------------------------------------------------
	# reviewing / finished
	# ------------------------------------------------------------------

	def retry(self) -> None:
		"""Discard the pending review and answer the same item again."""
		self._require(SessionState.REVIEWING)
		self._reset_item()
		self.ctx.attempt += 1
		self.ctx.state = SessionState.PRACTICING
		self._enter_item()

	def advance(self) -> None:
		"""Commit the pending review to the results and move to the next item."""
		self._require(SessionState.REVIEWING)
		self.ctx.results.append(self.ctx.review)
		self._reset_item()
		self.ctx.attempt = 1
		self.ctx.item_index += 1
		if self.ctx.item_index >= len(self.ctx.queue):
			self.ctx.state = SessionState.FINISHED
			logger.info("Session %s finished with %d result(s)", self.id, len(self.ctx.results))
			return
		self.ctx.state = SessionState.PRACTICING
		self._enter_item()

	def restart(self) -> None:
		"""Back to item selection with an empty results list. The selection is kept."""
		self._require(SessionState.FINISHED)
		self.ctx.queue = ()
		self.ctx.item_index = 0
		self.ctx.attempt = 1
		self.ctx.results = []
		self._reset_item()
		self.ctx.state = SessionState.SELECTING

	def close(self) -> None:
		"""Tear down: abandon any capture, release the device, stop illustration work.

		In-flight evaluations are left to finish and still land in ``results``.
		"""
		if self.closed:
			return
		self.closed = True
		self.capture.close()
		for task in list(self._illustration_tasks.values()):
			task.cancel()
		logger.info("Session %s closed", self.id)


class StandaloneSession(PracticeSession):
	def __init__(self, part: TestPart, *, evaluator: Optional[EvaluationClient] = None, **kwargs: Any) -> None:
		super().__init__(part, **kwargs)
		self.evaluator = evaluator or EvaluationClient()

	def _on_item_captured(self, item: PracticeItem, artifacts: Tuple[CapturedArtifact, ...]) -> None:
		self.ctx.state = SessionState.EVALUATING
		task = asyncio.get_running_loop().create_task(
			self._evaluate(item, artifacts, self.ctx.item_index, self.ctx.attempt)
		)
		self._track(task)

	async def _evaluate(
		self,
		item: PracticeItem,
		artifacts: Tuple[CapturedArtifact, ...],
		item_index: int,
		attempt: int,
	) -> None:
		try:
			evaluations: Sequence[EvaluationResult] = await self.evaluator.evaluate(item, artifacts)
		except Exception:
			logger.exception("Evaluator raised for %s item %s", item.part.value, item.id)
			evaluations = fallback_results(rubric_for(item.part), getattr(self.evaluator, "language", "vi"))
		result = SessionResult(item=item, artifacts=artifacts, evaluations=tuple(evaluations), attempt=attempt)
		current = (
			not self.closed
			and self.ctx.state == SessionState.EVALUATING
			and self.ctx.item_index == item_index
			and self.ctx.attempt == attempt
		)
		if current:
			self.ctx.review = result
			self.ctx.state = SessionState.REVIEWING
		else:
			logger.info("Session %s: late evaluation for item %s recorded directly", self.id, item.id)
			self.ctx.results.append(result)


class EmbeddedSession(PracticeSession):
	"""One part of a Full Test.

	Starts in ``practicing`` on a fixed item. Answers are saved to the store as
	drafts after every capture; writing parts have no per-part countdown and run
	under the full test's global timer only.
	"""

	def __init__(self, item: PracticeItem, store: "AnswerStore", **kwargs: Any) -> None:
		super().__init__(item.part, items=[item], **kwargs)
		self.store = store
		self.ctx.selection = {item.id}
		self.ctx.queue = (item,)
		self.ctx.state = SessionState.PRACTICING

	def _capture_seconds(self) -> Optional[int]:
		if self.profile.modality == Modality.TEXT:
			return None
		return self.profile.response_seconds

	def _initial_answers(self) -> Sequence[str]:
		for artifact in self.store.record(self.part).artifacts:
			if isinstance(artifact, TextArtifact):
				return artifact.answers
		return ()

	def _on_captured(self, item: PracticeItem, prompt_index: int, artifact: CapturedArtifact) -> None:
		super()._on_captured(item, prompt_index, artifact)
		self.store.save_draft(self.part, self.ctx.artifacts)

	def _on_item_captured(self, item: PracticeItem, artifacts: Tuple[CapturedArtifact, ...]) -> None:
		self.ctx.state = SessionState.FINISHED

	def resume(self) -> None:
		"""Re-open the part. Writing parts resume editing the stored draft straight away."""
		if self.closed or self.ctx.state != SessionState.PRACTICING:
			return
		self._enter_item()
		if self.profile.modality == Modality.TEXT and self.capture.phase == CapturePhase.IDLE:
			self.begin_capture()

	def suspend(self) -> None:
		"""Leave the part without committing it.

		A running recording is ended normally (its artifact is kept); a writing
		draft is saved and editing resumes on the next ``resume``.
		"""
		if self.capture.phase == CapturePhase.PREPARING:
			self.capture.close()
		elif self.capture.phase == CapturePhase.CAPTURING:
			if self.capture.modality == Modality.TEXT:
				self.store.save_draft(self.part, (TextArtifact(answers=self.capture.answers),))
				self.capture.close()
			else:
				self.capture.end_capture()

	def commit(self) -> None:
		"""Lock the part: end any capture, then commit the stored answers."""
		if self.capture.phase == CapturePhase.CAPTURING:
			self.capture.end_capture()
		elif self.capture.phase == CapturePhase.PREPARING:
			self.capture.close()
		self.store.commit(self.part)
		self.ctx.state = SessionState.FINISHED
