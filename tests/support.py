"""Shared fakes for the test suite."""

from __future__ import annotations

import asyncio
import json
import types
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from aptis_practice.capture import AudioDevice
from aptis_practice.errors import DeviceUnavailable
from aptis_practice.gemini_client import GeminiClient
from aptis_practice.illustration import Illustration
from aptis_practice.models import CapturedArtifact, EvaluationResult, PracticeItem, TestPart
from aptis_practice.rubrics import fallback_results, rubric_for


def gemini_reply(payload: Dict[str, Any]) -> httpx.Response:
	body = {"candidates": [{"content": {"parts": [{"text": json.dumps(payload)}]}}]}
	return httpx.Response(200, json=body)


def request_text(request: httpx.Request) -> str:
	"""All text parts of a generateContent request, joined."""
	body = json.loads(request.content)
	parts = body["contents"][0]["parts"]
	return "\n".join(p["text"] for p in parts if "text" in p)


def client_factory(handler: Callable[[httpx.Request], httpx.Response]) -> Callable[[], GeminiClient]:
	def factory() -> GeminiClient:
		return GeminiClient(api_key="test-key", transport=httpx.MockTransport(handler))

	return factory


def make_items(part: TestPart, count: int, prompts: int = 1) -> List[PracticeItem]:
	return [
		PracticeItem(
			id=i,
			part=part,
			topic=f"Topic {i}",
			prompts=tuple(f"Question {i}.{k}" for k in range(1, prompts + 1)),
		)
		for i in range(1, count + 1)
	]


async def until(predicate: Callable[[], bool], attempts: int = 200) -> None:
	for _ in range(attempts):
		if predicate():
			return
		await asyncio.sleep(0.01)
	raise AssertionError("condition was not met in time")


class FakeEvaluator:
	language = "en"

	def __init__(self, score: float = 3, fail_ids: Sequence[int] = ()) -> None:
		self.score = score
		self.fail_ids = set(fail_ids)
		self.calls: List[Tuple[PracticeItem, Tuple[CapturedArtifact, ...]]] = []
		# When set, evaluations block until the event is set
		self.gate: Optional[asyncio.Event] = None

	async def evaluate(self, item: PracticeItem, artifacts: Sequence[CapturedArtifact]) -> List[EvaluationResult]:
		self.calls.append((item, tuple(artifacts)))
		if self.gate is not None:
			await self.gate.wait()
		rubric = rubric_for(item.part)
		if item.id in self.fail_ids:
			return fallback_results(rubric, self.language)
		labels = rubric.sections or (None,)
		return [EvaluationResult(score=self.score, level="B1", feedback="Well done.", label=label) for label in labels]


class FakeIllustrator:
	def __init__(self) -> None:
		self.calls: List[int] = []

	async def illustrate(self, item: PracticeItem, count: int) -> Tuple[Illustration, ...]:
		self.calls.append(item.id)
		return tuple(Illustration(url="data:image/png;base64,iVBORw0=", caption=f"{item.topic} #{i}") for i in range(count))


class BrokenDevice(AudioDevice):
	def open(self) -> None:
		raise DeviceUnavailable("Permission denied")

	def collect(self, elapsed_seconds: float):
		raise AssertionError("never opened")

	def close(self) -> None:
		pass


class FakeInputStream:
	"""Stands in for ``sounddevice.InputStream``; records the calls it receives."""

	instances: List["FakeInputStream"] = []
	fail_on_start = False

	def __init__(self, *, samplerate, channels, dtype, callback) -> None:
		self.callback = callback
		self.calls: List[str] = []
		FakeInputStream.instances.append(self)

	def start(self) -> None:
		self.calls.append("start")
		if FakeInputStream.fail_on_start:
			raise OSError("Device unavailable")

	def stop(self) -> None:
		self.calls.append("stop")

	def close(self) -> None:
		self.calls.append("close")


def fake_sounddevice(*, fail_on_start: bool = False) -> types.ModuleType:
	FakeInputStream.instances = []
	FakeInputStream.fail_on_start = fail_on_start
	module = types.ModuleType("sounddevice")
	module.InputStream = FakeInputStream
	module.PortAudioError = type("PortAudioError", (Exception,), {})
	return module
