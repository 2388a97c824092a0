from __future__ import annotations
import base64
from enum import Enum
from typing import Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


# Sentinel level attached to synthesized results when scoring failed
SENTINEL_LEVEL = "N/A"


class Section(str, Enum):
	SPEAKING = "speaking"
	WRITING = "writing"


class TestPart(str, Enum):
	SPEAKING_1 = "speaking_1"
	SPEAKING_2 = "speaking_2"
	SPEAKING_3 = "speaking_3"
	SPEAKING_4 = "speaking_4"
	WRITING_1 = "writing_1"
	WRITING_2_3 = "writing_2_3"
	WRITING_4 = "writing_4"

	@property
	def section(self) -> Section:
		return Section.SPEAKING if self.value.startswith("speaking") else Section.WRITING


class Modality(str, Enum):
	AUDIO = "audio"
	TEXT = "text"


class SessionState(str, Enum):
	SELECTING = "selecting"
	PRACTICING = "practicing"
	EVALUATING = "evaluating"
	REVIEWING = "reviewing"
	FINISHED = "finished"


class CapturePhase(str, Enum):
	IDLE = "idle"
	PREPARING = "preparing"
	CAPTURING = "capturing"


class PracticeItem(BaseModel):
	"""One question or topic unit from the item bank."""
	model_config = ConfigDict(frozen=True)

	id: int = Field(gt=0)
	part: TestPart
	topic: str
	prompts: Tuple[str, ...] = Field(min_length=1)
	image_descriptor: Optional[str] = None


class AudioArtifact(BaseModel):
	model_config = ConfigDict(frozen=True)

	kind: Literal["audio"] = "audio"
	data: bytes = b""
	mime_type: str = "audio/wav"
	duration_seconds: float = 0.0

	@property
	def is_empty(self) -> bool:
		return not self.data

	@property
	def playback_ref(self) -> str:
		encoded = base64.b64encode(self.data).decode("ascii")
		return f"data:{self.mime_type};base64,{encoded}"


class TextArtifact(BaseModel):
	model_config = ConfigDict(frozen=True)

	kind: Literal["text"] = "text"
	answers: Tuple[str, ...] = ()

	@property
	def is_empty(self) -> bool:
		return not any(a.strip() for a in self.answers)


CapturedArtifact = Union[AudioArtifact, TextArtifact]


class EvaluationResult(BaseModel):
	model_config = ConfigDict(frozen=True)

	score: float = Field(ge=0)
	level: str
	feedback: str
	# Named criterion feedback (writing parts); empty for speaking
	criteria: Dict[str, str] = Field(default_factory=dict)
	# Sub-part name when one submission is scored as several results (e.g. "part2")
	label: Optional[str] = None
	failed: bool = False


class SessionResult(BaseModel):
	model_config = ConfigDict(frozen=True)

	item: PracticeItem
	artifacts: Tuple[CapturedArtifact, ...] = ()
	evaluations: Tuple[EvaluationResult, ...] = ()
	attempt: int = 1

	@property
	def score(self) -> float:
		return sum(e.score for e in self.evaluations)
