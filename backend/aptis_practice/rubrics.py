"""
Scoring Rubrics
===============

One rubric per test part: score scale, named feedback criteria, score-to-CEFR table,
and (for Writing 2&3 and 4) the sub-sections that are scored independently.

The rubric drives everything that touches the scoring payload:
- ``response_schema``: the Gemini JSON schema sent with the request
- ``build_parts``: the multimodal request body (instructions, prompts, answers/audio)
- ``parse_response``: strict validation of the returned payload
- ``fallback_results``: the synthetic zero-score results used on any failure

Exact prompt wording is intentionally short; the examiner persona and scale are what
matter to the scoring service.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from .errors import EvaluationFailure
from .models import (
	SENTINEL_LEVEL,
	AudioArtifact,
	CapturedArtifact,
	EvaluationResult,
	Modality,
	PracticeItem,
	TextArtifact,
	TestPart,
)


# ============================================================================
# RUBRIC TABLES
# ============================================================================

WRITING_PART1_CRITERIA = ("taskCompletion", "grammarAccuracy", "vocabularyAppropriateness", "spellingPunctuation")
WRITING_PART23_CRITERIA = (
	"taskCompletionRelevance",
	"grammarAccuracy",
	"vocabularyRangeAppropriateness",
	"coherenceCohesionOrganization",
	"spellingPunctuation",
)
WRITING_PART4_CRITERIA = (
	"taskCompletionRelevance",
	"grammarAccuracy",
	"vocabularyRangeAppropriateness",
	"coherenceCohesionOrganization",
	"spellingPunctuationStyle",
)

_FALLBACK_MESSAGES: Dict[str, Dict[Modality, str]] = {
	"vi": {
		Modality.AUDIO: "Đã có lỗi xảy ra khi phân tích âm thanh của bạn. Vui lòng thử lại.",
		Modality.TEXT: "Lỗi phân tích.",
	},
	"en": {
		Modality.AUDIO: "Something went wrong while analysing your recording. Please try again.",
		Modality.TEXT: "Analysis failed.",
	},
}

_LANGUAGE_NAMES = {"vi": "VIETNAMESE", "en": "ENGLISH"}


@dataclass(frozen=True)
class Rubric:
	part: TestPart
	modality: Modality
	max_score: int
	guidance: str
	# Writing only: every criterion must be present in the feedback object
	criteria: Tuple[str, ...] = ()
	# Writing only: the level is looked up from the (rounded) score
	levels: Dict[int, str] = field(default_factory=dict)
	# Independently scored sub-parts; the first prompt belongs to sections[0], the rest to sections[1]
	sections: Tuple[str, ...] = ()

	@property
	def is_split(self) -> bool:
		return bool(self.sections)


_RUBRICS: Dict[TestPart, Rubric] = {
	TestPart.SPEAKING_1: Rubric(
		TestPart.SPEAKING_1,
		Modality.AUDIO,
		5,
		"Assess pronunciation, fluency, grammar, vocabulary and task fulfilment of a short personal answer. "
		"Give an integer score from 0 to 5 and a CEFR level such as A2.1, A2.2, B1.1, B1.2 or B2.",
	),
	TestPart.SPEAKING_2: Rubric(
		TestPart.SPEAKING_2,
		Modality.AUDIO,
		5,
		"The student describes a picture and answers two related questions. Assess all three recordings together "
		"and give one integer score from 0 to 5 and one CEFR level such as A2.1, B1.2 or B2.",
	),
	TestPart.SPEAKING_3: Rubric(
		TestPart.SPEAKING_3,
		Modality.AUDIO,
		5,
		"The student compares two pictures and answers follow-up questions. Assess all recordings together "
		"and give one integer score from 0 to 5 and one CEFR level such as A2.1, B1.2 or B2.",
	),
	TestPart.SPEAKING_4: Rubric(
		TestPart.SPEAKING_4,
		Modality.AUDIO,
		6,
		"The student answers three connected questions on an abstract topic in one two-minute turn. "
		"Give a score on a scale of 0 to 6 and a CEFR level from B1.1 to C2.",
	),
	TestPart.WRITING_1: Rubric(
		TestPart.WRITING_1,
		Modality.TEXT,
		3,
		"The student gave five short answers (1-5 words each). Evaluate all five together. "
		"3: complete, clear and correct. 2: 3-4 answers understandable with minor errors. "
		"1: only 1-2 answers correct. 0: no meaningful answer.",
		criteria=WRITING_PART1_CRITERIA,
		levels={3: "Trên A1", 2: "A1.2", 1: "A1.1", 0: "A0"},
	),
	TestPart.WRITING_2_3: Rubric(
		TestPart.WRITING_2_3,
		Modality.TEXT,
		5,
		"Part 2 is a 20-30 word answer; Part 3 is three chat replies of 30-40 words each. Score each part separately. "
		"5 (B1+): fully answers, accurate grammar, good cohesion. 4 (A2.2): main ideas covered, minor errors. "
		"3 (A2.1): understandable with errors. 2 (A1.2): short, unclear. 1 (A1.1): lacks ideas. 0: no answer.",
		criteria=WRITING_PART23_CRITERIA,
		levels={5: "B1+", 4: "A2.2", 3: "A2.1", 2: "A1.2", 1: "A1.1", 0: "A0"},
		sections=("part2", "part3"),
	),
	TestPart.WRITING_4: Rubric(
		TestPart.WRITING_4,
		Modality.TEXT,
		5,
		"An informal email (40-50 words) and a formal email (120-150 words). Score each email separately. "
		"5 (B2+/C1): well structured, correct style. 4 (B2.1): minor errors. 3 (B1.2): some lack of coherence. "
		"2 (A2.2): frequent errors. 1 (A2.1): short, unclear style. 0 (A1 or below): insufficient or irrelevant.",
		criteria=WRITING_PART4_CRITERIA,
		levels={5: "B2+/C1", 4: "B2.1", 3: "B1.2", 2: "A2.2", 1: "A2.1", 0: "A1 or below"},
		sections=("informalEmail", "formalEmail"),
	),
}


def rubric_for(part: TestPart) -> Rubric:
	return _RUBRICS[part]


# ============================================================================
# REQUEST
# ============================================================================

def _result_schema(rubric: Rubric) -> Dict[str, Any]:
	score = {"type": "NUMBER", "description": f"A single numerical score from 0 to {rubric.max_score}."}
	if rubric.modality == Modality.AUDIO:
		return {
			"type": "OBJECT",
			"properties": {
				"feedback": {"type": "STRING"},
				"score": score,
				"cefr": {"type": "STRING"},
			},
			"required": ["feedback", "score", "cefr"],
		}
	return {
		"type": "OBJECT",
		"properties": {
			"score": score,
			"feedback": {
				"type": "OBJECT",
				"properties": {name: {"type": "STRING"} for name in rubric.criteria},
				"required": list(rubric.criteria),
			},
		},
		"required": ["score", "feedback"],
	}


def response_schema(rubric: Rubric) -> Dict[str, Any]:
	if not rubric.is_split:
		return _result_schema(rubric)
	return {
		"type": "OBJECT",
		"properties": {name: _result_schema(rubric) for name in rubric.sections},
		"required": list(rubric.sections),
	}


def _section_of(rubric: Rubric, index: int) -> str:
	if not rubric.is_split:
		return ""
	return rubric.sections[0] if index == 0 else rubric.sections[1]


def _audio_part(artifact: AudioArtifact) -> Dict[str, Any]:
	if artifact.is_empty:
		return {"text": "(no audio was recorded for this answer)"}
	return {"inline_data": {"mime_type": artifact.mime_type, "data": base64.b64encode(artifact.data).decode("ascii")}}


def build_parts(
	rubric: Rubric,
	item: PracticeItem,
	artifacts: Sequence[CapturedArtifact],
	language: str = "vi",
) -> List[Dict[str, Any]]:
	"""Assemble the multimodal request body for one submission.

	Per-prompt speaking parts interleave each question with its recording; a
	whole-item recording (Speaking 4) follows the full question list. Text answers
	are matched to prompts by position.
	"""
	lang = _LANGUAGE_NAMES.get(language, "ENGLISH")
	parts: List[Dict[str, Any]] = [
		{
			"text": (
				f"You are an expert English examiner for the official APTIS test. {rubric.guidance} "
				f"Write all feedback in {lang}. Return STRICT JSON matching the response schema."
			)
		},
		{"text": f"Topic: {item.topic}"},
	]
	audio = [a for a in artifacts if isinstance(a, AudioArtifact)]
	if rubric.modality == Modality.AUDIO:
		if len(audio) == len(item.prompts):
			for i, (prompt, artifact) in enumerate(zip(item.prompts, audio), start=1):
				parts.append({"text": f"Question {i}: {prompt}"})
				parts.append(_audio_part(artifact))
		else:
			questions = "\n".join(f"Question {i}: {p}" for i, p in enumerate(item.prompts, start=1))
			parts.append({"text": questions})
			for artifact in audio:
				parts.append(_audio_part(artifact))
		return parts

	answers: Tuple[str, ...] = ()
	for artifact in artifacts:
		if isinstance(artifact, TextArtifact):
			answers = artifact.answers
			break
	lines: List[str] = []
	for i, prompt in enumerate(item.prompts):
		answer = answers[i] if i < len(answers) else ""
		section = _section_of(rubric, i)
		prefix = f"[{section}] " if section else ""
		lines.append(f"{prefix}Question {i + 1}: {prompt}\nAnswer: {answer.strip() or '(no answer)'}")
	parts.append({"text": "\n\n".join(lines)})
	return parts


# ============================================================================
# RESPONSE
# ============================================================================

def _score(rubric: Rubric, data: Dict[str, Any]) -> float:
	value = data.get("score")
	if isinstance(value, bool) or not isinstance(value, (int, float)):
		raise EvaluationFailure(f"score is not numeric: {value!r}")
	if value < 0 or value > rubric.max_score:
		raise EvaluationFailure(f"score {value} outside 0..{rubric.max_score}")
	return float(value)


def _parse_one(rubric: Rubric, data: Any, label: str | None) -> EvaluationResult:
	if not isinstance(data, dict):
		raise EvaluationFailure(f"expected an object, got {type(data).__name__}")
	score = _score(rubric, data)
	feedback = data.get("feedback")
	if rubric.modality == Modality.AUDIO:
		level = data.get("cefr")
		if not isinstance(level, str) or not level.strip():
			raise EvaluationFailure("missing cefr")
		if not isinstance(feedback, str) or not feedback.strip():
			raise EvaluationFailure("missing feedback")
		return EvaluationResult(score=score, level=level.strip(), feedback=feedback.strip(), label=label)

	if not isinstance(feedback, dict):
		raise EvaluationFailure("feedback must be an object of named criteria")
	criteria: Dict[str, str] = {}
	for name in rubric.criteria:
		text = feedback.get(name)
		if not isinstance(text, str):
			raise EvaluationFailure(f"missing criterion {name}")
		criteria[name] = text.strip()
	summary = "\n".join(f"{name}: {text}" for name, text in criteria.items())
	level = rubric.levels.get(int(round(score)), SENTINEL_LEVEL)
	return EvaluationResult(score=score, level=level, feedback=summary, criteria=criteria, label=label)


def parse_response(rubric: Rubric, data: Dict[str, Any]) -> List[EvaluationResult]:
	"""Validate a scoring payload; raises EvaluationFailure on any missing or malformed field."""
	if not rubric.is_split:
		return [_parse_one(rubric, data, None)]
	return [_parse_one(rubric, data.get(name), name) for name in rubric.sections]


def fallback_message(modality: Modality, language: str = "vi") -> str:
	return _FALLBACK_MESSAGES.get(language, _FALLBACK_MESSAGES["en"])[modality]


def fallback_results(rubric: Rubric, language: str = "vi") -> List[EvaluationResult]:
	message = fallback_message(rubric.modality, language)
	criteria = {name: message for name in rubric.criteria}
	labels: Sequence[str | None] = rubric.sections or (None,)
	return [
		EvaluationResult(score=0, level=SENTINEL_LEVEL, feedback=message, criteria=criteria, label=label, failed=True)
		for label in labels
	]
