from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from .errors import EvaluationFailure
from .gemini_client import GeminiClient, extract_json_block
from .models import CapturedArtifact, EvaluationResult, PracticeItem
from .rubrics import build_parts, fallback_results, parse_response, response_schema, rubric_for
from .settings import settings


logger = logging.getLogger(__name__)


class EvaluationClient:
	"""Scores one submission against the part's rubric.

	A single attempt per call. ``evaluate`` never raises: every failure (missing API
	key, network error, non-JSON output, missing or out-of-scale fields) is logged
	and replaced by the rubric's fallback results, so callers always get something
	to review.
	"""

	def __init__(
		self,
		client_factory: Callable[[], GeminiClient] = GeminiClient,
		*,
		language: Optional[str] = None,
	) -> None:
		self._client_factory = client_factory
		self.language = language or settings.feedback_language

	async def evaluate(self, item: PracticeItem, artifacts: Sequence[CapturedArtifact]) -> List[EvaluationResult]:
		rubric = rubric_for(item.part)
		try:
			client = self._client_factory()
		except Exception as exc:
			logger.warning("Evaluation unavailable for %s item %s: %s", item.part.value, item.id, exc)
			return fallback_results(rubric, self.language)
		try:
			raw = await client.generate_multimodal(
				build_parts(rubric, item, artifacts, self.language),
				response_schema=response_schema(rubric),
			)
			try:
				data = extract_json_block(raw)
			except ValueError as exc:
				raise EvaluationFailure(str(exc)) from exc
			results = parse_response(rubric, data)
			logger.info(
				"Evaluated %s item %s: %s",
				item.part.value,
				item.id,
				", ".join(f"{r.label or 'score'}={r.score:g}" for r in results),
			)
			return results
		except Exception as exc:
			logger.warning("Evaluation failed for %s item %s: %s", item.part.value, item.id, exc)
			return fallback_results(rubric, self.language)
		finally:
			try:
				await client.aclose()
			except Exception as exc:
				logger.warning("Could not close the scoring client: %s", exc)
