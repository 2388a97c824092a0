from __future__ import annotations

import asyncio
import logging
import re
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .gemini_client import GeminiClient
from .models import PracticeItem
from .settings import settings


logger = logging.getLogger(__name__)

PLACEHOLDER_URL = "https://placehold.co/600x400?text=Image+unavailable"


class Illustration(BaseModel):
	model_config = ConfigDict(frozen=True)

	url: str
	caption: str
	placeholder: bool = False


def illustration_prompts(item: PracticeItem, count: int) -> List[str]:
	"""Scene descriptions for an item's pictures.

	Comparison topics ("A busy city street / A quiet village road") are split into
	one scene per picture on ``/``, ``&`` or ``or``.
	"""
	subject = item.image_descriptor or item.topic
	if count <= 1:
		return [subject][:count]
	scenes = [s.strip() for s in re.split(r"\s*[/&]\s*|\s+or\s+", subject) if s.strip()]
	while len(scenes) < count:
		scenes.append(subject)
	return scenes[:count]


class Illustrator:
	def __init__(self, client_factory: Callable[[], GeminiClient] = GeminiClient, *, enabled: Optional[bool] = None) -> None:
		self._client_factory = client_factory
		self.enabled = settings.illustrations_enabled if enabled is None else enabled

	async def illustrate(self, item: PracticeItem, count: int) -> Tuple[Illustration, ...]:
		prompts = illustration_prompts(item, count)
		if not prompts:
			return ()
		if not self.enabled:
			return tuple(Illustration(url=PLACEHOLDER_URL, caption=p, placeholder=True) for p in prompts)
		try:
			client = self._client_factory()
		except Exception as exc:
			logger.warning("Illustrations unavailable for %s item %s: %s", item.part.value, item.id, exc)
			return tuple(Illustration(url=PLACEHOLDER_URL, caption=p, placeholder=True) for p in prompts)
		try:
			images = await asyncio.gather(*(self._render(client, p) for p in prompts))
		finally:
			await client.aclose()
		return tuple(images)

	async def _render(self, client: GeminiClient, scene: str) -> Illustration:
		prompt = f"A realistic, well-lit photograph of {scene}. No text or captions in the image."
		try:
			data = await client.generate_image(prompt)
		except Exception as exc:
			logger.warning("Image generation failed for %r: %s", scene, exc)
			return Illustration(url=PLACEHOLDER_URL, caption=scene, placeholder=True)
		return Illustration(url=f"data:image/png;base64,{data}", caption=scene)
