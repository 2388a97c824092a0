from __future__ import annotations
import json
import re
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings


def extract_json_block(text: str) -> Dict[str, Any]:
	"""Parse a JSON object out of model output.

	Tries the whole text first, then the outermost ``{...}`` span (models sometimes
	wrap JSON in a markdown fence even when asked not to).

	Raises:
		ValueError: If no JSON object can be recovered.
	"""
	try:
		data = json.loads(text)
	except Exception:
		data = None
	if data is None:
		match = re.search(r"\{[\s\S]*\}", text or "")
		if match:
			try:
				data = json.loads(match.group(0))
			except Exception:
				data = None
	if not isinstance(data, dict):
		raise ValueError("Failed to parse JSON object from Gemini output")
	return data


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		image_model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.image_model = image_model or settings.gemini_image_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			root = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			root = base_url or "https://generativelanguage.googleapis.com/v1beta/models"
			self._auth_in_query = True
		self.base_url = f"{root}/{self.model}:generateContent"
		self.image_url = f"{root}/{self.image_model}:predict"
		self._client = httpx.AsyncClient(timeout=settings.request_timeout_seconds, transport=transport)

	async def generate(self, prompt: str, *, response_schema: Optional[Dict[str, Any]] = None) -> str:
		return await self.generate_multimodal([{"text": prompt}], response_schema=response_schema)

	async def generate_multimodal(
		self,
		parts: List[Dict[str, Any]],
		*,
		role: str = "user",
		response_schema: Optional[Dict[str, Any]] = None,
	) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": role, "parts": parts}]}
		if response_schema is not None:
			payload["generationConfig"] = {
				"responseMimeType": "application/json",
				"responseSchema": response_schema,
			}
		data = await self._post(self.base_url, payload)
		try:
			return data["candidates"][0]["content"]["parts"][0]["text"]
		except (KeyError, IndexError, TypeError):
			raise RuntimeError(f"Unexpected Gemini response: {data}")

	async def generate_image(self, prompt: str, *, aspect_ratio: str = "4:3") -> str:
		"""Render one image and return it as base64-encoded PNG bytes."""
		payload: Dict[str, Any] = {
			"instances": [{"prompt": prompt}],
			"parameters": {"sampleCount": 1, "aspectRatio": aspect_ratio},
		}
		data = await self._post(self.image_url, payload)
		try:
			return data["predictions"][0]["bytesBase64Encoded"]
		except (KeyError, IndexError, TypeError):
			raise RuntimeError(f"Unexpected Imagen response: {data}")

	async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		r = await self._client.post(url, params=params, headers=headers, json=payload)
		r.raise_for_status()
		try:
			return r.json()
		except ValueError:
			raise RuntimeError(f"Unexpected Gemini response: {r.text}")

	async def aclose(self) -> None:
		await self._client.aclose()
