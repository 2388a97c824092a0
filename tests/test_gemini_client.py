import json
import unittest
from unittest import mock

import httpx

from aptis_practice.gemini_client import GeminiClient, extract_json_block
from aptis_practice.settings import settings


class ExtractJsonBlockTests(unittest.TestCase):
	def test_plain_json(self) -> None:
		self.assertEqual(extract_json_block('{"score": 3}'), {"score": 3})

	def test_fenced_json(self) -> None:
		text = 'Here you go:\n```json\n{"score": 4, "cefr": "B1.2"}\n```'
		self.assertEqual(extract_json_block(text), {"score": 4, "cefr": "B1.2"})

	def test_garbage_raises(self) -> None:
		with self.assertRaises(ValueError):
			extract_json_block("no json here")
		with self.assertRaises(ValueError):
			extract_json_block("[1, 2, 3]")


class GeminiClientTests(unittest.IsolatedAsyncioTestCase):
	def setUp(self) -> None:
		patcher = mock.patch.object(settings, "gemini_provider", "ai_studio")
		patcher.start()
		self.addCleanup(patcher.stop)
		self.requests = []

	def _client(self, response: httpx.Response) -> GeminiClient:
		def handler(request: httpx.Request) -> httpx.Response:
			self.requests.append(request)
			return response

		return GeminiClient(api_key="test-key", model="gemini-test", transport=httpx.MockTransport(handler))

	async def test_generate_multimodal_sends_schema(self) -> None:
		body = {"candidates": [{"content": {"parts": [{"text": '{"score": 2}'}]}}]}
		client = self._client(httpx.Response(200, json=body))
		schema = {"type": "OBJECT", "properties": {"score": {"type": "NUMBER"}}}
		try:
			text = await client.generate_multimodal(
				[{"text": "hello"}, {"inline_data": {"mime_type": "audio/wav", "data": "AAAA"}}],
				response_schema=schema,
			)
		finally:
			await client.aclose()
		self.assertEqual(text, '{"score": 2}')
		request = self.requests[0]
		self.assertTrue(request.url.path.endswith("/models/gemini-test:generateContent"))
		self.assertEqual(request.url.params["key"], "test-key")
		payload = json.loads(request.content)
		self.assertEqual(payload["generationConfig"]["responseMimeType"], "application/json")
		self.assertEqual(payload["generationConfig"]["responseSchema"], schema)
		self.assertEqual(len(payload["contents"][0]["parts"]), 2)

	async def test_generate_image_uses_predict(self) -> None:
		client = self._client(httpx.Response(200, json={"predictions": [{"bytesBase64Encoded": "iVBOR"}]}))
		try:
			data = await client.generate_image("a park")
		finally:
			await client.aclose()
		self.assertEqual(data, "iVBOR")
		request = self.requests[0]
		self.assertTrue(request.url.path.endswith(":predict"))
		self.assertEqual(json.loads(request.content)["instances"], [{"prompt": "a park"}])

	async def test_http_error_propagates(self) -> None:
		client = self._client(httpx.Response(500, json={"error": "boom"}))
		try:
			with self.assertRaises(httpx.HTTPStatusError):
				await client.generate("hi")
		finally:
			await client.aclose()

	async def test_unexpected_shape_raises(self) -> None:
		client = self._client(httpx.Response(200, json={"candidates": []}))
		try:
			with self.assertRaises(RuntimeError):
				await client.generate("hi")
		finally:
			await client.aclose()

	async def test_vertex_uses_header_auth(self) -> None:
		with mock.patch.object(settings, "gemini_provider", "vertex"):
			client = self._client(httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]}))
		try:
			await client.generate("hi")
		finally:
			await client.aclose()
		request = self.requests[0]
		self.assertEqual(request.headers["x-goog-api-key"], "test-key")
		self.assertNotIn("key", request.url.params)
		self.assertIn("aiplatform.googleapis.com", request.url.host)

	def test_missing_key_raises(self) -> None:
		with mock.patch.object(settings, "gemini_api_key", None):
			with self.assertRaises(ValueError):
				GeminiClient()


if __name__ == "__main__":
	unittest.main()
