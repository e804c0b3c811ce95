#!/usr/bin/env python3
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from configs.config import Config
from utils.prompt_builder import build_review_messages

logger = logging.getLogger(__name__)

FALLBACK_REVIEW = "Unable to generate a review."


class CompletionError(Exception):
	def __init__(self, message: str, code: str = "UNKNOWN", *, status: Optional[int] = None) -> None:
		super().__init__(message)
		self.code = code
		self.status = status


def _code_for_status(status: int) -> str:
	if status in (401, 403):
		return "UNAUTHORIZED"
	if status == 429:
		return "RATE_LIMIT"
	return "UPSTREAM"


def extract_content(data: Any) -> str:
	"""Pull `choices[0].message.content` out of a chat completion response."""
	try:
		content = data["choices"][0]["message"]["content"]
	except (KeyError, IndexError, TypeError):
		return ""
	return content.strip() if isinstance(content, str) else ""


class OpenAIClient:
	"""Single-shot client for an OpenAI-compatible chat completion endpoint."""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		model: Optional[str] = None,
		temperature: Optional[float] = None,
		base_url: Optional[str] = None,
		timeout_s: Optional[int] = None,
		session: Optional[requests.Session] = None,
	) -> None:
		cfg = Config.get_openai_config()
		self.api_key = api_key or cfg["api_key"]
		self.model = model or cfg["model"]
		self.temperature = float(temperature if temperature is not None else cfg["temperature"])
		self.base_url = (base_url or cfg["base_url"]).rstrip("/")
		self.timeout_s = int(timeout_s if timeout_s is not None else cfg["timeout_s"])
		if not self.api_key:
			raise CompletionError("Missing required env: OPENAI_API_KEY", code="UNAUTHORIZED")
		self._session = session or requests.Session()

	@property
	def endpoint(self) -> str:
		return f"{self.base_url}/chat/completions"

	def _post(self, body: Dict[str, Any]) -> requests.Response:
		headers = {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		}
		try:
			return self._session.post(self.endpoint, headers=headers, json=body, timeout=self.timeout_s)
		except requests.Timeout as e:
			raise CompletionError(f"Completion API timeout after {self.timeout_s}s: {e}", code="TIMEOUT") from e
		except requests.RequestException as e:
			raise CompletionError(f"Completion API network error: {e}", code="NETWORK") from e

	def review(self, diff_text: str) -> str:
		"""Ask the model to review `diff_text` and return its answer.

		Any non-2xx answer aborts with CompletionError; there is no retry.
		"""
		messages, meta = build_review_messages(diff_text)
		body = {
			"model": self.model,
			"temperature": self.temperature,
			"messages": messages,
		}
		logger.info(f"Requesting review from {self.model} (prompt {meta['prompt_len']} chars)")
		response = self._post(body)

		if not 200 <= response.status_code < 300:
			raise CompletionError(
				f"Completion API error ({response.status_code}): {response.text}",
				code=_code_for_status(response.status_code),
				status=response.status_code,
			)

		try:
			data = response.json()
		except ValueError as e:
			raise CompletionError(f"Invalid JSON response from completion API: {e}", code="UPSTREAM", status=response.status_code) from e

		content = extract_content(data)
		if not content:
			logger.warning("Completion response had no text content; using fallback review")
			return FALLBACK_REVIEW
		return content

	def close(self) -> None:
		self._session.close()
