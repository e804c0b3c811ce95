#!/usr/bin/env python3
from __future__ import annotations

from typing import Dict, List, Tuple

SYSTEM_PROMPT = "You are an experienced code reviewer."

REVIEW_TEMPLATE = """You are a senior code reviewer.

Rules:
- Be objective
- Organize the review in bullet points
- Point out bugs, edge cases, security, performance and readability issues
- When possible, suggest corrected code
- If there are no relevant problems, say the change looks OK

Pull request diff (may be truncated):

{{ diff_text }}"""


def _render_template(template: str, mapping: Dict[str, str]) -> str:
	text = template
	for key, value in mapping.items():
		text = text.replace(f"{{{{ {key} }}}}", value)
	return text


def build_review_messages(diff_text: str) -> Tuple[List[Dict[str, str]], Dict[str, int]]:
	"""Build the system/user message pair for one review request.

	Returns the messages and meta info for logging.
	"""
	if not diff_text:
		raise ValueError("No diff text available for prompt")
	prompt = _render_template(REVIEW_TEMPLATE, {"diff_text": diff_text}).strip()
	messages = [
		{"role": "system", "content": SYSTEM_PROMPT},
		{"role": "user", "content": prompt},
	]
	meta = {
		"diff_len": len(diff_text),
		"prompt_len": len(prompt),
	}
	return messages, meta
