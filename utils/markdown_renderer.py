#!/usr/bin/env python3
from __future__ import annotations

from typing import List, Optional

from utils.diff_models import TruncationReport

COMMENT_HEADER = "## 🤖 AI Code Review"
DISCLAIMER = "_Note: automated review based on the PR diff (may be truncated)._"


def truncation_notes(report: Optional[TruncationReport]) -> List[str]:
	if report is None:
		return []
	limits = report.limits
	notes: List[str] = []
	if report.files_limited:
		notes.append(
			f"- Only the first **{limits.max_files}** files with a patch were reviewed "
			f"(total with patch: **{report.files_with_patch_count}**)."
		)
	if report.patch_truncated_count > 0:
		notes.append(
			f"- **{report.patch_truncated_count}** patch(es) were truncated to "
			f"**{limits.max_patch_chars_per_file}** characters."
		)
	if report.total_truncated:
		notes.append(f"- The total diff was truncated to **{limits.max_total_chars}** characters.")
	return notes


def render_review_comment(review: str, report: Optional[TruncationReport] = None) -> str:
	"""Render the PR comment: header, review, truncation notice, separator, disclaimer."""
	notes = truncation_notes(report)
	truncation_block = ""
	if notes:
		truncation_block = "\n\n⚠️ **Truncation notice**\n" + "\n".join(notes) + "\n"
	return f"{COMMENT_HEADER}\n\n{review}\n{truncation_block}\n---\n\n{DISCLAIMER}"
