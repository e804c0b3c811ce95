#!/usr/bin/env python3
"""Bounded review payload assembly.

Turns the changed files of a PR into one text blob for the model prompt,
enforcing a file-count cap, a per-file patch cap and a total cap, and records
every cut in a TruncationReport. Pure: same input, same output.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from configs.config import Config
from utils.diff_models import ChangedFile, ReviewPayload, TruncationLimits, TruncationReport

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n... (truncated)"
FILE_SEPARATOR = "\n---\n"


def truncate(text: Optional[str], max_chars: int) -> str:
    """Keep the first `max_chars` characters and append the marker when cut."""
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def truncate_to_budget(text: str, max_chars: int) -> str:
    """Cut `text` so the result, marker included, is at most `max_chars` long."""
    if len(text) <= max_chars:
        return text
    keep = max_chars - len(TRUNCATION_MARKER)
    if keep <= 0:
        return text[:max_chars]
    return text[:keep] + TRUNCATION_MARKER


def render_file_block(changed: ChangedFile, patch: str) -> str:
    return f"FILE: {changed.filename}\nSTATUS: {changed.status}\nPATCH:\n{patch}\n"


def omitted_files_note(max_files: int, total_with_patch: int) -> str:
    return (
        f"\n\n... (only the first {max_files} files with a patch were included; "
        f"total with patch: {total_with_patch})"
    )


class PayloadAssembler:
    def __init__(self, limits: Optional[TruncationLimits] = None) -> None:
        self.limits = limits or TruncationLimits(**Config.get_limits_config())

    def assemble(self, files: Iterable[ChangedFile]) -> Optional[ReviewPayload]:
        """Build the review payload, or None when no file carries a patch."""
        limits = self.limits
        with_patch: List[ChangedFile] = [f for f in files if f.has_patch]
        selected = with_patch[: limits.max_files]

        if not selected:
            logger.info("No text patches found to review.")
            return None

        report = TruncationReport(
            files_limited=len(with_patch) > limits.max_files,
            limits=limits,
            files_with_patch_count=len(with_patch),
            selected_count=len(selected),
        )

        blocks: List[str] = []
        for changed in selected:
            if len(changed.patch) > limits.max_patch_chars_per_file:
                report.patch_truncated_count += 1
            blocks.append(render_file_block(changed, truncate(changed.patch, limits.max_patch_chars_per_file)))

        text = FILE_SEPARATOR.join(blocks).strip()

        if report.files_limited:
            text += omitted_files_note(limits.max_files, len(with_patch))

        if len(text) > limits.max_total_chars:
            report.total_truncated = True
            text = truncate_to_budget(text, limits.max_total_chars)

        if report.truncated:
            logger.info(
                f"Payload truncated: files_limited={report.files_limited} "
                f"patches_truncated={report.patch_truncated_count} total_truncated={report.total_truncated}"
            )
        logger.debug(f"Assembled payload of {len(text)} chars from {report.selected_count} file(s)")
        return ReviewPayload(text=text, report=report)
