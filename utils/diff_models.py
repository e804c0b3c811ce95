#!/usr/bin/env python3
"""Pydantic models for diff data structures."""

from typing import Optional, List, Literal
from pydantic import BaseModel, Field

FileStatus = Literal[
    "added",
    "modified",
    "removed",
    "renamed",
    "copied",
    "changed",
    "unchanged",
]


class ChangedFile(BaseModel):
    filename: str
    status: FileStatus = "modified"
    patch: Optional[str] = None

    model_config = {"extra": "ignore", "frozen": True}

    @property
    def has_patch(self) -> bool:
        return bool(self.patch)


class DiffResult(BaseModel):
    """Files collected for one PR, or the reason the review is skipped."""

    files: List[ChangedFile] = Field(default_factory=list)
    strategy: str = "api"
    skip_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None


class TruncationLimits(BaseModel):
    max_files: int = Field(15, gt=0)
    max_patch_chars_per_file: int = Field(5000, gt=0)
    max_total_chars: int = Field(12000, gt=0)

    model_config = {"frozen": True}


class TruncationReport(BaseModel):
    files_limited: bool = False
    patch_truncated_count: int = 0
    total_truncated: bool = False
    limits: TruncationLimits
    files_with_patch_count: int = 0
    selected_count: int = 0

    @property
    def truncated(self) -> bool:
        return self.files_limited or self.patch_truncated_count > 0 or self.total_truncated


class ReviewPayload(BaseModel):
    text: str
    report: TruncationReport

    model_config = {"frozen": True}
