#!/usr/bin/env python3
"""Pydantic models for pull request data structures.

This module defines the pull request reference read from the GitHub Actions
event document and the helpers used to normalize it.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class PullRequestRef(BaseModel):
    """The subset of a pull request the review needs."""

    number: int = Field(..., description="Pull request number")
    title: str = Field("", description="Pull request title")
    base_ref: str = Field("main", description="Base branch name")
    base_sha: Optional[str] = Field(None, description="Base commit SHA")
    head_ref: Optional[str] = Field(None, description="Head branch name")
    head_sha: str = Field("HEAD", description="Head commit SHA")
    draft: bool = Field(False, description="Whether the PR is a draft")

    model_config = {"extra": "ignore", "frozen": True}

    @classmethod
    def from_event(cls, event: Dict[str, Any]) -> Optional["PullRequestRef"]:
        """Build a reference from a GitHub event payload.

        Args:
            event: Parsed JSON of the file at GITHUB_EVENT_PATH

        Returns:
            PullRequestRef, or None when the event carries no pull request
        """
        pr = event.get("pull_request") if isinstance(event, dict) else None
        if not pr:
            return None
        return cls(
            number=pr.get("number", 0),
            title=pr.get("title") or "",
            base_ref=safe_extract(pr, "base", "ref", default="main"),
            base_sha=safe_extract(pr, "base", "sha"),
            head_ref=safe_extract(pr, "head", "ref"),
            head_sha=safe_extract(pr, "head", "sha", default="HEAD"),
            draft=bool(pr.get("draft", False)),
        )


def safe_extract(data: Dict, *keys, default=None):
    """Safely extract nested dictionary values.

    Args:
        data: Dictionary to extract from
        *keys: Sequence of keys to traverse
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default

    Example:
        safe_extract(pr_data, "base", "ref", default="main")
        # Equivalent to pr_data.get("base", {}).get("ref", "main")
    """
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current if current is not None else default
