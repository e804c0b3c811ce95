#!/usr/bin/env python3
"""PR comment publishing.

Posts the rendered review as a new issue comment on the pull request. The
call is made once; failures propagate to the caller unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from configs.config import Config
from utils.github_client import GithubClient
from utils.pr_models import PullRequestRef


logger = logging.getLogger(__name__)

TRUNCATED_FOOTER = "\n\n---\n_Comment truncated to fit GitHub limits. See the workflow logs for the full review._"


class PRCommenter:
    def __init__(self, client: GithubClient, owner: str, repo: str, *, max_chars: int = Config.MAX_GH_COMMENT_CHARS):
        self.client = client
        self.owner = owner
        self.repo = repo
        self.max_chars = max_chars

    def _apply_truncation(self, body: str) -> str:
        if len(body) <= self.max_chars:
            return body
        logger.warning(f"Comment body is {len(body)} chars, truncating to {self.max_chars}")
        keep = self.max_chars - len(TRUNCATED_FOOTER)
        if keep <= 0:
            return body[: self.max_chars]
        return body[:keep] + TRUNCATED_FOOTER

    def post_comment(self, pr: PullRequestRef, body: str) -> Dict[str, Any]:
        """Create the review comment on the PR.

        Returns the created comment as returned by GitHub.
        """
        created = self.client.create_issue_comment(self.owner, self.repo, pr.number, self._apply_truncation(body))
        logger.info(f"Comment posted: {created.get('html_url', '')}")
        return created
