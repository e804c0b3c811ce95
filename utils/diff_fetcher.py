#!/usr/bin/env python3
"""Diff fetcher with two interchangeable strategies.

Collect the changed files of a pull request either from the GitHub "list PR
files" endpoint or from a local `git diff` against the base branch, and
return them in source order. Raises DiffFetchError with typed codes.
"""

import logging
import re
import subprocess
from typing import Callable, Dict, List, Optional, Sequence

from .diff_models import ChangedFile, DiffResult
from .github_client import GithubClient, GithubApiError
from .pr_models import PullRequestRef

logger = logging.getLogger(__name__)

STRATEGY_API = "api"
STRATEGY_LOCAL = "local"

SKIP_NO_PR = "no_pull_request"
SKIP_DRAFT = "draft"
SKIP_EMPTY_DIFF = "empty_diff"

KNOWN_STATUSES = {"added", "modified", "removed", "renamed", "copied", "changed", "unchanged"}


class DiffFetchError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN", *, cause: Exception | None = None):
        super().__init__(message)
        self.code = code
        self.cause = cause


def run_git(args: Sequence[str]) -> str:
    """Run a git command and return its stdout.

    Raises subprocess.CalledProcessError on a non-zero exit.
    """
    result = subprocess.run(
        ["git", *args],
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


def split_unified_diff(unified_text: str) -> List[ChangedFile]:
    """Split a unified diff into per-file records on 'diff --git' headers."""
    files: List[ChangedFile] = []
    if not unified_text:
        return files

    sections = re.split(r"^diff --git a/(.+) b/(.+)$", unified_text, flags=re.MULTILINE)
    # sections structure: [pre, old1, new1, body1, old2, new2, body2, ...]
    if len(sections) < 4:
        return files
    it = iter(sections[1:])
    for old, new, body in zip(it, it, it):
        old, new = old.strip(), new.strip()
        status = "modified"
        if re.search(r"^new file mode", body, flags=re.MULTILINE):
            status = "added"
        elif re.search(r"^deleted file mode", body, flags=re.MULTILINE):
            status = "removed"
        elif old != new:
            status = "renamed"
        files.append(ChangedFile(filename=new, status=status, patch=body.strip("\n")))
    return files


def _to_changed_file(raw: Dict) -> ChangedFile:
    status = raw.get("status", "modified")
    return ChangedFile(
        filename=raw.get("filename", ""),
        status=status if status in KNOWN_STATUSES else "changed",
        patch=raw.get("patch") or None,
    )


class DiffFetcher:
    """Single entry point for diff retrieval; the strategy is picked per deployment."""

    def __init__(
        self,
        *,
        strategy: str = STRATEGY_API,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        github_client: Optional[GithubClient] = None,
        skip_drafts: bool = True,
        remote: str = "origin",
        split_local_files: bool = False,
        git: Callable[[Sequence[str]], str] = run_git,
    ) -> None:
        if strategy not in (STRATEGY_API, STRATEGY_LOCAL):
            raise DiffFetchError(f"Unknown diff strategy: {strategy}", code="INVALID")
        if strategy == STRATEGY_API and (github_client is None or not owner or not repo):
            raise DiffFetchError("API strategy needs a GitHub client and owner/repo", code="INVALID")
        self.strategy = strategy
        self.owner = owner
        self.repo = repo
        self.github_client = github_client
        self.skip_drafts = skip_drafts
        self.remote = remote
        self.split_local_files = split_local_files
        self._git = git

    def fetch(self, pr: Optional[PullRequestRef]) -> DiffResult:
        if pr is None:
            logger.info("No pull request context. Skipping.")
            return DiffResult(strategy=self.strategy, skip_reason=SKIP_NO_PR)

        if pr.draft and self.skip_drafts:
            logger.info(f"PR #{pr.number} is a draft. Skipping review.")
            return DiffResult(strategy=self.strategy, skip_reason=SKIP_DRAFT)

        if self.strategy == STRATEGY_API:
            files = self._fetch_from_api(pr)
        else:
            files = self._fetch_from_git(pr)

        if not files:
            logger.info(f"No textual changes found for PR #{pr.number}.")
            return DiffResult(strategy=self.strategy, skip_reason=SKIP_EMPTY_DIFF)

        logger.info(f"Collected {len(files)} changed file(s) with patches via {self.strategy} strategy")
        return DiffResult(files=files, strategy=self.strategy)

    def _fetch_from_api(self, pr: PullRequestRef) -> List[ChangedFile]:
        try:
            files_json = self.github_client.get_pull_request_files(self.owner, self.repo, pr.number)
        except GithubApiError as e:
            raise DiffFetchError(f"Failed to list PR files: {e}", code=e.code, cause=e) from e

        files = [_to_changed_file(f) for f in files_json]
        with_patch = [f for f in files if f.has_patch]
        skipped = len(files) - len(with_patch)
        if skipped:
            logger.debug(f"Dropped {skipped} file(s) without a textual patch (binary or too large)")
        return with_patch

    def _fetch_from_git(self, pr: PullRequestRef) -> List[ChangedFile]:
        base = f"{self.remote}/{pr.base_ref}"
        try:
            self._git(["fetch", "--no-tags", "--depth=1", self.remote, pr.base_ref])
        except subprocess.CalledProcessError as e:
            # Diffing may still work if the ref is already present locally
            logger.warning(f"git fetch {self.remote} {pr.base_ref} failed: {(e.stderr or '').strip()}")

        # Three-dot needs a merge base; a shallow fetch may not have one, so the
        # fallback compares the base tip directly with the checked-out revision
        attempts = [
            ("head", [f"{base}...{pr.head_sha}"]),
            ("checkout", [base, "HEAD"]),
        ]
        diff_text: Optional[str] = None
        used_range = ""
        last_error: Optional[subprocess.CalledProcessError] = None
        for name, revs in attempts:
            rev_range = " ".join(revs)
            try:
                diff_text = self._git(["diff", *revs])
                used_range = rev_range
                logger.info(f"Local diff computed with '{name}' attempt: git diff {rev_range}")
                break
            except subprocess.CalledProcessError as e:
                last_error = e
                logger.warning(f"git diff {rev_range} failed: {(e.stderr or '').strip()}")

        if diff_text is None:
            stderr = (last_error.stderr or "").strip() if last_error else ""
            raise DiffFetchError(f"git diff failed for {base}: {stderr}", code="GIT", cause=last_error)

        if not diff_text.strip():
            return []
        if self.split_local_files:
            return split_unified_diff(diff_text)
        return [ChangedFile(filename=used_range, status="modified", patch=diff_text)]
