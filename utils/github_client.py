#!/usr/bin/env python3
"""GitHub REST API client used to list PR files and post review comments.

Requests are made once; a non-2xx answer is surfaced with its status code and
response body so the operator can diagnose it from the run log.
"""

import logging
from typing import Dict, List, Any, Optional

import requests

from configs.config import Config

# Set up logging
logger = logging.getLogger(__name__)

# GitHub stops listing PR files after 3000 entries (30 pages of 100)
MAX_FILE_PAGES = 30
PER_PAGE = 100


class GithubApiError(Exception):
    """Raised when GitHub API operations fail."""
    def __init__(self, message: str, code: str = "UPSTREAM", *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.status = status
        self.body = body


class GithubAuthError(GithubApiError):
    """Raised when GitHub API authentication fails."""
    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message, code="UNAUTHORIZED", status=status, body=body)


def _code_for_status(status: int) -> str:
    if status == 404:
        return "NOT_FOUND"
    if status == 429:
        return "RATE_LIMIT"
    return "UPSTREAM"


class GithubClient:
    """Thin client for the GitHub REST endpoints the review needs."""

    def __init__(self, token: Optional[str] = None, timeout_s: Optional[int] = None, api_url: Optional[str] = None):
        """Initialize GitHub client.

        Args:
            token: GitHub token (defaults to Config.GITHUB_TOKEN)
            timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
            api_url: REST base URL (defaults to Config.GITHUB_API_URL)

        Raises:
            GithubAuthError: If no valid token is provided
        """
        github_config = Config.get_github_config()
        self.token = token or github_config["token"]
        self.timeout_s = timeout_s or github_config["timeout_s"]
        self.base_url = (api_url or github_config["api_url"]).rstrip("/")

        if not self.token:
            raise GithubAuthError("GitHub token is required (GITHUB_TOKEN or GITHUB_PAT env var)")

        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28',
            'User-Agent': 'pr-review-agent/1.0'
        })

        logger.info("GitHub client initialized")

    def _raise_for_status(self, response: requests.Response, what: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        body = response.text
        message = f"GitHub API error while {what} ({status}): {body}"
        if status in (401, 403):
            raise GithubAuthError(message, status=status, body=body)
        raise GithubApiError(message, code=_code_for_status(status), status=status, body=body)

    def get_pull_request_files(self, owner: str, repo: str, number: int) -> List[Dict[str, Any]]:
        """Fetch file changes for a pull request, following pagination.

        Files come back in GitHub's listing order. GitHub omits `patch` for
        binary files and for diffs it considers too large.

        Args:
            owner: Repository owner
            repo: Repository name
            number: Pull request number

        Returns:
            List of file change dictionaries

        Raises:
            GithubApiError: If API request fails
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/pulls/{number}/files"

        try:
            logger.info(f"Fetching PR file changes: {owner}/{repo}#{number}")

            all_files: List[Dict[str, Any]] = []
            page = 1

            while True:
                params = {'page': page, 'per_page': PER_PAGE}
                response = self.session.get(url, params=params, timeout=self.timeout_s)
                self._raise_for_status(response, f"listing files for {owner}/{repo}#{number}")

                page_files = response.json()
                if not page_files:  # No more files
                    break

                all_files.extend(page_files)
                if len(page_files) < PER_PAGE:
                    break
                page += 1

                if page > MAX_FILE_PAGES:
                    logger.warning(f"PR #{number} lists more than {MAX_FILE_PAGES * PER_PAGE} files, stopping")
                    break

            logger.debug(f"Retrieved {len(all_files)} file changes for PR #{number}")
            return all_files

        except requests.Timeout as e:
            raise GithubApiError(f"Timeout listing files for {owner}/{repo}#{number}: {e}", code="TIMEOUT") from e
        except requests.RequestException as e:
            raise GithubApiError(f"Failed to fetch file changes for PR {owner}/{repo}#{number}: {e}", code="NETWORK") from e

    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> Dict[str, Any]:
        """Create a comment on an issue or pull request.

        Raises:
            GithubApiError: If API request fails
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/issues/{number}/comments"

        try:
            logger.info(f"Posting comment on {owner}/{repo}#{number} ({len(body)} chars)")
            response = self.session.post(url, json={"body": body}, timeout=self.timeout_s)
            self._raise_for_status(response, f"commenting on {owner}/{repo}#{number}")
            return response.json()

        except requests.Timeout as e:
            raise GithubApiError(f"Timeout commenting on {owner}/{repo}#{number}: {e}", code="TIMEOUT") from e
        except requests.RequestException as e:
            raise GithubApiError(f"Failed to comment on {owner}/{repo}#{number}: {e}", code="NETWORK") from e

    def close(self) -> None:
        """Close the GitHub client session."""
        if self.session:
            self.session.close()
            logger.debug("GitHub client session closed")
