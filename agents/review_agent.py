#!/usr/bin/env python3
"""Pull request review agent.

Reads the pull request from the GitHub Actions event, collects its diff,
asks a hosted model for a review and posts the answer as a PR comment.
"""

import logging
import os
import sys
from typing import Callable, Mapping, Optional, Sequence

from dotenv import load_dotenv

from clients.openai_client import OpenAIClient, CompletionError
from configs.config import Config, ConfigError, ReviewSettings
from utils.diff_fetcher import DiffFetcher, DiffFetchError, STRATEGY_API, run_git
from utils.diff_models import TruncationLimits
from utils.github_client import GithubClient, GithubApiError
from utils.markdown_renderer import render_review_comment
from utils.payload_assembler import PayloadAssembler
from utils.pr_commenter import PRCommenter
from utils.pr_models import PullRequestRef

# Set up logging
logger = logging.getLogger(__name__)

OUTCOME_POSTED = "posted"
OUTCOME_DRY_RUN = "dry_run"
OUTCOME_NOTHING = "nothing_to_review"

EXPECTED_ERRORS = (ConfigError, DiffFetchError, CompletionError, GithubApiError)


class ReviewAgent:
	"""Runs one review: diff → payload → completion → comment."""

	def __init__(
		self,
		settings: ReviewSettings,
		*,
		github_client: Optional[GithubClient] = None,
		completion_client: Optional[OpenAIClient] = None,
		dry_run: bool = False,
		git: Callable[[Sequence[str]], str] = run_git,
	):
		"""Initialize the review agent.

		Args:
			settings: Validated settings from Config.load()
			github_client: Optional GithubClient. Created lazily when needed.
			completion_client: Optional OpenAIClient. Created lazily when needed.
			dry_run: Print the comment instead of posting it
			git: Runs a git command for the local strategy
		"""
		self.settings = settings
		self.dry_run = dry_run
		self._git = git
		self._github_client = github_client
		self._completion_client = completion_client
		self.last_comment: Optional[str] = None

	@property
	def github_client(self) -> GithubClient:
		if self._github_client is None:
			s = self.settings
			self._github_client = GithubClient(s.github_token, timeout_s=s.http_timeout_s, api_url=s.github_api_url)
		return self._github_client

	@property
	def completion_client(self) -> OpenAIClient:
		if self._completion_client is None:
			s = self.settings
			self._completion_client = OpenAIClient(
				s.openai_api_key,
				model=s.openai_model,
				temperature=s.openai_temperature,
				base_url=s.openai_base_url,
				timeout_s=s.http_timeout_s,
			)
		return self._completion_client

	def _diff_fetcher(self) -> DiffFetcher:
		s = self.settings
		return DiffFetcher(
			strategy=s.diff_strategy,
			owner=s.owner,
			repo=s.repo,
			github_client=self.github_client if s.diff_strategy == STRATEGY_API else None,
			skip_drafts=s.skip_drafts,
			remote=s.git_remote,
			split_local_files=s.local_diff_split_files,
			git=self._git,
		)

	def run(self) -> str:
		"""Run the review and return the outcome.

		Returns:
			OUTCOME_POSTED, OUTCOME_DRY_RUN, OUTCOME_NOTHING, or the skip
			reason reported by the diff fetcher

		Raises:
			ConfigError, DiffFetchError, CompletionError, GithubApiError
		"""
		s = self.settings
		pr = PullRequestRef.from_event(s.read_event())
		if pr is not None:
			logger.info(f"Reviewing {s.repository}#{pr.number}: {pr.title[:60]}")

		result = self._diff_fetcher().fetch(pr)
		if result.skipped:
			logger.info(f"No diff found to review ({result.skip_reason}).")
			return result.skip_reason

		limits = TruncationLimits(
			max_files=s.max_files,
			max_patch_chars_per_file=s.max_patch_chars_per_file,
			max_total_chars=s.max_total_chars,
		)
		payload = PayloadAssembler(limits).assemble(result.files)
		if payload is None:
			logger.info("No diff found to review.")
			return OUTCOME_NOTHING

		review = self.completion_client.review(payload.text)
		comment = render_review_comment(review, payload.report)
		self.last_comment = comment

		if self.dry_run:
			print(comment)
			logger.info("Dry run: comment not posted.")
			return OUTCOME_DRY_RUN

		commenter = PRCommenter(self.github_client, s.owner, s.repo, max_chars=s.max_comment_chars)
		commenter.post_comment(pr, comment)
		logger.info("AI review comment posted successfully.")
		return OUTCOME_POSTED

	def close(self) -> None:
		"""Close the agent and cleanup resources."""
		if self._github_client:
			self._github_client.close()
		if self._completion_client:
			self._completion_client.close()


def execute(
	environ: Optional[Mapping[str, str]] = None,
	*,
	dry_run: bool = False,
	github_client: Optional[GithubClient] = None,
	completion_client: Optional[OpenAIClient] = None,
	git: Callable[[Sequence[str]], str] = run_git,
) -> int:
	"""Validate configuration, run one review and map the result to an exit code.

	Returns:
		0 on success or deliberate skip, 1 on any failure
	"""
	env = os.environ if environ is None else environ
	agent = None
	try:
		strategy = (env.get("DIFF_STRATEGY") or Config.DIFF_STRATEGY).strip().lower()
		settings = Config.load(env, require_github_token=not (dry_run and strategy != STRATEGY_API))
		agent = ReviewAgent(
			settings,
			github_client=github_client,
			completion_client=completion_client,
			dry_run=dry_run,
			git=git,
		)
		outcome = agent.run()
		logger.debug(f"Review outcome: {outcome}")
		return 0
	except EXPECTED_ERRORS as e:
		code = getattr(e, "code", "UNKNOWN")
		logger.error(f"Review failed [{code}]: {e}")
		# Surfaces as an error annotation in GitHub Actions
		print(f"::error::{e}", file=sys.stderr)
		return 1
	except Exception as e:
		logger.exception(f"Unexpected error during review: {e}")
		print(f"::error::{e}", file=sys.stderr)
		return 1
	finally:
		if agent is not None:
			agent.close()


def main():
	"""CLI entry point for the review agent."""
	import argparse

	parser = argparse.ArgumentParser(
		description="PR Review Agent - Review a pull request diff with an LLM and comment the result",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  python -m agents.review_agent
  python -m agents.review_agent --strategy local --dry-run
  python -m agents.review_agent --event-path event.json --verbose
		"""
	)
	parser.add_argument("--strategy", choices=["api", "local"], help="Diff retrieval strategy (overrides DIFF_STRATEGY)")
	parser.add_argument("--event-path", help="Path to the event JSON (overrides GITHUB_EVENT_PATH)")
	parser.add_argument("--dry-run", action="store_true", help="Print the comment instead of posting it")
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

	args = parser.parse_args()

	load_dotenv()

	# Set up logging
	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)

	# Suppress verbose logs from libraries unless in debug mode
	if not args.verbose:
		logging.getLogger("urllib3").setLevel(logging.WARNING)
		logging.getLogger("utils.github_client").setLevel(logging.WARNING)

	env = dict(os.environ)
	if args.strategy:
		env["DIFF_STRATEGY"] = args.strategy
	if args.event_path:
		env["GITHUB_EVENT_PATH"] = args.event_path

	sys.exit(execute(env, dry_run=args.dry_run))


if __name__ == "__main__":
	main()
