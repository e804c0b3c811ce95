import json
import os
from typing import Callable, Dict, Any, Mapping, Optional, Literal, TypeVar

from pydantic import BaseModel, Field, ValidationError

T = TypeVar("T")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(Exception):
	"""Raised when a required setting is missing or malformed."""
	def __init__(self, message: str, code: str = "MISSING", *, setting: Optional[str] = None) -> None:
		super().__init__(message)
		self.code = code
		self.setting = setting


def _flag(value: str) -> bool:
	v = value.strip().lower()
	if v in _TRUE:
		return True
	if v in _FALSE:
		return False
	raise ValueError(f"not a boolean flag: {value!r}")


def _env(name: str, default: str, parse: Callable[[str], T]) -> T:
	# Import-time defaults must not crash; Config.load() reports bad values by name
	try:
		return parse(os.getenv(name, default))
	except ValueError:
		return parse(default)


class Config:
	"""Configuration for the pull request review agent."""

	# OpenAI-compatible completion endpoint
	OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
	OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1")
	OPENAI_TEMPERATURE = _env("OPENAI_TEMPERATURE", "0.2", float)
	OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip('/')

	# GitHub
	GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/')
	GITHUB_TOKEN = os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
	HTTP_TIMEOUT_S = _env("HTTP_TIMEOUT_S", "60", int)

	# Diff retrieval
	DIFF_STRATEGY = os.getenv("DIFF_STRATEGY", "api")
	SKIP_DRAFTS = _env("SKIP_DRAFTS", "1", _flag)
	LOCAL_DIFF_SPLIT_FILES = _env("LOCAL_DIFF_SPLIT_FILES", "0", _flag)
	GIT_REMOTE = os.getenv("GIT_REMOTE", "origin")

	# Payload budgets (tuned for a ~128k context model, characters not tokens)
	REVIEW_MAX_FILES = _env("REVIEW_MAX_FILES", "15", int)
	REVIEW_MAX_PATCH_CHARS = _env("REVIEW_MAX_PATCH_CHARS", "5000", int)
	REVIEW_MAX_TOTAL_CHARS = _env("REVIEW_MAX_TOTAL_CHARS", "12000", int)

	# PR comment
	MAX_GH_COMMENT_CHARS = _env("MAX_GH_COMMENT_CHARS", "65000", int)

	REQUIRED = ("OPENAI_API_KEY", "GITHUB_TOKEN", "GITHUB_REPOSITORY", "GITHUB_EVENT_PATH")

	# ReviewSettings field -> env var, used to name the culprit of a validation error
	FIELD_ENV = {
		"openai_temperature": "OPENAI_TEMPERATURE",
		"max_files": "REVIEW_MAX_FILES",
		"max_patch_chars_per_file": "REVIEW_MAX_PATCH_CHARS",
		"max_total_chars": "REVIEW_MAX_TOTAL_CHARS",
		"http_timeout_s": "HTTP_TIMEOUT_S",
		"max_comment_chars": "MAX_GH_COMMENT_CHARS",
	}

	@classmethod
	def get_openai_config(cls) -> Dict[str, Any]:
		"""Get completion endpoint configuration."""
		return {
			"api_key": cls.OPENAI_API_KEY,
			"model": cls.OPENAI_MODEL,
			"temperature": cls.OPENAI_TEMPERATURE,
			"base_url": cls.OPENAI_BASE_URL,
			"timeout_s": cls.HTTP_TIMEOUT_S,
		}

	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub configuration for the REST client."""
		return {
			"api_url": cls.GITHUB_API_URL,
			"token": cls.GITHUB_TOKEN,
			"timeout_s": cls.HTTP_TIMEOUT_S
		}

	@classmethod
	def get_limits_config(cls) -> Dict[str, int]:
		"""Get payload truncation limits.

		Returns:
			Mapping with max files, per-file patch chars, and total chars.
		"""
		return {
			"max_files": cls.REVIEW_MAX_FILES,
			"max_patch_chars_per_file": cls.REVIEW_MAX_PATCH_CHARS,
			"max_total_chars": cls.REVIEW_MAX_TOTAL_CHARS,
		}

	@classmethod
	def load(cls, environ: Optional[Mapping[str, str]] = None, *, require_github_token: bool = True) -> "ReviewSettings":
		"""Read and validate every setting once, before any network activity.

		Args:
			environ: Mapping to read from (defaults to os.environ)
			require_github_token: False only for dry runs that never call GitHub

		Raises:
			ConfigError: naming the first missing or malformed setting
		"""
		env = os.environ if environ is None else environ

		def get(name: str, default: str = "") -> str:
			return (env.get(name) or default).strip()

		github_token = get("GITHUB_TOKEN") or get("GITHUB_PAT")
		values = {
			"OPENAI_API_KEY": get("OPENAI_API_KEY"),
			"GITHUB_TOKEN": github_token,
			"GITHUB_REPOSITORY": get("GITHUB_REPOSITORY"),
			"GITHUB_EVENT_PATH": get("GITHUB_EVENT_PATH"),
		}
		for name in cls.REQUIRED:
			if name == "GITHUB_TOKEN" and not require_github_token:
				continue
			if not values[name]:
				raise ConfigError(f"Missing required env: {name}", code="MISSING", setting=name)

		repository = values["GITHUB_REPOSITORY"]
		owner, _, repo = repository.partition("/")
		if not owner or not repo or "/" in repo:
			raise ConfigError(
				f"GITHUB_REPOSITORY must look like 'owner/repo', got {repository!r}",
				code="INVALID",
				setting="GITHUB_REPOSITORY",
			)

		event_path = values["GITHUB_EVENT_PATH"]
		if not os.path.isfile(event_path):
			raise ConfigError(f"GITHUB_EVENT_PATH does not exist: {event_path}", code="INVALID", setting="GITHUB_EVENT_PATH")

		strategy = get("DIFF_STRATEGY", cls.DIFF_STRATEGY).lower()
		if strategy not in ("api", "local"):
			raise ConfigError(f"DIFF_STRATEGY must be 'api' or 'local', got {strategy!r}", code="INVALID", setting="DIFF_STRATEGY")

		def parse(name: str, parser: Callable[[str], T], default: Any) -> T:
			raw = get(name, str(default))
			try:
				return parser(raw)
			except ValueError as e:
				raise ConfigError(f"{name} has an invalid value {raw!r}: {e}", code="INVALID", setting=name) from e

		try:
			return ReviewSettings(
				openai_api_key=values["OPENAI_API_KEY"],
				openai_model=get("OPENAI_MODEL", cls.OPENAI_MODEL),
				openai_temperature=parse("OPENAI_TEMPERATURE", float, cls.OPENAI_TEMPERATURE),
				openai_base_url=get("OPENAI_BASE_URL", cls.OPENAI_BASE_URL).rstrip("/"),
				github_token=github_token or None,
				github_api_url=get("GITHUB_API_URL", cls.GITHUB_API_URL).rstrip("/"),
				owner=owner,
				repo=repo,
				event_path=event_path,
				diff_strategy=strategy,
				skip_drafts=parse("SKIP_DRAFTS", _flag, int(cls.SKIP_DRAFTS)),
				local_diff_split_files=parse("LOCAL_DIFF_SPLIT_FILES", _flag, int(cls.LOCAL_DIFF_SPLIT_FILES)),
				git_remote=get("GIT_REMOTE", cls.GIT_REMOTE),
				max_files=parse("REVIEW_MAX_FILES", int, cls.REVIEW_MAX_FILES),
				max_patch_chars_per_file=parse("REVIEW_MAX_PATCH_CHARS", int, cls.REVIEW_MAX_PATCH_CHARS),
				max_total_chars=parse("REVIEW_MAX_TOTAL_CHARS", int, cls.REVIEW_MAX_TOTAL_CHARS),
				http_timeout_s=parse("HTTP_TIMEOUT_S", int, cls.HTTP_TIMEOUT_S),
				max_comment_chars=parse("MAX_GH_COMMENT_CHARS", int, cls.MAX_GH_COMMENT_CHARS),
			)
		except ValidationError as e:
			error = e.errors()[0]
			field = str(error["loc"][0]) if error.get("loc") else ""
			name = cls.FIELD_ENV.get(field, field)
			raise ConfigError(f"{name} is invalid: {error.get('msg', e)}", code="INVALID", setting=name or None) from e


class ReviewSettings(BaseModel):
	"""Validated settings for a single review run."""

	openai_api_key: str
	openai_model: str
	openai_temperature: float = Field(0.2, ge=0.0, le=2.0)
	openai_base_url: str
	github_token: Optional[str] = None
	github_api_url: str
	owner: str
	repo: str
	event_path: str
	diff_strategy: Literal["api", "local"] = "api"
	skip_drafts: bool = True
	local_diff_split_files: bool = False
	git_remote: str = "origin"
	max_files: int = Field(15, gt=0)
	max_patch_chars_per_file: int = Field(5000, gt=0)
	max_total_chars: int = Field(12000, gt=0)
	http_timeout_s: int = Field(60, gt=0)
	max_comment_chars: int = Field(65000, gt=0)

	model_config = {"frozen": True}

	@property
	def repository(self) -> str:
		return f"{self.owner}/{self.repo}"

	def read_event(self) -> Dict[str, Any]:
		"""Load the GitHub event document.

		Raises:
			ConfigError: If the file is not valid JSON
		"""
		try:
			with open(self.event_path, "r", encoding="utf-8") as f:
				return json.load(f)
		except json.JSONDecodeError as e:
			raise ConfigError(f"GITHUB_EVENT_PATH is not valid JSON: {e}", code="INVALID", setting="GITHUB_EVENT_PATH") from e
