import subprocess
from unittest.mock import MagicMock

import pytest

from utils.diff_fetcher import (
    SKIP_DRAFT,
    SKIP_EMPTY_DIFF,
    SKIP_NO_PR,
    DiffFetcher,
    DiffFetchError,
    split_unified_diff,
)
from utils.github_client import GithubApiError
from utils.pr_models import PullRequestRef

UNIFIED = (
    "diff --git a/app.py b/app.py\n"
    "index 1..2 100644\n"
    "--- a/app.py\n"
    "+++ b/app.py\n"
    "@@ -1 +1 @@\n"
    "-old\n"
    "+new\n"
    "diff --git a/new.txt b/new.txt\n"
    "new file mode 100644\n"
    "--- /dev/null\n"
    "+++ b/new.txt\n"
    "@@ -0,0 +1 @@\n"
    "+hello\n"
)


def make_pr(**kw):
    data = {"number": 7, "base_ref": "main", "head_sha": "abc123"}
    data.update(kw)
    return PullRequestRef(**data)


def api_fetcher(files=None, **kw):
    client = MagicMock()
    client.get_pull_request_files.return_value = files or []
    return DiffFetcher(strategy="api", owner="acme", repo="shop", github_client=client, **kw), client


class FakeGit:
    def __init__(self, diff_results):
        self.calls = []
        self._diff_results = list(diff_results)

    def __call__(self, args):
        self.calls.append(list(args))
        if args[0] == "fetch":
            return ""
        result = self._diff_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def git_error(stderr="fatal: bad revision"):
    return subprocess.CalledProcessError(128, ["git", "diff"], output="", stderr=stderr)


def test_no_pull_request_is_a_skip():
    fetcher, client = api_fetcher()
    result = fetcher.fetch(None)
    assert result.skip_reason == SKIP_NO_PR
    assert result.files == []
    client.get_pull_request_files.assert_not_called()


def test_draft_is_skipped_by_default():
    fetcher, client = api_fetcher()
    result = fetcher.fetch(make_pr(draft=True))
    assert result.skip_reason == SKIP_DRAFT
    client.get_pull_request_files.assert_not_called()


def test_draft_reviewed_when_skip_disabled():
    fetcher, _ = api_fetcher([{"filename": "a.py", "status": "modified", "patch": "+x"}], skip_drafts=False)
    result = fetcher.fetch(make_pr(draft=True))
    assert not result.skipped
    assert [f.filename for f in result.files] == ["a.py"]


def test_api_strategy_keeps_order_and_drops_files_without_patch():
    files = [
        {"filename": "z.py", "status": "modified", "patch": "+z"},
        {"filename": "logo.png", "status": "added"},
        {"filename": "a.py", "status": "renamed", "patch": "+a"},
        {"filename": "huge.sql", "status": "modified", "patch": ""},
    ]
    fetcher, client = api_fetcher(files)
    result = fetcher.fetch(make_pr())

    client.get_pull_request_files.assert_called_once_with("acme", "shop", 7)
    assert [(f.filename, f.status) for f in result.files] == [("z.py", "modified"), ("a.py", "renamed")]
    assert result.strategy == "api"


def test_api_strategy_only_binary_files_is_empty_skip():
    fetcher, _ = api_fetcher([{"filename": "logo.png", "status": "added"}])
    assert fetcher.fetch(make_pr()).skip_reason == SKIP_EMPTY_DIFF


def test_api_error_propagates_with_status():
    fetcher, client = api_fetcher()
    client.get_pull_request_files.side_effect = GithubApiError("GitHub API error (502): bad gateway", status=502)
    with pytest.raises(DiffFetchError) as exc:
        fetcher.fetch(make_pr())
    assert "502" in str(exc.value)
    assert exc.value.code == "UPSTREAM"


def test_api_strategy_requires_client():
    with pytest.raises(DiffFetchError):
        DiffFetcher(strategy="api", owner="acme", repo="shop")


def test_local_strategy_uses_head_revision():
    git = FakeGit([UNIFIED])
    fetcher = DiffFetcher(strategy="local", git=git)
    result = fetcher.fetch(make_pr())

    assert git.calls[0] == ["fetch", "--no-tags", "--depth=1", "origin", "main"]
    assert git.calls[1] == ["diff", "origin/main...abc123"]
    assert len(result.files) == 1
    assert result.files[0].filename == "origin/main...abc123"
    assert result.files[0].patch == UNIFIED


def test_local_strategy_falls_back_to_checked_out_revision():
    git = FakeGit([git_error(), UNIFIED])
    fetcher = DiffFetcher(strategy="local", git=git)
    result = fetcher.fetch(make_pr())

    assert git.calls[-1] == ["diff", "origin/main", "HEAD"]
    assert result.files[0].filename == "origin/main HEAD"


def test_local_strategy_recovers_without_merge_base():
    # Shallow clones often lack the common ancestor a three-dot diff needs
    git = FakeGit([git_error("fatal: origin/main...abc123: no merge base"), UNIFIED])
    fetcher = DiffFetcher(strategy="local", git=git)
    result = fetcher.fetch(make_pr())

    assert git.calls[1:] == [["diff", "origin/main...abc123"], ["diff", "origin/main", "HEAD"]]
    assert not result.skipped
    assert result.files[0].patch == UNIFIED


def test_local_strategy_fails_when_both_attempts_fail():
    git = FakeGit([git_error(), git_error("fatal: ambiguous argument")])
    fetcher = DiffFetcher(strategy="local", git=git)
    with pytest.raises(DiffFetchError) as exc:
        fetcher.fetch(make_pr())
    assert exc.value.code == "GIT"
    assert "ambiguous argument" in str(exc.value)


def test_local_strategy_empty_diff_is_skip():
    fetcher = DiffFetcher(strategy="local", git=FakeGit(["  \n"]))
    assert fetcher.fetch(make_pr()).skip_reason == SKIP_EMPTY_DIFF


def test_local_strategy_can_split_per_file():
    fetcher = DiffFetcher(strategy="local", split_local_files=True, git=FakeGit([UNIFIED]))
    result = fetcher.fetch(make_pr())
    assert [(f.filename, f.status) for f in result.files] == [("app.py", "modified"), ("new.txt", "added")]


def test_split_unified_diff_detects_renames_and_deletes():
    text = (
        "diff --git a/old.py b/renamed.py\n"
        "similarity index 90%\n"
        "@@ -1 +1 @@\n-a\n+b\n"
        "diff --git a/gone.py b/gone.py\n"
        "deleted file mode 100644\n"
        "@@ -1 +0,0 @@\n-bye\n"
    )
    files = split_unified_diff(text)
    assert [(f.filename, f.status) for f in files] == [("renamed.py", "renamed"), ("gone.py", "removed")]
    assert split_unified_diff("") == []
