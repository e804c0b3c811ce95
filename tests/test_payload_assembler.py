from utils.diff_models import ChangedFile, TruncationLimits
from utils.payload_assembler import (
    TRUNCATION_MARKER,
    PayloadAssembler,
    truncate,
    truncate_to_budget,
)


def make_files(n, patch_len=10, status="modified"):
    return [ChangedFile(filename=f"src/mod_{i}.py", status=status, patch="x" * patch_len) for i in range(n)]


def test_truncate_keeps_short_text_and_marks_long_text():
    assert truncate("abc", 3) == "abc"
    assert truncate("abcd", 3) == "abc" + TRUNCATION_MARKER
    assert truncate(None, 3) == ""


def test_truncate_to_budget_counts_the_marker():
    text = "y" * 100
    out = truncate_to_budget(text, 50)
    assert len(out) == 50
    assert out.endswith(TRUNCATION_MARKER)


def test_truncate_to_budget_smaller_than_marker_hard_cuts():
    assert truncate_to_budget("z" * 40, 5) == "zzzzz"


def test_no_patches_returns_sentinel():
    files = [
        ChangedFile(filename="logo.png", status="added"),
        ChangedFile(filename="empty.txt", status="added", patch=""),
    ]
    assert PayloadAssembler().assemble(files) is None
    assert PayloadAssembler().assemble([]) is None


def test_renders_three_line_blocks_in_source_order():
    files = [
        ChangedFile(filename="b.py", status="added", patch="+print('b')"),
        ChangedFile(filename="bin.dat", status="modified"),
        ChangedFile(filename="a.py", status="removed", patch="-print('a')"),
    ]
    payload = PayloadAssembler().assemble(files)

    assert payload.text == (
        "FILE: b.py\nSTATUS: added\nPATCH:\n+print('b')\n"
        "\n---\n"
        "FILE: a.py\nSTATUS: removed\nPATCH:\n-print('a')"
    )
    report = payload.report
    assert report.selected_count == 2
    assert report.files_with_patch_count == 2
    assert not report.truncated


def test_block_count_is_min_of_files_and_limit():
    limits = TruncationLimits(max_files=4, max_patch_chars_per_file=100, max_total_chars=100000)
    for n in (1, 4, 9):
        payload = PayloadAssembler(limits).assemble(make_files(n))
        assert payload.text.count("FILE: ") == min(n, 4)


def test_oversized_patch_is_cut_to_limit_plus_marker():
    limits = TruncationLimits(max_files=15, max_patch_chars_per_file=20, max_total_chars=100000)
    files = [ChangedFile(filename="big.py", status="modified", patch="a" * 50)]
    payload = PayloadAssembler(limits).assemble(files)

    body = payload.text.split("PATCH:\n", 1)[1]
    assert body == "a" * 20 + TRUNCATION_MARKER
    assert payload.report.patch_truncated_count == 1
    assert payload.report.truncated


def test_patch_exactly_at_limit_is_not_marked():
    limits = TruncationLimits(max_files=15, max_patch_chars_per_file=20, max_total_chars=100000)
    files = [ChangedFile(filename="edge.py", status="modified", patch="b" * 20)]
    payload = PayloadAssembler(limits).assemble(files)

    assert TRUNCATION_MARKER not in payload.text
    assert payload.report.patch_truncated_count == 0


def test_file_count_limit_reports_and_notes_total():
    limits = TruncationLimits(max_files=15, max_patch_chars_per_file=5000, max_total_chars=100000)
    payload = PayloadAssembler(limits).assemble(make_files(20))

    report = payload.report
    assert report.selected_count == 15
    assert report.files_limited is True
    assert report.files_with_patch_count == 20
    assert payload.text.count("FILE: ") == 15
    assert payload.text.endswith(
        "... (only the first 15 files with a patch were included; total with patch: 20)"
    )


def test_total_never_exceeds_budget():
    limits = TruncationLimits(max_files=15, max_patch_chars_per_file=5000, max_total_chars=12000)
    payload = PayloadAssembler(limits).assemble(make_files(20, patch_len=4000))

    assert len(payload.text) <= 12000
    assert payload.text.endswith(TRUNCATION_MARKER)
    assert payload.report.total_truncated is True


def test_total_budget_holds_across_sizes():
    for max_total in (1, 10, 17, 18, 100, 999):
        limits = TruncationLimits(max_files=3, max_patch_chars_per_file=300, max_total_chars=max_total)
        payload = PayloadAssembler(limits).assemble(make_files(5, patch_len=400))
        assert len(payload.text) <= max_total


def test_assemble_is_deterministic():
    files = make_files(18, patch_len=900)
    limits = TruncationLimits(max_files=15, max_patch_chars_per_file=500, max_total_chars=6000)
    first = PayloadAssembler(limits).assemble(files)
    second = PayloadAssembler(limits).assemble(files)
    assert first.text == second.text
    assert first.report == second.report
