"""Tests for the exception block detector."""

from logminer.detection import ExceptionBlockDetector, is_exception_start


def _all_block_lines(blocks):
    return [line for block in blocks for line in block.lines]


def _is_subsequence(part, whole):
    it = iter(whole)
    return all(any(item == candidate for candidate in it) for item in part)


class TestExceptionStart:
    """Tests for the exception-start pattern."""

    def test_matches_exception_and_error(self):
        """Test case-insensitive Exception/Error followed by colon or space."""
        assert is_exception_start("java.lang.IllegalStateException: boom")
        assert is_exception_start("Fatal error occurred")
        assert is_exception_start("OutOfMemoryError: heap")

    def test_ignores_other_lines(self):
        """Test that unrelated lines do not open a block."""
        assert not is_exception_start("2025-01-01 10:00:00.000 [T1] [ERR] - RES: Pay")
        assert not is_exception_start("\tat com.foo.ErrorHandler.handle(ErrorHandler.java:3)")


class TestExceptionBlockDetector:
    """Tests for ExceptionBlockDetector."""

    def test_terminating_line_not_included(self):
        """Test the basic stack trace block."""
        lines = [
            "2025-01-01 10:00:00.000 [T1] [ERR] - NullPointerException: x",
            "\tat a.b.c()",
            "2025-01-01 10:00:00.050 [T1] [INFO] - done",
        ]
        blocks = ExceptionBlockDetector(context_size=2).detect(lines)

        assert len(blocks) == 1
        assert blocks[0].lines == lines[:2]
        assert blocks[0].text == "\n".join(lines[:2])

    def test_chained_causes_stay_in_one_block(self):
        """Test that Caused by and summary lines extend the block."""
        lines = [
            "2025-01-01 10:00:00.000 [T1] [ERR] - java.lang.RuntimeException: outer",
            "\tat a.b.C.run(C.java:1)",
            "Caused by: java.io.IOException: inner",
            "\tat a.b.D.read(D.java:2)",
            "\t... 3 more",
            "2025-01-01 10:00:00.050 [T1] [INF] - next",
        ]
        blocks = ExceptionBlockDetector(context_size=0).detect(lines)

        assert len(blocks) == 1
        assert blocks[0].lines == lines[:5]

    def test_err_tagged_start_anchors_on_err_run(self):
        """Test that an [ERR] start only pulls in the contiguous [ERR] run."""
        lines = [
            "2025-01-01 10:00:00.000 [T1] [INF] - unrelated",
            "2025-01-01 10:00:00.001 [T1] [ERR] - request failed for order 7",
            "2025-01-01 10:00:00.002 [T1] [ERR] - rolling back",
            "2025-01-01 10:00:00.003 [T1] [ERR] - java.lang.IllegalStateException: z",
            "\tat a.b.c(X.java:1)",
        ]
        blocks = ExceptionBlockDetector(context_size=6).detect(lines)

        assert len(blocks) == 1
        assert blocks[0].lines == lines[1:]
        assert blocks[0].start_index == 1

    def test_untagged_start_takes_lookback(self):
        """Test that other starts are seeded with the rolling buffer."""
        lines = [
            "2025-01-01 10:00:00.000 [T1] [INF] - p1",
            "2025-01-01 10:00:00.001 [T1] [INF] - p2",
            "2025-01-01 10:00:00.002 [T1] [INF] - p3",
            "2025-01-01 10:00:00.003 [T1] [WRN] - java.io.IOException: closed",
            "\tat a.b.c(X.java:1)",
        ]
        blocks = ExceptionBlockDetector(context_size=3).detect(lines)

        # Buffer holds three lines including the start line itself
        assert blocks[0].lines == lines[1:]

    def test_zero_context(self):
        """Test that a zero-sized buffer yields just the start line."""
        lines = [
            "2025-01-01 10:00:00.000 [T1] [INF] - p1",
            "2025-01-01 10:00:00.003 [T1] [WRN] - java.io.IOException: closed",
        ]
        blocks = ExceptionBlockDetector(context_size=0).detect(lines)

        assert blocks[0].lines == [lines[1]]

    def test_block_without_terminator_flushed_at_end(self):
        """Test the end-of-input flush."""
        lines = [
            "2025-01-01 10:00:00.000 [T1] [ERR] - IllegalArgumentException: bad",
            "\tat a.b.c(X.java:1)",
        ]
        blocks = ExceptionBlockDetector().detect(lines)

        assert len(blocks) == 1
        assert blocks[0].lines == lines

    def test_blocks_never_share_lines(self):
        """Test that lookback does not reuse lines from an earlier block."""
        lines = [
            "2025-01-01 10:00:00.000 [T1] [ERR] - NullPointerException: x",
            "\tat a.b.c(X.java:1)",
            "2025-01-01 10:00:00.010 [T1] [INF] - done",
            "2025-01-01 10:00:00.020 [T2] [INF] - java.lang.RuntimeException: again",
            "\tat d.e.f(Y.java:2)",
            "2025-01-01 10:00:00.030 [T2] [INF] - finished",
        ]
        blocks = ExceptionBlockDetector(context_size=6).detect(lines)

        assert len(blocks) == 2
        assert blocks[0].lines == lines[0:2]
        assert blocks[1].lines == lines[2:5]

        emitted = _all_block_lines(blocks)
        assert len(emitted) == len(set(emitted))
        assert _is_subsequence(emitted, lines)

    def test_no_exceptions(self):
        """Test that a quiet log yields no blocks."""
        lines = ["2025-01-01 10:00:00.000 [T1] [INF] - all good"] * 3
        assert ExceptionBlockDetector().detect(lines) == []

    def test_detector_reusable(self):
        """Test that scan state does not leak between calls."""
        detector = ExceptionBlockDetector(context_size=2)
        lines = [
            "2025-01-01 10:00:00.000 [T1] [ERR] - NullPointerException: x",
            "\tat a.b.c()",
        ]
        first = detector.detect(lines)
        second = detector.detect(lines)

        assert [b.lines for b in first] == [b.lines for b in second]
