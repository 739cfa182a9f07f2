"""Tests for signatures, classification and de-duplication."""

from logminer.models import ExceptionBlock
from logminer.normalization import BlockClassifier, dedupe_blocks, dedupe_by, signature_of


def block(*lines, start=0):
    return ExceptionBlock(lines=list(lines), start_index=start)


NPE_A = block(
    "2025-01-01 10:05:00.100 [T1] [ERR] - java.lang.NullPointerException: order 1234567 is null",
    "\tat com.shop.OrderService.place(OrderService.java:42)",
    "\tat com.shop.Cache@1a2b3c4d.get(Cache.java:9)",
)
NPE_B = block(
    "2025-02-03 22:41:13.870 [T-worker9] [ERR] - java.lang.NullPointerException: order 7654321 is null",
    "\tat com.shop.OrderService.place(OrderService.java:57)",
    "\tat com.shop.Cache@ffee0011.get(Cache.java:9)",
    start=40,
)
IO_ERROR = block(
    "2025-01-01 10:06:00.000 [T2] [ERR] - java.io.IOException: disk full",
    "\tat com.shop.Storage.write(Storage.java:11)",
    start=10,
)


class TestSignature:
    """Tests for signature_of."""

    def test_volatile_values_ignored(self):
        """Test that timestamps, threads, addresses and ids do not matter."""
        assert signature_of(NPE_A) == signature_of(NPE_B)

    def test_keeps_exception_and_frames_only(self):
        """Test the retained signature lines."""
        sig = signature_of(NPE_A)

        assert sig.splitlines() == [
            "java.lang.nullpointerexception: order <num> is null",
            "at com.shop.OrderService.place()",
            "at com.shop.Cache@xxxx.get()",
        ]

    def test_different_failures_differ(self):
        """Test that distinct exceptions keep distinct signatures."""
        assert signature_of(NPE_A) != signature_of(IO_ERROR)

    def test_accepts_raw_text(self):
        """Test that plain block text gives the same signature."""
        assert signature_of(NPE_A.text) == signature_of(NPE_A)

    def test_fallback_without_exception_lines(self):
        """Test the whole-text fallback."""
        sig = signature_of(block("2025-01-01 10:00:00.000 [T1] [INF] - Something Odd 0xDEADBEEF"))
        assert sig == "something odd 0xxxxx"


class TestBlockClassifier:
    """Tests for BlockClassifier."""

    def test_business_only_block_dropped(self):
        """Test that adapter business failures are noise."""
        business = block(
            "2025-01-01 10:20:00.000 [T7] [ERR] - RES: Pay error response",
            "|- Code: E010002",
            "|- Description: Payment rejected",
            "|- Reason: timeout",
        )
        assert BlockClassifier().classify([business]) == []

    def test_adapter_block_with_stack_kept(self):
        """Test that a stack trace makes an adapter block developer-relevant."""
        mixed = block(
            "2025-01-01 10:20:00.000 [T7] [ERR] - RES: Pay error response",
            "|- Code: E010002",
            "\tat com.shop.PayClient.call(PayClient.java:88)",
        )
        assert BlockClassifier().classify([mixed]) == [mixed]

    def test_bare_error_word_is_business_text(self):
        """Test that an unqualified name like PaymentGatewayError is not a runtime type."""
        business = block(
            "2025-01-01 10:20:00.000 [T7] [ERR] - RES: Pay error response",
            "|- Code: E010002",
            "|- Reason: PaymentGatewayError",
        )
        classifier = BlockClassifier()

        assert classifier.classify([business]) == []
        assert classifier.is_developer_relevant("com.shop.PaymentGatewayError: refused")

    def test_exception_blocks_kept(self):
        """Test that exception types, frames and causes are retained."""
        caused = block("Caused by: something went wrong")
        frame_only = block("Fatal error ", "\tat a.b.c()")

        kept = BlockClassifier().classify([NPE_A, caused, frame_only])

        assert kept == [NPE_A, caused, frame_only]

    def test_block_without_evidence_dropped(self):
        """Test that keyword-only blocks are not reported."""
        vague = block("2025-01-01 10:00:00.000 [T1] [INF] - user error count is 0")
        assert BlockClassifier().classify([vague]) == []


class TestDeduplication:
    """Tests for order-preserving de-duplication."""

    def test_first_occurrence_wins(self):
        """Test that the earliest block represents a recurring failure."""
        unique = dedupe_blocks([NPE_A, IO_ERROR, NPE_B])

        assert unique == [NPE_A, IO_ERROR]

    def test_idempotent(self):
        """Test dedupe(dedupe(x)) == dedupe(x)."""
        once = dedupe_blocks([NPE_B, IO_ERROR, NPE_A, IO_ERROR])
        assert dedupe_blocks(once) == once
        assert once == [NPE_B, IO_ERROR]

    def test_dedupe_by_key(self):
        """Test the generic helper."""
        assert dedupe_by(["a", "B", "b", "A", "c"], str.lower) == ["a", "B", "c"]
