"""Thread-based reconstruction of register, payment and billing spans.

Request/response pairs for one transaction are scattered across an
interleaved log. Each pair shares a thread id and runs from a ``REQ:``
line to its ``RES:`` line; payload fragments without a thread tag that
directly follow a tagged line belong to it.
"""

import logging
import re
from typing import Optional, Sequence

from .errors import NotFound, MalformedAnchor, SpanNotFound, IdNotFound
from .models import TransactionEvidence
from .parsing import (
    extract_thread_id,
    extract_timestamp_text,
    has_thread,
    is_untagged,
)

logger = logging.getLogger(__name__)

DETAIL_ID_MARKER = "Detail list: [id:"
ID_VALUE_PATTERN = re.compile(r'id:\s*([^,\]]+)')
SERIAL_PATTERN = re.compile(r'Serial:\s*([^\s,;\]}]+)')

PAY_REQUEST = re.compile(r'REQ:\s*Pay\b')
PAY_RESPONSE = re.compile(r'RES:\s*Pay\b')
BILL_REQUEST = re.compile(r'REQ:\s*GetBillList\b')
BILL_RESPONSE = re.compile(r'RES:\s*GetBillList\b')
# Marks an unrelated span; backward searches stop here
GET_PAYMENT_REQUEST = re.compile(r'REQ:\s*GetPayment\b')

ERR_MARKER = "[ERR]"


class TransactionCorrelator:
    """
    Locates the three sub-transcripts of one transaction from a token.

    The first line containing the token anchors the register span (its
    thread id and timestamp); the last one anchors the payment span. The
    bill id found in the register span joins to the billing span.
    """

    def correlate(self, lines: Sequence[str], token: str) -> TransactionEvidence:
        """
        Assemble the evidence for ``token``.

        Args:
            lines: Every line of the source file, in order
            token: Transaction serial or reference substring

        Returns:
            TransactionEvidence with all three spans

        Raises:
            NotFound, MalformedAnchor, SpanNotFound, IdNotFound
        """
        matches = [i for i, line in enumerate(lines) if token in line]
        if not matches:
            raise NotFound(token)

        first = lines[matches[0]]
        thread_id = extract_thread_id(first)
        if thread_id is None:
            raise MalformedAnchor(first, "thread id")
        timestamp = extract_timestamp_text(first)
        if timestamp is None:
            raise MalformedAnchor(first, "timestamp")

        req_index, res_index = self._locate_register(lines, thread_id, timestamp)
        register_indices = self._register_indices(lines, thread_id, req_index, res_index)
        register = [lines[i] for i in register_indices]
        bill_id = self._extract_bill_id(register)

        anchor_index = matches[-1]
        payment = self._payment_span(lines, anchor_index)
        billing = self._billing_span(lines, bill_id, set(register_indices))

        logger.debug(
            "Correlated %s: thread=%s register=%d payment=%d billing=%d",
            token, thread_id, len(register), len(payment), len(billing),
        )

        return TransactionEvidence(
            token=token,
            thread_id=thread_id,
            timestamp=timestamp,
            bill_id=bill_id,
            serial=self._extract_serial(lines[anchor_index]),
            register=register,
            payment=payment,
            billing=billing,
        )

    def _locate_register(
        self,
        lines: Sequence[str],
        thread_id: str,
        timestamp: str,
    ) -> tuple[int, int]:
        res_index = None
        for i, line in enumerate(lines):
            if has_thread(line, thread_id) and "RES:" in line and timestamp in line:
                res_index = i
                break
        if res_index is None:
            raise SpanNotFound("register-response")

        for i in range(res_index, -1, -1):
            line = lines[i]
            if has_thread(line, thread_id) and "REQ:" in line:
                return i, res_index
        raise SpanNotFound("register-request")

    @staticmethod
    def _register_indices(
        lines: Sequence[str],
        thread_id: str,
        req_index: int,
        res_index: int,
    ) -> list[int]:
        """Anchor-thread lines of the register call plus their untagged payload lines."""
        indices = []
        attached = False
        for i in range(req_index, res_index + 1):
            if has_thread(lines[i], thread_id):
                indices.append(i)
                attached = True
            elif attached and is_untagged(lines[i]):
                indices.append(i)
            else:
                attached = False

        i = res_index + 1
        while i < len(lines) and is_untagged(lines[i]):
            indices.append(i)
            i += 1
        return indices

    @staticmethod
    def _extract_bill_id(register: list[str]) -> str:
        candidates = [line for line in register if DETAIL_ID_MARKER in line]
        if not candidates:
            candidates = [line for line in register if "id:" in line]

        for line in candidates:
            start = line.find(DETAIL_ID_MARKER)
            segment = line[start:] if start >= 0 else line
            match = ID_VALUE_PATTERN.search(segment)
            if match and match.group(1).strip():
                return match.group(1).strip()
        raise IdNotFound("Register span carries no 'id:' value")

    @staticmethod
    def _extract_serial(line: str) -> Optional[str]:
        match = SERIAL_PATTERN.search(line)
        return match.group(1) if match else None

    def _payment_span(self, lines: Sequence[str], anchor_index: int) -> list[str]:
        req_index = self._search_backward(lines, anchor_index, PAY_REQUEST)
        if req_index is None:
            req_index = self._search_forward(lines, anchor_index + 1, PAY_REQUEST)
        if req_index is None:
            raise SpanNotFound("payment-request")

        return self._collect_span(lines, req_index, PAY_RESPONSE, "payment")

    def _billing_span(
        self,
        lines: Sequence[str],
        bill_id: str,
        register_indices: set[int],
    ) -> list[str]:
        id_index = self._find_bill_line(lines, bill_id, register_indices)
        if id_index is None:
            raise SpanNotFound("billing-request", f"no line outside the register span mentions id {bill_id}")

        req_index = self._search_backward(lines, id_index, BILL_REQUEST)
        if req_index is None:
            raise SpanNotFound("billing-request")

        return self._collect_span(lines, req_index, BILL_RESPONSE, "billing", trailing=1)

    @staticmethod
    def _find_bill_line(
        lines: Sequence[str],
        bill_id: str,
        register_indices: set[int],
    ) -> Optional[int]:
        # Only the register span's own lines are excluded
        outside = [i for i in range(len(lines)) if i not in register_indices]

        exact = f"{DETAIL_ID_MARKER} {bill_id}"
        for i in outside:
            if exact in lines[i]:
                return i
        bare = re.compile(rf'(?<!\w){re.escape(bill_id)}(?!\w)')
        for i in outside:
            if bare.search(lines[i]):
                return i
        return None

    @staticmethod
    def _search_backward(
        lines: Sequence[str],
        start: int,
        target: re.Pattern,
    ) -> Optional[int]:
        for i in range(start, -1, -1):
            line = lines[i]
            if GET_PAYMENT_REQUEST.search(line):
                return None
            if target.search(line):
                return i
        return None

    @staticmethod
    def _search_forward(
        lines: Sequence[str],
        start: int,
        target: re.Pattern,
    ) -> Optional[int]:
        for i in range(start, len(lines)):
            if target.search(lines[i]):
                return i
        return None

    @staticmethod
    def _collect_span(
        lines: Sequence[str],
        req_index: int,
        response: re.Pattern,
        name: str,
        trailing: int = 0,
    ) -> list[str]:
        """
        Gather a REQ..RES span for the request's thread.

        Same-thread lines are kept along with untagged lines directly after
        a kept line. After the response, untagged continuation lines follow
        it; an ``[ERR]`` response also absorbs its next two lines, and
        ``trailing`` forces extra lines in regardless of their tag.
        """
        thread_id = extract_thread_id(lines[req_index])
        if thread_id is None:
            raise SpanNotFound(f"{name}-request", "request line has no thread id")

        span = []
        attached = False
        res_index = None
        for i in range(req_index, len(lines)):
            line = lines[i]
            if has_thread(line, thread_id):
                span.append(line)
                attached = True
                if response.search(line):
                    res_index = i
                    break
            elif attached and is_untagged(line):
                span.append(line)
            else:
                attached = False

        if res_index is None:
            raise SpanNotFound(f"{name}-response")

        forced = max(trailing, 2 if ERR_MARKER in lines[res_index] else 0)
        i = res_index + 1
        while i < len(lines) and (forced > 0 or is_untagged(lines[i])):
            span.append(lines[i])
            forced -= 1
            i += 1
        return span
