import pytest

from logminer.config import Settings


@pytest.fixture
def transaction_lines():
    """Interleaved register, billing and payment traffic for reference REF7788."""
    return [
        "2025-01-01 10:00:00.000 [T1] [INF] - REQ: Register {subscriber: 994501234567}",
        "2025-01-01 10:00:00.010 [T2] [INF] - REQ: Ping",
        "2025-01-01 10:00:00.100 [T1] [INF] - validating subscriber",
        "2025-01-01 10:00:00.150 [T2] [INF] - RES: Ping",
        "2025-01-01 10:00:00.200 [T1] [INF] - RES: Register {reference: REF7788} Detail list: [id: 5001, amount: 10.50]",
        "2025-01-01 10:00:01.000 [T3] [INF] - REQ: GetBillList {id: 5001}",
        "2025-01-01 10:00:01.100 [T4] [INF] - REQ: Other",
        "2025-01-01 10:00:01.200 [T3] [INF] - RES: GetBillList Detail list: [id: 5001, amount: 10.50]",
        '    {"bills": [{"id": 5001}]}',
        "2025-01-01 10:00:02.000 [T5] [INF] - REQ: Pay {reference: REF7788, amount: 10.50}",
        "2025-01-01 10:00:02.050 [T4] [INF] - RES: Other",
        "2025-01-01 10:00:02.100 [T5] [INF] - calling provider",
        '    {"provider": "acme"}',
        "2025-01-01 10:00:02.500 [T5] [INF] - RES: Pay {status: SUCCESS} Serial: SER998877 reference: REF7788",
        "2025-01-01 10:00:02.600 [T6] [INF] - done",
    ]


@pytest.fixture
def monitored_lines():
    """An hour of service log with one recurring NPE and adapter failures."""
    return [
        "2025-01-01 09:59:59.999 [T1] [INF] - before the window",
        "2025-01-01 10:05:00.000 [T1] [INF] - handling order",
        "2025-01-01 10:05:00.100 [T1] [ERR] - java.lang.NullPointerException: order is null",
        "\tat com.shop.OrderService.place(OrderService.java:42)",
        "\tat com.shop.OrderController.post(OrderController.java:17)",
        "2025-01-01 10:05:00.200 [T1] [INF] - request finished",
        "2025-01-01 10:20:00.000 [T7] [ERR] - RES: Pay",
        "|- Code: E010002",
        "|- Description: Payment rejected",
        "|- Reason: timeout",
        "2025-01-01 10:20:00.100 [T7] [INF] - next",
        "2025-01-01 10:40:00.000 [T9] [INF] - handling order",
        "2025-01-01 10:40:00.100 [T9] [ERR] - java.lang.NullPointerException: order is null",
        "\tat com.shop.OrderService.place(OrderService.java:42)",
        "\tat com.shop.OrderController.post(OrderController.java:17)",
        "2025-01-01 10:40:00.200 [T9] [INF] - request finished",
        "2025-01-01 10:50:00.000 [T8] [ERR] - RES: Pay",
        "|- Code: E010002",
        "|- Reason: TIMEOUT",
        "2025-01-01 11:00:00.000 [T1] [INF] - after the window",
    ]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        monitor_enabled=True,
        monitor_file=str(tmp_path / "stream.log"),
        recipients=["dev@example.com"],
        log_dir=str(tmp_path),
    )
