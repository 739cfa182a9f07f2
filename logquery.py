#!/usr/bin/env python3
"""
Command-line client for a running Log Miner service.

Usage:
    python logquery.py files
    python logquery.py search stream-2025-09-06.log 7F3A9C --page 0 --size 5
    python logquery.py transaction SER123456 --file stream-2025-09-06.log
    python logquery.py scan --hours 3 --url http://localhost:8000
"""

import argparse
import json
import sys

import httpx


def format_transaction(data: dict) -> str:
    """Format transaction evidence for readable console output."""
    lines = []

    lines.append("=" * 70)
    lines.append("                    TRANSACTION EVIDENCE")
    lines.append("=" * 70)
    lines.append(f"  Token:      {data.get('token', '')}")
    lines.append(f"  Thread:     {data.get('thread_id', '')}")
    lines.append(f"  Timestamp:  {data.get('timestamp', '')}")
    lines.append(f"  Bill id:    {data.get('bill_id', '')}")
    if data.get("serial"):
        lines.append(f"  Serial:     {data['serial']}")
    lines.append("")

    for title, key in (("REGISTER", "register"), ("PAYMENT", "pay"), ("BILLING", "billList")):
        span = data.get(key, [])
        lines.append(f"{title} ({len(span)} lines)")
        lines.append("-" * 40)
        lines.extend(f"  {line}" for line in span)
        lines.append("")

    lines.append("=" * 70)
    return "\n".join(lines)


def format_scan(data: dict) -> str:
    """Format a monitor scan result for readable console output."""
    lines = []
    summary = data.get("summary", {})

    lines.append("=" * 70)
    lines.append("                    LOG MONITOR SCAN")
    lines.append("=" * 70)
    lines.append(f"  Lines scanned:          {summary.get('total_lines_processed', 0):,}")
    lines.append(f"  Unique exceptions:      {summary.get('unique_exception_blocks', 0):,}")
    lines.append(f"  Unique adapter errors:  {summary.get('unique_adapter_errors', 0):,}")
    lines.append("")

    clusters = data.get("clusters", [])
    if clusters:
        lines.append("EXCEPTION CLUSTERS")
        lines.append("-" * 40)
        for cluster in clusters[:5]:
            keywords = ", ".join(cluster.get("keywords", [])[:4]) or "N/A"
            rep = cluster.get("representative", "")
            if len(rep) > 60:
                rep = rep[:57] + "..."
            lines.append(f"  #{cluster.get('cluster_id', 0) + 1}: {cluster.get('blocks', 0)} block(s)  {rep}")
            lines.append(f"      Keywords: {keywords}")
        lines.append("")

    for i, block in enumerate(data.get("exception_blocks", []), 1):
        lines.append(f"===== Exception Block #{i} (line {block.get('start_line')}) =====")
        lines.append(block.get("text", ""))
        lines.append("")

    errors = data.get("adapter_errors", [])
    if errors:
        lines.append("ADAPTER ERRORS")
        lines.append("-" * 40)
        for error in errors:
            lines.append(
                f"  {error.get('timestamp')} [{error.get('thread_id')}] {error.get('operation')} "
                f"code={error.get('code')} reason={error.get('reason')}"
            )
        lines.append("")

    lines.append(f"Processing time: {data.get('processing_time_ms', 0):.1f}ms")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query a Log Miner service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python logquery.py files
  python logquery.py search app.log 7F3A9C
  python logquery.py transaction SER123456 --json
        """
    )
    parser.add_argument("--url", default="http://localhost:8000", help="API server URL")
    parser.add_argument("--json", action="store_true", help="Output raw JSON instead of formatted")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("files", help="List available log files")

    search = commands.add_parser("search", help="Paged token search in one file")
    search.add_argument("file", help="Log file name")
    search.add_argument("token", help="Search token (at least 4 characters)")
    search.add_argument("--page", type=int, default=0, help="0-based page")
    search.add_argument("--size", type=int, default=10, help="Matches per page")

    transaction = commands.add_parser("transaction", help="Reconstruct a transaction")
    transaction.add_argument("token", help="Transaction serial or reference")
    transaction.add_argument("--file", help="Log file name (defaults to the service's transaction log)")

    scan = commands.add_parser("scan", help="Preview the monitor scan")
    scan.add_argument("--hours", type=int, default=1, help="Hours to look back")

    return parser


def run(args, client: httpx.Client) -> str:
    if args.command == "files":
        response = client.get("/api/filter/files")
        formatter = lambda data: "\n".join(data) or "(no log files)"
    elif args.command == "search":
        body = {"file": args.file, "uniqueData": args.token, "page": args.page, "size": args.size}
        response = client.post("/api/filter/file", json=body)
        formatter = lambda data: "\n".join(data) or "(no matches on this page)"
    elif args.command == "transaction":
        params = {"file": args.file} if args.file else {}
        response = client.get(f"/api/transactions/{args.token}", params=params)
        formatter = format_transaction
    else:
        response = client.post("/api/monitor/scan", params={"hours": args.hours})
        formatter = format_scan

    if response.status_code != 200:
        raise RuntimeError(f"API returned {response.status_code}: {response.text}")

    data = response.json()
    if args.json:
        return json.dumps(data, indent=2)
    return formatter(data)


def main():
    args = build_parser().parse_args()

    try:
        with httpx.Client(base_url=args.url, timeout=60.0) as client:
            print(run(args, client))
    except httpx.ConnectError:
        print(f"Error: Cannot connect to {args.url}", file=sys.stderr)
        print("Make sure the server is running: uvicorn logminer.main:app", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
