"""Digest building for the hourly notifications."""

from datetime import datetime

from .models import AdapterError, Attachment, BlockCluster, Digest, ExceptionBlock

BLOCK_SEPARATOR = "\n\n---\n\n"
SUBJECT_HOUR_FORMAT = "%Y-%m-%d %H"


def format_cluster_overview(clusters: list[BlockCluster], top_n: int = 5) -> str:
    """
    Summarize clusters as a short text overview.

    Args:
        clusters: Clusters sorted by size
        top_n: Number of clusters to list

    Returns:
        Overview text, empty when there are no clusters
    """
    if not clusters:
        return ""

    lines = ["Overview:"]
    for cluster in clusters[:top_n]:
        keywords = ", ".join(cluster.keywords[:4]) or "N/A"
        lines.append(f"  #{cluster.cluster_id + 1}: {cluster.size} block(s) - {cluster.representative}")
        lines.append(f"      keywords: {keywords}")
    if len(clusters) > top_n:
        lines.append(f"  ... and {len(clusters) - top_n} more clusters")
    return "\n".join(lines)


def build_exception_digest(
    blocks: list[ExceptionBlock],
    clusters: list[BlockCluster],
    now: datetime,
) -> Digest:
    """
    Build the hourly exception notification.

    The body opens with the cluster overview, followed by every unique
    block. The same blocks travel as a plain-text attachment for renderers
    that build documents.
    """
    subject = f"[Log Monitor] Exceptions detected in last hour: {now.strftime(SUBJECT_HOUR_FORMAT)}"
    blocks_text = BLOCK_SEPARATOR.join(b.text for b in blocks)

    header = f"{len(blocks)} unique exception block(s)."
    overview = format_cluster_overview(clusters)
    parts = [header]
    if overview:
        parts.append(overview)
    parts.append(blocks_text)
    body = BLOCK_SEPARATOR.join(parts)

    attachment = Attachment(
        filename=f"exceptions-{now.strftime('%Y%m%d-%H')}.txt",
        content=blocks_text.encode("utf-8"),
    )
    return Digest(subject=subject, body=body, attachment=attachment, item_count=len(blocks))


def format_adapter_error(error: AdapterError) -> str:
    fields = [f"{error.timestamp} [{error.thread_id}] {error.operation}"]
    if error.code:
        fields.append(f"code={error.code}")
    if error.description:
        fields.append(f"description={error.description}")
    if error.reason:
        fields.append(f"reason={error.reason}")
    return " | ".join(fields)


def build_adapter_digest(errors: list[AdapterError], now: datetime) -> Digest:
    """Build the hourly adapter-error notification, one line per record."""
    subject = f"[Log Monitor] Adapter errors in last hour: {now.strftime(SUBJECT_HOUR_FORMAT)}"
    lines = [f"{len(errors)} unique adapter error(s).", ""]
    lines.extend(format_adapter_error(e) for e in errors)
    return Digest(subject=subject, body="\n".join(lines), item_count=len(errors))
