"""Ordered, exclusive bucketing of issues by label.

Each issue lands in exactly one bucket: the first name in the label order
that the issue carries as a label. Issues matching no name end up in the
fallback "Unsorted" bucket.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from triageboard.tracker.models import Issue

UNSORTED = "Unsorted"

BucketMap = dict[str, list[Issue]]


def group_by_label(issues: Iterable[Issue] | None, label_order: Sequence[str] | None) -> BucketMap:
    """Partition issues into buckets following label_order.

    For each name in label_order, every issue still in the pool that
    carries that exact label is claimed by the bucket. Claimed issues are
    listed in reverse pool order (the last matching issue first); the
    pool keeps its order for the next name. Whatever is left at the end
    goes to UNSORTED in pool order.

    Only buckets that received at least one issue are present in the
    result. Every name is treated the same way, sentinels included. The
    input sequence and the issues are never modified.

    Args:
        issues: Issues to classify. None is treated as empty.
        label_order: Bucket names in priority order. None is treated as empty.

    Returns:
        Mapping of bucket name to its issues.
    """
    pool = list(issues or ())
    groups: BucketMap = {}

    for label in label_order or ():
        claimed: list[Issue] = []
        remaining: list[Issue] = []
        for issue in pool:
            if issue.has_label(label):
                claimed.append(issue)
            else:
                remaining.append(issue)

        if claimed:
            claimed.reverse()
            groups.setdefault(label, []).extend(claimed)
        pool = remaining

    if pool:
        groups.setdefault(UNSORTED, []).extend(pool)

    return groups
