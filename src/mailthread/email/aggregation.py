"""Fault-tolerant message listing across several labels.

One list call per label, made one after another in a single worker thread.
A failing label is logged and skipped; the result is whatever the other
labels returned.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from mailthread.email.client import RemoteMailbox
from mailthread.email.models import MessageListPage
from mailthread.errors import OperationFailedError
from mailthread.observability import component_logger

DEFAULT_LABEL_PAGE_SIZE = 100


def _list_each_label(
    client: RemoteMailbox, labels: list[str], page_size: int
) -> list[MessageListPage | Exception]:
    # The client's HTTP transport is not thread-safe, so calls stay on one thread.
    results: list[MessageListPage | Exception] = []
    for label in labels:
        try:
            results.append(client.list_messages(label, page_size))
        except Exception as exc:
            results.append(exc)
    return results


async def aggregate_label_messages(
    client: RemoteMailbox,
    label_ids: Iterable[str],
    page_size: int = DEFAULT_LABEL_PAGE_SIZE,
    logger: Any = None,
) -> tuple[str, ...]:
    """List message ids for every label and merge them.

    The client is synchronous and shares one HTTP transport across calls, so
    the per-label calls run sequentially inside a single worker thread via
    ``asyncio.to_thread``.  The event loop stays free while they run.  Ids are
    de-duplicated keeping first-seen order (a message can carry several
    labels).

    Args:
        client: The remote mailbox.
        label_ids: Labels to list; one remote call each, in the given order.
        page_size: Maximum ids requested per label.
        logger: Optional structlog logger; bound to ``component="LabelAggregator"``.

    Returns:
        The merged message ids.  Empty when *label_ids* is empty.

    Raises:
        OperationFailedError: Every label failed.
    """
    log = component_logger("LabelAggregator", logger)
    labels = list(label_ids)
    if not labels:
        return ()

    log.debug("label_aggregation_started", label_ids=labels)
    results = await asyncio.to_thread(_list_each_label, client, labels, page_size)

    merged: dict[str, None] = {}
    last_error: Exception | None = None
    succeeded = 0
    for label, result in zip(labels, results, strict=True):
        if isinstance(result, Exception):
            log.warning("label_fetch_failed", label_id=label, error=str(result))
            last_error = result
            continue
        succeeded += 1
        for message_id in result.ids:
            merged.setdefault(message_id, None)

    if succeeded == 0:
        log.error("label_aggregation_failed", label_ids=labels)
        raise OperationFailedError("aggregate label messages", last_error)

    log.debug(
        "label_aggregation_finished",
        label_count=len(labels),
        failed_count=len(labels) - succeeded,
        message_count=len(merged),
    )
    return tuple(merged)
