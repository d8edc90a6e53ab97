"""Bounded concurrent execution of per-item module work."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Sequence, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import ModuleError
from .interfaces import ModuleHandlerReturnType, ModuleStatus


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_CONCURRENCY = 10


@dataclass
class BatchItemResult:
    """Outcome of one item of a batch."""

    key: str
    status: ModuleStatus
    message: str

    def to_dict(self):
        return {"key": self.key, "status": self.status.value, "message": self.message}


def process_batch(
    items: Sequence[T],
    worker: Callable[[T], str],
    key: Callable[[T], str],
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> List[BatchItemResult]:
    """Run ``worker`` for every item with at most ``max_concurrency`` in flight.

    A module or AWS error raised by one item is recorded as that item's
    failure and does not stop the others. Any other exception propagates.

    Args:
        items: Items to process
        worker: Processes one item and returns its status message
        key: Identifies an item in the results
        max_concurrency: Worker pool size

    Returns:
        One result per item, in input order
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")
    if not items:
        return []

    results: List[BatchItemResult] = [None] * len(items)
    with ThreadPoolExecutor(max_workers=min(max_concurrency, len(items)), thread_name_prefix="batch") as executor:
        futures = {executor.submit(worker, item): index for index, item in enumerate(items)}
        for future in as_completed(futures):
            index = futures[future]
            item_key = key(items[index])
            try:
                results[index] = BatchItemResult(item_key, ModuleStatus.SUCCESS, future.result())
            except (ModuleError, ClientError, BotoCoreError) as e:
                logger.error(f'Processing "{item_key}" failed: {e}')
                results[index] = BatchItemResult(item_key, ModuleStatus.FAILED, str(e))
    return results


def summarize_batch(module_name: str, results: List[BatchItemResult], notes: List[str]) -> ModuleHandlerReturnType:
    """Fold per-item results into one handler result.

    The status is ``FAILED`` when any item failed, ``NO_CHANGE`` when there
    was nothing to process and ``SUCCESS`` otherwise.

    Args:
        module_name: Module name for the envelope
        results: Per-item results from ``process_batch``
        notes: Extra lines appended to the message, such as skipped item counts
    """
    if any(result.status is ModuleStatus.FAILED for result in results):
        status = ModuleStatus.FAILED
    elif results:
        status = ModuleStatus.SUCCESS
    else:
        status = ModuleStatus.NO_CHANGE

    lines = [
        result.message if result.status is ModuleStatus.SUCCESS else f'"{result.key}" failed: {result.message}'
        for result in results
    ]
    return ModuleHandlerReturnType(
        status=status,
        message="\n".join(lines + notes),
        module_name=module_name,
        data=[result.to_dict() for result in results],
    )
