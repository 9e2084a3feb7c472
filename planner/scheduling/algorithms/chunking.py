"""
Chunking algorithms for breaking large tasks into manageable pieces.
"""

import math
from typing import List

from ...models import Task


def effective_max_chunk(task: Task, default_max_chunk_minutes: int) -> int:
    return task.max_chunk_minutes or default_max_chunk_minutes


def should_chunk_task(task: Task, default_max_chunk_minutes: int) -> bool:
    """Only chunkable tasks longer than their largest allowed piece are split."""
    if not task.chunkable:
        return False
    return task.estimated_minutes > effective_max_chunk(task, default_max_chunk_minutes)


def calculate_chunk_sizes(total_minutes: int, min_chunk: int, max_chunk: int) -> List[int]:
    """
    Split `total_minutes` into the fewest pieces that each fit in
    [min_chunk, max_chunk], sized as evenly as possible with the extra
    minutes going to the earlier pieces.

    Example:
        calculate_chunk_sizes(250, 30, 120) -> [84, 83, 83]

    When no piece count satisfies both bounds the task is kept whole.
    """
    if total_minutes <= max_chunk:
        return [total_minutes]

    chunk_count = math.ceil(total_minutes / max_chunk)
    if chunk_count * min_chunk > total_minutes:
        return [total_minutes]

    base, remainder = divmod(total_minutes, chunk_count)
    return [base + 1] * remainder + [base] * (chunk_count - remainder)


def plan_chunks(task: Task, default_max_chunk_minutes: int) -> List[int]:
    if not should_chunk_task(task, default_max_chunk_minutes):
        return [task.estimated_minutes]
    return calculate_chunk_sizes(
        task.estimated_minutes,
        task.min_chunk_minutes,
        effective_max_chunk(task, default_max_chunk_minutes),
    )
