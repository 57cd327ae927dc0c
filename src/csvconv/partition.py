"""Split a file list into contiguous per-worker chunks"""

import math


def chunk_size(file_count: int, worker_count: int) -> int:
    """Files per chunk: ceil(file_count / worker_count)."""
    if worker_count < 1:
        raise ValueError(f'worker_count must be positive, got {worker_count}')
    return math.ceil(file_count / worker_count)


def partition(files: list[str], worker_count: int) -> list[list[str]]:
    """
    Split files into consecutive runs of equal size, one per worker.

    The last chunk may be shorter. Concatenating the chunks in order gives back
    `files` exactly, and no chunk is ever empty, so an empty list yields no
    chunks and fewer files than workers yields fewer chunks than workers.
    Chunks are sized by count, not by file size.

    Args:
        files: Ordered file names
        worker_count: Maximum number of chunks (must be >= 1)

    Returns:
        List of chunks

    Raises:
        ValueError: If worker_count is less than 1
    """
    size = chunk_size(len(files), worker_count)
    if size == 0:
        return []
    return [files[i : i + size] for i in range(0, len(files), size)]
