"""Fan-out of per-neuron kernels over a thread pool.

Every kernel call is a barrier: :meth:`KernelPool.run` only returns once all
chunks have finished, so the next stage of a layer never observes a partially
written neuron set. Chunks cover disjoint neuron indices and need no locking.
"""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

ChunkKernel = Callable[[int, int], None]


class KernelPool:
    """Split ``range(count)`` into contiguous chunks and run them in parallel."""

    def __init__(self, workers: int = 1, min_parallel: int = 64) -> None:
        if workers == 0:
            workers = os.cpu_count() or 1
        if workers < 0:
            raise ValueError(f"workers must be >= 0, got {workers}")
        self.workers = int(workers)
        self.min_parallel = int(min_parallel)
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def parallel(self) -> bool:
        return self.workers > 1

    def run(self, count: int, kernel: ChunkKernel) -> None:
        """Apply ``kernel(start, stop)`` over ``range(count)`` and join."""

        if count <= 0:
            return
        # For small layers, don't bother with the pool
        if not self.parallel or count < self.min_parallel:
            kernel(0, count)
            return
        chunk = max(1, -(-count // self.workers))
        bounds = [(start, min(start + chunk, count)) for start in range(0, count, chunk)]
        executor = self._ensure_executor()
        futures = [executor.submit(kernel, start, stop) for start, stop in bounds]
        errors: List[BaseException] = []
        for future in futures:
            exc = future.exception()
            if exc is not None:
                errors.append(exc)
        if errors:
            raise errors[0]

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.workers, thread_name_prefix="neuralnets-kernel"
            )
        return self._executor

    def __enter__(self) -> "KernelPool":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


SERIAL = KernelPool(workers=1)


__all__ = ["KernelPool", "SERIAL"]
