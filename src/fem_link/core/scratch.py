"""
Per-thread scratch buffers keyed by shape.

Element computations work on a handful of small fixed sizes (2, 4, 6, 12).
Buffers are reused across elements of the same thread; each thread gets its
own set, so concurrent partitions never share a buffer.
"""

import threading
from typing import Dict, Tuple

import numpy as np


class ScratchPool:
    """
    Thread-local pool of zeroed work arrays.

    A buffer returned by :meth:`matrix` or :meth:`vector` is only valid until
    the next request for the same shape on the same thread, so it must never
    be handed out to callers.
    """

    def __init__(self):
        self._local = threading.local()

    def _buffers(self) -> Dict[Tuple[int, ...], np.ndarray]:
        buffers = getattr(self._local, "buffers", None)
        if buffers is None:
            buffers = {}
            self._local.buffers = buffers
        return buffers

    def get(self, shape: Tuple[int, ...]) -> np.ndarray:
        buffers = self._buffers()
        buf = buffers.get(shape)
        if buf is None:
            buf = np.zeros(shape)
            buffers[shape] = buf
        else:
            buf.fill(0.0)
        return buf

    def matrix(self, rows: int, cols: int = None) -> np.ndarray:
        return self.get((rows, rows if cols is None else cols))

    def vector(self, size: int) -> np.ndarray:
        return self.get((size,))

    def size(self) -> int:
        """Number of buffers held by the calling thread."""
        return len(self._buffers())


SCRATCH = ScratchPool()
