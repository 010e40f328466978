"""
Byte channels used to move packed element records.

A channel is opaque to the element: it sends and receives whole records
tagged with the analysis commit tag. ``InMemoryChannel`` keeps the records in
per-tag FIFO queues and is what a single-process analysis (or a test) uses;
``fem_link.parallel.MPIChannel`` moves them between MPI ranks.
"""

from collections import defaultdict, deque
from typing import Deque, Dict, Protocol, runtime_checkable


@runtime_checkable
class Channel(Protocol):
    def send_bytes(self, commit_tag: int, data: bytes) -> None: ...

    def recv_bytes(self, commit_tag: int) -> bytes: ...


class InMemoryChannel:
    """
    FIFO channel held in memory.

    Records sent with a commit tag are received in the order they were sent
    for that same tag.

    Example
    -------
    ::

        channel = InMemoryChannel()
        element.send_self(0, channel)
        copy = LinearElasticSpring.from_channel(0, channel, domain)
    """

    def __init__(self):
        self._queues: Dict[int, Deque[bytes]] = defaultdict(deque)

    def send_bytes(self, commit_tag: int, data: bytes) -> None:
        self._queues[commit_tag].append(bytes(data))

    def recv_bytes(self, commit_tag: int) -> bytes:
        queue = self._queues.get(commit_tag)
        if not queue:
            raise LookupError(f"No record pending on channel for commit tag {commit_tag}")
        return queue.popleft()

    def pending(self, commit_tag: int) -> int:
        """Number of records waiting for ``commit_tag``."""
        return len(self._queues.get(commit_tag, ()))

    def __repr__(self):
        total = sum(len(q) for q in self._queues.values())
        return f"<InMemoryChannel pending={total}>"
