"""
MPI transport for packed element records.

Partitioned analyses move elements between ranks as packed records; the
receiving rank re-resolves the node ids against its own domain.
"""

import logging
from typing import List, Optional

from mpi4py import MPI

logger = logging.getLogger(__name__)


class MPIChannel:
    """
    Point-to-point channel between this rank and ``peer``.

    Parameters
    ----------
    peer : int
        Rank records are sent to and received from.
    comm : MPI.Comm, optional
        Communicator, by default ``MPI.COMM_WORLD``.

    Notes
    -----
    Sends are non-blocking so that a rank may send to itself; call
    :meth:`flush` (or use the channel as a context manager) to wait for
    outstanding sends.
    """

    def __init__(self, peer: int, comm: Optional[MPI.Comm] = None):
        self.comm = comm if comm is not None else MPI.COMM_WORLD
        if not 0 <= peer < self.comm.Get_size():
            raise ValueError(f"peer rank {peer} out of range [0, {self.comm.Get_size() - 1}]")
        self.peer = peer
        self._requests: List[MPI.Request] = []

    def send_bytes(self, commit_tag: int, data: bytes) -> None:
        self._requests.append(self.comm.isend(bytes(data), dest=self.peer, tag=commit_tag))
        logger.debug(
            "rank %d queued %d bytes to rank %d (tag %d)",
            self.comm.Get_rank(),
            len(data),
            self.peer,
            commit_tag,
        )

    def recv_bytes(self, commit_tag: int) -> bytes:
        data = self.comm.recv(source=self.peer, tag=commit_tag)
        return bytes(data)

    def flush(self) -> None:
        """Wait for every pending send to complete."""
        for request in self._requests:
            request.wait()
        self._requests.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.flush()
        return False
