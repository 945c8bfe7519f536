"""
Background transfer workers.

Each worker is a separate process running a fixed number of sequential GETs
or POSTs against the server. Nobody waits for their results: the sampler only
needs them to keep the link busy while it reads the interface counters.
Stopping is best-effort. Without termination configured the workers are left
to finish on their own, (they are daemon processes, so they go away with this
process at the latest), and a following measurement may still see some of
their traffic.
"""

import logging
import multiprocessing
import os
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .fetcher import download_url, upload_url
from .models import DOWNLOAD, UPLOAD, Server

_logger = logging.getLogger(__name__)

PAYLOAD_PREFIX = b"content1="
PAYLOAD_ALPHABET = b"0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# terminate() attempts before falling back to kill()
TERMINATE_ATTEMPTS = 3
JOIN_TIMEOUT = 1.0


def create_upload_payload(path: str, size: int) -> str:
    """
    Write the POST body used by the upload workers.

    The file holds exactly `size` bytes: a form field prefix followed by the
    alphabet repeated. Any previous payload at path is replaced.

    Returns:
        path
    """
    body_size = size - len(PAYLOAD_PREFIX)
    if body_size < 0:
        raise ValueError(f"Upload size must be at least {len(PAYLOAD_PREFIX)} bytes")
    repeats, remainder = divmod(body_size, len(PAYLOAD_ALPHABET))
    if os.path.exists(path):
        os.remove(path)
    with open(path, "wb") as f:
        f.write(PAYLOAD_PREFIX)
        f.write(PAYLOAD_ALPHABET * repeats)
        f.write(PAYLOAD_ALPHABET[:remainder])
    return path


def transfer_loop(fetcher, kind: str, host: str, repeat: int, resource: Any) -> int:
    """
    Run `repeat` transfers back to back. Failures are ignored.

    Args:
        fetcher: Object with fetch_to_file/post_file
        kind: DOWNLOAD or UPLOAD
        host: Server "host:port"
        repeat: Number of transfers
        resource: Download image size, or path of the upload payload

    Returns:
        Number of transfers that succeeded, (only useful to tests; the
        process exit code does not carry it)
    """
    ok = 0
    for _ in range(repeat):
        try:
            if kind == DOWNLOAD:
                done = fetcher.fetch_to_file(download_url(host, resource))
            else:
                done = fetcher.post_file(upload_url(host), resource)
        except Exception as e:  # per-request errors are not reported
            _logger.debug("%s transfer raised: %s", kind, e)
            done = False
        if done:
            ok += 1
    return ok


def _run_worker(fetcher, kind: str, host: str, repeat: int, resource: Any) -> None:
    # under fork the parent's connection pool comes along; never share it
    fetcher.reset()
    transfer_loop(fetcher, kind, host, repeat, resource)


@dataclass
class WorkerHandle:
    kind: str
    host: str
    processes: List[Any] = field(default_factory=list)

    def alive(self) -> List[Any]:
        return [p for p in self.processes if p.is_alive()]


class TransferWorkerPool:
    """
    Launches `clients` concurrent transfer processes for one measurement.

    Args:
        fetcher: Transport handed to every worker, (must be picklable and
                 provide reset() to drop connections inherited across fork)
        clients: Number of workers to start
        terminate: Kill leftover workers in stop(); otherwise abandon them
        process_factory: Callable building a process-like object with
                         start/is_alive/terminate/kill/join
    """

    def __init__(
        self,
        fetcher,
        clients: int,
        terminate: bool = False,
        process_factory: Optional[Callable[..., Any]] = None,
    ):
        if clients < 1:
            raise ValueError("clients must be at least 1")
        self.fetcher = fetcher
        self.clients = clients
        self.terminate = terminate
        self._process_factory = process_factory or multiprocessing.get_context().Process

    def start(self, kind: str, repeat: int, server: Server, resource: Any) -> WorkerHandle:
        if kind not in (DOWNLOAD, UPLOAD):
            raise ValueError(f"Unknown transfer kind: {kind}")
        handle = WorkerHandle(kind=kind, host=server.host)
        for i in range(self.clients):
            process = self._process_factory(
                target=_run_worker,
                args=(self.fetcher, kind, server.host, repeat, resource),
                name=f"{kind}-worker-{i}",
                daemon=True,
            )
            process.start()
            handle.processes.append(process)
        _logger.debug("Started %d %s workers against %s", self.clients, kind, server.host)
        return handle

    def stop(self, handle: WorkerHandle) -> bool:
        """
        Stop the workers behind handle.

        Returns:
            True if no worker is left running. Without termination configured
            this only reports whether the abandoned workers happened to finish.
        """
        if not self.terminate:
            running = handle.alive()
            _logger.debug("Leaving %d %s workers to finish", len(running), handle.kind)
            return not running
        attempts = 0
        remaining = handle.alive()
        while remaining:
            for process in remaining:
                if attempts < TERMINATE_ATTEMPTS:
                    process.terminate()
                else:
                    process.kill()
            for process in remaining:
                process.join(JOIN_TIMEOUT)
            attempts += 1
            remaining = handle.alive()
        _logger.debug("Terminated %s workers after %d round(s)", handle.kind, attempts)
        return True
