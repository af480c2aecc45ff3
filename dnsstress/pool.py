"""Spawn and stop the worker threads."""

import threading
import time
from queue import Queue
from typing import List, Optional

from .models import StressConfig
from .worker import Worker


class WorkerPool:
    """Run ``config.concurrency`` workers spread round-robin over the domains."""

    def __init__(self, config: StressConfig, inbox: Queue):
        if not config.domains:
            raise ValueError("at least one target domain is required")
        self.config = config
        self.inbox = inbox
        self.shutdown = threading.Event()
        self.workers: List[Worker] = []
        self.threads: List[threading.Thread] = []

    def domain_for(self, index: int) -> str:
        return self.config.domains[index % len(self.config.domains)]

    def start(self):
        for worker_id in range(self.config.concurrency):
            worker = Worker(worker_id, self.domain_for(worker_id), self.config,
                            self.inbox, self.shutdown)
            thread = threading.Thread(target=worker.run, name=f"dnsstress-worker-{worker_id}",
                                      daemon=True)
            self.workers.append(worker)
            self.threads.append(thread)
            thread.start()

    def stop(self):
        """Signal every worker to stop after its current iteration."""
        if not self.shutdown.is_set():
            self.shutdown.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the workers; return True when all of them exited."""
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self.threads:
            if deadline is None:
                thread.join()
            else:
                thread.join(max(deadline - time.monotonic(), 0))
        return not self.is_running

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self.threads)
