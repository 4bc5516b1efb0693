"""
Process resource sampling backed by psutil.
"""

import os
import time
from typing import Callable, Optional

import psutil

from .models import ResourceSample


class ResourceSampler:
    """Reads CPU and memory usage of a process."""

    def __init__(
        self,
        process: Optional[psutil.Process] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.process = process or psutil.Process(os.getpid())
        self._clock = clock
        # The first cpu_percent call only primes the counter and returns 0.0
        self.process.cpu_percent(interval=None)

    def read(self) -> ResourceSample:
        """Take a non-blocking reading of the process."""
        cpu = self.process.cpu_percent(interval=None)
        memory = self.process.memory_info().rss
        return ResourceSample(
            timestamp=self._clock(),
            cpu_percent=float(cpu),
            memory_bytes=int(memory),
        )
