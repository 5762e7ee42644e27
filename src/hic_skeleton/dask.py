import logging
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from contextlib import ExitStack
from enum import Enum
from typing import Any, Dict

import dask

logger = logging.getLogger(__name__)


class SchedulerType(Enum):
    default = "default"
    synchronous = "synchronous"
    threads = "threads"
    processes = "processes"
    local_cluster = "local_cluster"


class ExecContext(ExitStack):
    """Configure the dask scheduler used to process chromosomes in parallel"""

    def __init__(self, scheduler: SchedulerType, scheduler_kwds: Dict[Any, Any]):
        super().__init__()
        self.scheduler = scheduler
        self.scheduler_kwds = dict(scheduler_kwds)

    def __enter__(self):
        super().__enter__()
        logger.debug(f"Setting up env: {self.scheduler} {self.scheduler_kwds}")
        if self.scheduler is SchedulerType.default:
            logger.debug(f"Scheduler: {self.scheduler}")
        elif self.scheduler is SchedulerType.synchronous:
            self.enter_context(dask.config.set(scheduler="synchronous"))
        elif self.scheduler is SchedulerType.threads:
            n_workers = self.scheduler_kwds.get("n_workers", None)
            if n_workers:
                pool = self.enter_context(ThreadPoolExecutor(n_workers))
                self.enter_context(dask.config.set(scheduler="threads", pool=pool))
            else:
                self.enter_context(dask.config.set(scheduler="threads"))
        elif self.scheduler is SchedulerType.processes:
            n_workers = self.scheduler_kwds.get("n_workers", None)
            if n_workers:
                pool = self.enter_context(ProcessPoolExecutor(n_workers))
                self.enter_context(dask.config.set(scheduler="processes", pool=pool))
            else:
                self.enter_context(dask.config.set(scheduler="processes"))
        elif self.scheduler is SchedulerType.local_cluster:
            from dask.distributed import Client, LocalCluster

            cluster = self.enter_context(LocalCluster(**self.scheduler_kwds))
            client = self.enter_context(Client(cluster))
            logger.debug(f"Started LocalCluster:\n{cluster}\n{client}\n")
        return self
