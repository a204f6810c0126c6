"""Batch scheduling: the bounded worker pool and the run controller."""

from .controller import BatchController
from .worker_pool import PoolStats, WorkerPool

__all__ = ["BatchController", "PoolStats", "WorkerPool"]
