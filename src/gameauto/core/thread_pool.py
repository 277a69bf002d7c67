"""
全局线程池管理

- 计算池：OCR 等 CPU 密集、可能卡住的操作。调用方通过 run_with_timeout
  在有界时间内等待结果，超时后放弃等待：排队中的任务被取消，
  已在运行的任务自行结束。
"""
from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from .logger import logger

_compute_pool: Optional[ThreadPoolExecutor] = None
_pool_lock = threading.Lock()


def _auto_compute_pool_size() -> int:
    """根据 CPU 核数自动计算计算线程池大小。

    规则: max(2, cpu_count // 2)，上限 8。
    """
    cpu = os.cpu_count() or 4
    return min(max(2, cpu // 2), 8)


def get_compute_pool() -> ThreadPoolExecutor:
    """获取计算线程池（OCR 等）。"""
    global _compute_pool
    with _pool_lock:
        if _compute_pool is None:
            size = _auto_compute_pool_size()
            _compute_pool = ThreadPoolExecutor(
                max_workers=size,
                thread_name_prefix="cv-compute",
            )
            logger.info("计算线程池已创建: max_workers={}", size)
        return _compute_pool


def run_with_timeout(func, *args, timeout: float):
    """在计算线程池中执行同步函数，最多等待 timeout 秒。

    Raises:
        concurrent.futures.TimeoutError: 超时
        以及 func 自身抛出的异常
    """
    future = get_compute_pool().submit(func, *args)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        # 尚未开始的任务取消后不再执行；已在运行的无法中断
        future.cancel()
        raise


def shutdown_pools() -> None:
    """关闭所有线程池（在进程退出时调用）。"""
    global _compute_pool
    with _pool_lock:
        if _compute_pool:
            _compute_pool.shutdown(wait=False)
            _compute_pool = None
    logger.info("线程池已关闭")
