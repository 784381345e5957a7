from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import cast

from .models import DownloadResult, Task
from .pipeline import INTERNAL_ERROR_STATUS, ArticlePipeline
from .urls import is_acceptable

logger = logging.getLogger(__name__)

# worker 退出时写入结果队列的哨兵
_WORKER_DONE = object()


class EmptyBatchError(ValueError):
    """批次中没有任何有效链接。"""


@dataclass(frozen=True)
class BatchState:
    total: int = 0
    completed: int = 0
    succeeded: int = 0
    failed: int = 0
    not_found: int = 0


class BatchCounters:
    """批次计数器，所有 worker 通过同一把锁串行更新。"""

    def __init__(self, total: int) -> None:
        self._lock = threading.Lock()
        self._total = total
        self._completed = 0
        self._succeeded = 0
        self._failed = 0
        self._not_found = 0

    def record(self, result: DownloadResult) -> BatchState:
        with self._lock:
            self._completed += 1
            if result.success:
                self._succeeded += 1
            elif result.not_found:
                self._not_found += 1
            else:
                self._failed += 1
            return self._snapshot()

    def snapshot(self) -> BatchState:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> BatchState:
        return BatchState(
            total=self._total,
            completed=self._completed,
            succeeded=self._succeeded,
            failed=self._failed,
            not_found=self._not_found,
        )


def build_tasks(urls: Iterable[str]) -> list[Task]:
    """过滤无效链接，按输入顺序生成任务（序号从 1 开始）。"""
    accepted = [raw.strip() for raw in urls if is_acceptable(raw)]
    return [Task(sequence_index=idx, url=url) for idx, url in enumerate(accepted, start=1)]


class BatchRun:
    """一次批量下载的结果流。

    只能迭代一次，按完成顺序产出 DownloadResult；迭代在所有 worker 退出后结束。
    """

    def __init__(
        self,
        tasks: list[Task],
        pipeline: ArticlePipeline,
        *,
        concurrency: int,
        delay_seconds: float,
        cancel_event: threading.Event,
    ) -> None:
        self._tasks: queue.Queue[Task] = queue.Queue()
        for task in tasks:
            self._tasks.put_nowait(task)
        self._results: queue.Queue[object] = queue.Queue()
        self._pipeline = pipeline
        self._concurrency = concurrency
        self._delay_seconds = delay_seconds
        self._cancel = cancel_event
        self._counters = BatchCounters(len(tasks))
        self._iterated = False
        self._executor = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="csdn-worker")

    @property
    def total(self) -> int:
        return self._counters.snapshot().total

    @property
    def state(self) -> BatchState:
        return self._counters.snapshot()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """停止领取新任务；已开始的任务照常完成并产出结果。"""
        if not self._cancel.is_set():
            logger.info("收到取消信号，停止领取新任务")
        self._cancel.set()

    def start(self) -> None:
        for idx in range(self._concurrency):
            self._executor.submit(self._worker, idx)
        # worker 自行退出，这里不等待
        self._executor.shutdown(wait=False)

    def __iter__(self) -> Iterator[DownloadResult]:
        if self._iterated:
            raise RuntimeError("BatchRun 只能迭代一次")
        self._iterated = True
        return self._drain()

    def _drain(self) -> Iterator[DownloadResult]:
        finished_workers = 0
        while finished_workers < self._concurrency:
            item = self._results.get()
            if item is _WORKER_DONE:
                finished_workers += 1
                continue
            yield cast(DownloadResult, item)

        state = self._counters.snapshot()
        logger.info(
            "批次结束: 总数 %d, 完成 %d, 成功 %d, 失败 %d, 不存在 %d%s",
            state.total,
            state.completed,
            state.succeeded,
            state.failed,
            state.not_found,
            " (已取消)" if self.cancelled else "",
        )

    def _worker(self, worker_idx: int) -> None:
        try:
            while not self._cancel.is_set():
                try:
                    task = self._tasks.get_nowait()
                except queue.Empty:
                    return

                result = self._run_task(task)
                state = self._counters.record(result)
                self._results.put(result)
                logger.info("进度: %d / %d (worker=%d)", state.completed, state.total, worker_idx)

                # 每个 worker 独立延时，不是全局限速；取消时立即结束等待
                if self._delay_seconds > 0 and not self._tasks.empty():
                    if self._cancel.wait(self._delay_seconds):
                        return
        finally:
            self._results.put(_WORKER_DONE)

    def _run_task(self, task: Task) -> DownloadResult:
        try:
            return self._pipeline.process(task)
        except Exception as exc:  # noqa: BLE001
            logger.exception("任务执行失败: index=%d url=%s", task.sequence_index, task.url)
            return DownloadResult.failure(
                task.url,
                f"任务执行失败: {exc}",
                INTERNAL_ERROR_STATUS,
                sequence_index=task.sequence_index,
            )


class BatchScheduler:
    """批量下载调度器（in-memory）。

    设计约束：
    - 固定数量的 worker 线程从同一个 FIFO 队列领取任务，不为每个任务建线程。
    - 每个 worker 处理完一个任务后独立延时，再领取下一个。
    - 结果按完成顺序流式产出；取消只影响尚未开始的任务。
    """

    def __init__(self, pipeline: ArticlePipeline, *, concurrency: int = 6, delay_ms: int = 1500) -> None:
        if concurrency <= 0:
            raise ValueError("concurrency 必须 > 0")
        if delay_ms < 0:
            raise ValueError("delay_ms 不能为负数")

        self._pipeline = pipeline
        self._concurrency = concurrency
        self._delay_seconds = delay_ms / 1000

    def run(self, urls: Iterable[str], cancel: threading.Event | None = None) -> BatchRun:
        """校验链接并启动 worker，返回只能消费一次的结果流。

        Raises:
            EmptyBatchError: 没有任何有效链接，此时不会启动 worker
        """
        tasks = build_tasks(urls)
        if not tasks:
            raise EmptyBatchError("没有有效的CSDN链接")

        logger.info(
            "开始批量下载: %d 个任务, 并发 %d, 每个 worker 延时 %.2fs",
            len(tasks),
            self._concurrency,
            self._delay_seconds,
        )
        batch = BatchRun(
            tasks,
            self._pipeline,
            concurrency=self._concurrency,
            delay_seconds=self._delay_seconds,
            cancel_event=cancel or threading.Event(),
        )
        batch.start()
        return batch
