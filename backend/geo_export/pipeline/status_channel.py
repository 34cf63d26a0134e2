"""
状态通道 - 将后端通知流与本地批处理结果映射为界面状态

职责：
1. 解析原始 status/progress 载荷（格式错误则记录并丢弃）
2. 单消费者按到达顺序逐条应用，每条更新在锁内原子完成
3. 成功后按固定延时清空表单（只触发一次）

映射规则：
- 完成词表中的消息（或 code=succeeded）→ SUCCEEDED，进度100，延时清空表单
- 含 "error" 的消息（区分大小写，或 code=failed）→ FAILED，此后忽略进度
- 非 FAILED 时的进度 → 截断到 [0, 100]
- 其它消息 → 原样保存，阶段不变
- 本地提前结束 → 回到 IDLE（已上传的不回滚），显示停止位置

注意：文本子串判定是兼容后端现有词表的过渡方案，
后端提供 code 字段时以 code 为准

测试要点：
- test_completion_message_succeeds: 完成消息
- test_error_message_fails: 错误消息
- test_progress_clamped: 进度截断
- test_progress_ignored_after_failure: 失败后忽略进度
- test_reset_fires_once: 表单清空只触发一次
- test_malformed_payload_dropped: 格式错误的载荷被丢弃
"""

from __future__ import annotations

import logging
import math
import queue
import threading
from typing import Any, Callable

from ..config import get_config
from ..config.runtime_config import StatusConfig
from ..interfaces import NotificationParseError
from ..models import (
    BatchCompleted,
    BatchFailed,
    BatchStopped,
    FormReset,
    Notification,
    ProgressNotification,
    StatusCode,
    StatusNotification,
    StatusPhase,
    StatusState,
)

logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]


def timer_scheduler(delay_sec: float, callback: Callable[[], None]) -> threading.Timer:
    """默认调度器：守护线程定时器"""
    timer = threading.Timer(delay_sec, callback)
    timer.daemon = True
    timer.start()
    return timer


def parse_notification(
    event: str,
    payload: Any,
    *,
    status_event: str = "status",
    progress_event: str = "progress",
) -> Notification:
    """原始事件载荷 → 类型化通知"""
    if not isinstance(payload, dict):
        raise NotificationParseError(f"{event} 载荷不是对象: {payload!r}")

    if event == status_event:
        message = payload.get("message")
        if not isinstance(message, str):
            raise NotificationParseError(f"status 缺少 message: {payload!r}")
        code = payload.get("code")
        if code is None:
            return StatusNotification(message)
        try:
            return StatusNotification(message, StatusCode(code))
        except ValueError as e:
            raise NotificationParseError(f"未知状态码: {code!r}") from e

    if event == progress_event:
        percent = payload.get("percent")
        if isinstance(percent, bool) or not isinstance(percent, (int, float)):
            raise NotificationParseError(f"progress 缺少数值 percent: {payload!r}")
        if math.isnan(percent):
            raise NotificationParseError("progress percent 为 NaN")
        return ProgressNotification(float(percent))

    raise NotificationParseError(f"未知事件: {event}")


def clamp_percent(value: float) -> int:
    return int(round(min(100.0, max(0.0, value))))


class StatusChannel:
    """状态通道"""

    def __init__(
        self,
        config: StatusConfig | None = None,
        *,
        on_reset: Callable[[], None] | None = None,
        scheduler: Scheduler | None = None,
        reset_delay_sec: float | None = None,
        status_event: str | None = None,
        progress_event: str | None = None,
    ):
        runtime = get_config()
        self.config = config or runtime.status
        self.reset_delay_sec = (
            reset_delay_sec if reset_delay_sec is not None else self.config.reset_delay_ms / 1000.0
        )
        self.status_event = status_event or runtime.notifications.status_event
        self.progress_event = progress_event or runtime.notifications.progress_event
        self.on_reset = on_reset
        self.scheduler = scheduler or timer_scheduler

        self._queue: queue.Queue[Notification] = queue.Queue()
        self._lock = threading.RLock()
        self._state = StatusState()
        self._run_id = 0
        self._reset_scheduled = False
        self._reset_fired = False

    # === 读取 ===

    @property
    def state(self) -> StatusState:
        """状态快照"""
        with self._lock:
            return self._state.model_copy()

    def status_tone(self) -> str:
        """状态行显示色调：pending / done / info"""
        message = self.state.message
        if "start" in message:
            return "pending"
        if "end" in message or message == self.config.success_message:
            return "done"
        return "info"

    # === 生命周期 ===

    def begin(self) -> None:
        """提交时调用：丢弃上一轮遗留的通知，进入 RUNNING 并开启新一轮"""
        with self._lock:
            self._drain_queue()
            self._run_id += 1
            self._reset_scheduled = False
            self._reset_fired = False
            self._state = StatusState(phase=StatusPhase.RUNNING)

    def teardown(self) -> None:
        """丢弃未处理的通知并回到 IDLE"""
        with self._lock:
            self._drain_queue()
            self._run_id += 1
            self._reset_scheduled = False
            self._reset_fired = False
            self._state = StatusState()

    # === 投递 ===

    def post(self, notification: Notification) -> None:
        """任意线程投递通知"""
        self._queue.put(notification)

    def post_raw(self, event: str, payload: Any) -> bool:
        """投递原始载荷；格式错误时记录并丢弃"""
        try:
            notification = parse_notification(
                event,
                payload,
                status_event=self.status_event,
                progress_event=self.progress_event,
            )
        except NotificationParseError as e:
            logger.warning(f"丢弃格式错误的通知: {e}")
            return False
        self.post(notification)
        return True

    # === 消费 ===

    def process_pending(self) -> int:
        """处理队列中已到达的全部通知，返回处理条数"""
        count = 0
        while True:
            try:
                notification = self._queue.get_nowait()
            except queue.Empty:
                return count
            self.handle(notification)
            count += 1

    def run_until_terminal(self, timeout: float | None = None) -> StatusState:
        """阻塞消费直到 SUCCEEDED/FAILED；timeout 为单条等待上限"""
        while not self.state.is_terminal:
            try:
                notification = self._queue.get(timeout=timeout)
            except queue.Empty:
                break
            self.handle(notification)
        return self.state

    def handle(self, notification: Notification) -> None:
        """应用一条通知（原子）"""
        fire_reset = False
        with self._lock:
            if isinstance(notification, StatusNotification):
                self._apply_status(notification)
            elif isinstance(notification, ProgressNotification):
                self._apply_progress(notification)
            elif isinstance(notification, BatchCompleted):
                self._apply_batch_completed(notification)
            elif isinstance(notification, BatchFailed):
                self._apply_batch_failed(notification)
            elif isinstance(notification, BatchStopped):
                self._apply_batch_stopped(notification)
            elif isinstance(notification, FormReset):
                fire_reset = self._apply_reset(notification)

        if fire_reset and self.on_reset is not None:
            self.on_reset()

    # === 规则 ===

    def _apply_status(self, n: StatusNotification) -> None:
        self._state.message = n.message
        if self._state.phase == StatusPhase.FAILED:
            return

        if n.code is not None:
            succeeded = n.code == StatusCode.SUCCEEDED
            failed = n.code == StatusCode.FAILED
        else:
            succeeded = n.message in self.config.completion_messages
            failed = self.config.error_marker in n.message

        if succeeded:
            self._state.phase = StatusPhase.SUCCEEDED
            self._state.progress_percent = 100
            self._schedule_reset()
        elif failed:
            self._state.phase = StatusPhase.FAILED
            self._state.error_message = self.config.error_message
            logger.error(f"后端报告错误: {n.message}")

    def _apply_progress(self, n: ProgressNotification) -> None:
        if self._state.phase == StatusPhase.FAILED:
            return
        self._state.progress_percent = clamp_percent(n.percent)

    def _apply_batch_completed(self, n: BatchCompleted) -> None:
        if self._state.phase == StatusPhase.FAILED:
            return
        self._state.phase = StatusPhase.SUCCEEDED
        self._state.message = self.config.success_message
        logger.info(f"批处理完成: {n.units_total} 个单元")

    def _apply_batch_failed(self, n: BatchFailed) -> None:
        self._state.phase = StatusPhase.FAILED
        self._state.error_message = self.config.error_message
        logger.error(f"批处理失败: {n.reason}")

    def _apply_batch_stopped(self, n: BatchStopped) -> None:
        if self._state.phase == StatusPhase.FAILED:
            return
        self._state.phase = StatusPhase.IDLE
        self._state.message = f"Stopped after {n.units_done} of {n.units_total} files"
        logger.info(f"批处理提前结束: {n.units_done}/{n.units_total}")

    def _apply_reset(self, n: FormReset) -> bool:
        if n.run_id != self._run_id or not self._reset_scheduled or self._reset_fired:
            return False
        self._reset_fired = True
        self._state.progress_percent = 0
        self._state.message = self.config.success_message
        return True

    def _schedule_reset(self) -> None:
        if self._reset_scheduled:
            return
        self._reset_scheduled = True
        run_id = self._run_id
        self.scheduler(self.reset_delay_sec, lambda: self.post(FormReset(run_id)))

    def _drain_queue(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return
