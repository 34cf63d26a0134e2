"""
批处理游标 - 导出单元序列上的顺序状态机

状态：
- IDLE        初始
- PROCESSING  正在处理 position 指向的单元
- DONE        全部单元成功（终态）
- ABORTED     某单元合并/上传失败（终态）
- STOPPED     调用方在单元之间提前结束（终态，position < len）

约束：0 <= position <= len(sequence)；position 只由 advance 改变；
同一批次内单元严格按顺序、逐个处理

测试要点：
- test_empty_sequence_done: 空序列直接 DONE
- test_advance_to_done: 最后一个单元成功后 DONE
- test_abort_is_terminal: 中止后不可再前进
- test_stop_is_terminal: 提前结束后不可再前进
- test_illegal_transitions: 非法迁移抛错
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

from ..interfaces import BatchStateError
from ..models import ExportUnit


class CursorPhase(str, Enum):
    """游标状态枚举"""
    IDLE = "idle"
    PROCESSING = "processing"
    DONE = "done"
    ABORTED = "aborted"
    STOPPED = "stopped"


class BatchCursor:
    """批处理游标"""

    def __init__(self, sequence: Sequence[ExportUnit]):
        self._sequence: tuple[ExportUnit, ...] = tuple(sequence)
        self._position = 0
        self._phase = CursorPhase.IDLE
        self._error: Exception | None = None

    def __len__(self) -> int:
        return len(self._sequence)

    @property
    def sequence(self) -> tuple[ExportUnit, ...]:
        return self._sequence

    @property
    def position(self) -> int:
        return self._position

    @property
    def phase(self) -> CursorPhase:
        return self._phase

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def is_terminal(self) -> bool:
        return self._phase in (CursorPhase.DONE, CursorPhase.ABORTED, CursorPhase.STOPPED)

    @property
    def remaining(self) -> int:
        return len(self._sequence) - self._position

    def start(self) -> CursorPhase:
        """IDLE → PROCESSING(0)；空序列直接 DONE"""
        if self._phase != CursorPhase.IDLE:
            raise BatchStateError(f"只能从 IDLE 启动，当前: {self._phase.value}")
        self._phase = CursorPhase.PROCESSING if self._sequence else CursorPhase.DONE
        return self._phase

    def current(self) -> ExportUnit:
        """当前待处理单元"""
        if self._phase != CursorPhase.PROCESSING:
            raise BatchStateError(f"当前无待处理单元: {self._phase.value}")
        return self._sequence[self._position]

    def advance(self) -> CursorPhase:
        """当前单元合并与上传均成功后调用"""
        if self._phase != CursorPhase.PROCESSING:
            raise BatchStateError(f"只能在 PROCESSING 时前进，当前: {self._phase.value}")
        self._position += 1
        if self._position == len(self._sequence):
            self._phase = CursorPhase.DONE
        return self._phase

    def stop(self) -> None:
        """调用方在单元之间结束批次，已处理的单元保持不变"""
        if self._phase != CursorPhase.PROCESSING:
            raise BatchStateError(f"只能在 PROCESSING 时结束，当前: {self._phase.value}")
        self._phase = CursorPhase.STOPPED

    def abort(self, error: Exception) -> None:
        """当前单元失败，批次终止"""
        if self._phase != CursorPhase.PROCESSING:
            raise BatchStateError(f"只能在 PROCESSING 时中止，当前: {self._phase.value}")
        self._phase = CursorPhase.ABORTED
        self._error = error
