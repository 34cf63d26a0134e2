"""
状态模型 - 通知流事件与界面状态

通知事件（类型化）：
- StatusNotification: 后端状态文本（可附带结构化 code）
- ProgressNotification: 后端进度百分比
- BatchCompleted / BatchFailed / BatchStopped: 本地批处理结果
- FormReset: 成功后延时清空表单
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class StatusPhase(str, Enum):
    """界面状态阶段"""
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class StatusCode(str, Enum):
    """后端结构化状态码（提供时优先于文本判定）"""
    RUNNING = "running"
    PROGRESS = "progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class StatusNotification:
    message: str
    code: StatusCode | None = None


@dataclass(frozen=True)
class ProgressNotification:
    percent: float


@dataclass(frozen=True)
class BatchCompleted:
    units_total: int = 0


@dataclass(frozen=True)
class BatchFailed:
    reason: str = ""


@dataclass(frozen=True)
class BatchStopped:
    """调用方在单元之间提前结束"""
    units_done: int = 0
    units_total: int = 0


@dataclass(frozen=True)
class FormReset:
    run_id: int = 0


Notification = (
    StatusNotification
    | ProgressNotification
    | BatchCompleted
    | BatchFailed
    | BatchStopped
    | FormReset
)


class StatusState(BaseModel):
    """状态通道持有的界面状态"""

    phase: StatusPhase = StatusPhase.IDLE
    progress_percent: int = Field(0, ge=0, le=100)
    message: str = ""
    error_message: str = ""

    @property
    def is_processing(self) -> bool:
        return self.phase == StatusPhase.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self.phase in (StatusPhase.SUCCEEDED, StatusPhase.FAILED)
