"""
流水线模块 - 批处理编排与状态管理

子模块：
- batch_cursor: 导出单元顺序状态机
- executor: 合并→上传→前进 执行器
- status_channel: 通知流 → 界面状态
- job_manager: 任务管理
- session: 一次提交的编排（模式A/模式B）
"""

from .batch_cursor import BatchCursor, CursorPhase
from .executor import BatchExecutor, BatchReport
from .job_manager import JobManager
from .session import ExportSession
from .status_channel import StatusChannel, parse_notification

__all__ = [
    "BatchCursor",
    "CursorPhase",
    "BatchExecutor",
    "BatchReport",
    "JobManager",
    "ExportSession",
    "StatusChannel",
    "parse_notification",
]
