"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- Project/Estimate/FileRecord/Annotation: 后端扁平记录
- ExportUnit: 单个合并上传单元
- ExportRequest/ExportForm: 表单参数
- StatusState 及通知事件: 状态通道
- ExportJob: 任务状态与单元结果
"""

from .export_unit import ExportUnit
from .job import ExportJob, JobProgress, JobStatus, UnitResult
from .records import Annotation, Estimate, FetchAllDataResponse, FileRecord, Project, RecordId
from .request import ExportForm, ExportMode, ExportRequest
from .status import (
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

__all__ = [
    "Project",
    "Estimate",
    "FileRecord",
    "Annotation",
    "FetchAllDataResponse",
    "RecordId",
    "ExportUnit",
    "ExportRequest",
    "ExportForm",
    "ExportMode",
    "ExportJob",
    "JobProgress",
    "JobStatus",
    "UnitResult",
    "StatusState",
    "StatusPhase",
    "StatusCode",
    "Notification",
    "StatusNotification",
    "ProgressNotification",
    "BatchCompleted",
    "BatchFailed",
    "BatchStopped",
    "FormReset",
]
