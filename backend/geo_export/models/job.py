"""
任务模型 - 一次表单提交对应一个导出任务

记录每个导出单元的处理结果，用于中止后追溯哪些单元已上传
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .request import ExportMode, ExportRequest


class JobStatus(str, Enum):
    """任务状态枚举"""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    STOPPED = "stopped"  # 调用方在单元之间提前结束


class JobProgress(BaseModel):
    """任务进度"""
    percent: int = 0
    units_done: int = 0
    current_file: str | None = None
    message: str = ""


class UnitResult(BaseModel):
    """单个导出单元的处理结果"""
    position: int
    output_path: str
    display_name: str
    ok: bool
    error: str | None = None


class ExportJob(BaseModel):
    """导出任务实体"""
    job_id: str = Field(..., description="UUID")
    request: ExportRequest
    mode: ExportMode

    # 状态
    status: JobStatus = JobStatus.QUEUED
    progress: JobProgress = Field(default_factory=JobProgress)

    # 批处理结果
    units_total: int = 0
    unit_results: list[UnitResult] = Field(default_factory=list)

    # 结果
    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def mark_running(self) -> None:
        """标记为运行中"""
        self.status = JobStatus.RUNNING
        self.started_at = datetime.now()

    def mark_succeeded(self) -> None:
        """标记为成功"""
        self.status = JobStatus.SUCCEEDED
        self.finished_at = datetime.now()
        self.progress.percent = 100

    def mark_failed(self, error: str) -> None:
        """标记为失败"""
        self.status = JobStatus.FAILED
        self.finished_at = datetime.now()
        self.errors.append(error)

    def mark_stopped(self) -> None:
        """标记为提前结束（已上传单元不回滚）"""
        self.status = JobStatus.STOPPED
        self.finished_at = datetime.now()

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)

    def record_unit(self, result: UnitResult) -> None:
        """记录单元结果并刷新进度"""
        self.unit_results.append(result)
        if result.ok:
            self.progress.units_done += 1
        if self.units_total:
            self.progress.percent = min(100, self.progress.units_done * 100 // self.units_total)

    @property
    def succeeded_paths(self) -> list[str]:
        return [r.output_path for r in self.unit_results if r.ok]
