"""
任务管理器 - 导出任务创建/查询/更新

职责：
1. 创建任务并分配ID
2. 任务状态持久化（storage/jobs/<job_id>/job.json）
3. 任务查询

测试要点：
- test_create_job: 创建任务
- test_get_job_from_disk: 缓存未命中时从磁盘加载
- test_update_job: 更新任务
- test_list_jobs: 按状态过滤
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from pydantic import ValidationError

from ..config import RuntimeConfig, get_config
from ..interfaces import IJobManager
from ..models import ExportJob, ExportMode, ExportRequest, JobStatus

logger = logging.getLogger(__name__)


class JobManager(IJobManager):
    """任务管理器实现"""

    def __init__(self, config: RuntimeConfig | None = None):
        self.config = config or get_config()
        self._jobs: dict[str, ExportJob] = {}  # 内存缓存

    def create_job(self, request: ExportRequest, mode: ExportMode, **kwargs: Any) -> ExportJob:
        """创建任务"""
        job = ExportJob(job_id=str(uuid.uuid4()), request=request, mode=mode, **kwargs)
        self._jobs[job.job_id] = job
        self._persist_job(job)
        return job

    def get_job(self, job_id: str) -> ExportJob | None:
        """获取任务"""
        if job_id in self._jobs:
            return self._jobs[job_id]

        job = self._load_job(job_id)
        if job:
            self._jobs[job_id] = job
        return job

    def update_job(self, job: ExportJob) -> None:
        """更新任务状态"""
        self._jobs[job.job_id] = job
        self._persist_job(job)

    def list_jobs(
        self,
        status: JobStatus | None = None,
        limit: int = 100,
    ) -> list[ExportJob]:
        """列出任务"""
        jobs = list(self._jobs.values())

        if status:
            jobs = [j for j in jobs if j.status == status]

        # 按创建时间降序
        jobs.sort(key=lambda j: j.created_at, reverse=True)

        return jobs[:limit]

    def _persist_job(self, job: ExportJob) -> None:
        """持久化任务"""
        job_dir = self.config.get_job_dir(job.job_id)
        job_dir.mkdir(parents=True, exist_ok=True)

        job_file = job_dir / "job.json"
        with open(job_file, "w", encoding="utf-8") as f:
            json.dump(job.model_dump(mode="json", by_alias=True), f, ensure_ascii=False, indent=2)

    def _load_job(self, job_id: str) -> ExportJob | None:
        """从磁盘加载任务"""
        job_file = self.config.get_job_dir(job_id) / "job.json"

        if not job_file.exists():
            return None

        try:
            with open(job_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return ExportJob.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"任务记录读取失败: {job_file}: {e}")
            return None
