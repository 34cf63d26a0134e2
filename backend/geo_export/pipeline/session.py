"""
导出会话 - 一次表单提交的编排

模式A（后端导出）：POST /download 后由通知流汇报进度与完成
模式B（批注合并）：POST /fetch-all-data → 拼接导出单元 → 逐个合并上传

会话显式持有 表单 / 状态通道 / 当前游标，提交时初始化，终态或释放时清理

测试要点：
- test_submit_backend_export: 模式A触发并进入RUNNING
- test_submit_merge_mode_success: 模式B全部单元上传
- test_submit_merge_mode_failure: 模式B失败显示通用错误
- test_fetch_failure_surfaces_error: 拉取失败
"""

from __future__ import annotations

import logging
from typing import Callable

from ..interfaces import (
    GeoExportError,
    IAnnotationMerger,
    IBackendClient,
    IJobManager,
    IUploader,
)
from ..models import (
    BatchCompleted,
    BatchFailed,
    BatchStopped,
    ExportForm,
    ExportJob,
    ExportMode,
    ExportRequest,
    JobStatus,
    StatusPhase,
    StatusState,
)
from ..export.joiner import RecordJoiner, find_path_collisions
from .batch_cursor import BatchCursor
from .executor import BatchExecutor
from .job_manager import JobManager
from .status_channel import StatusChannel

logger = logging.getLogger(__name__)


class ExportSession:
    """导出会话"""

    def __init__(
        self,
        client: IBackendClient,
        *,
        channel: StatusChannel | None = None,
        merger: IAnnotationMerger | None = None,
        uploader: IUploader | None = None,
        job_manager: IJobManager | None = None,
    ):
        self.client = client
        self.form = ExportForm()
        self.channel = channel or StatusChannel()
        if self.channel.on_reset is None:
            self.channel.on_reset = self._reset_form

        if merger is None:
            from ..export.merger import AnnotationMerger

            merger = AnnotationMerger()
        if uploader is None:
            from ..export.uploader import Uploader

            uploader = Uploader(client)
        self.job_manager = job_manager or JobManager()
        self.executor = BatchExecutor(merger, uploader, self.job_manager)

        self.cursor: BatchCursor | None = None
        self.job: ExportJob | None = None

    @property
    def state(self) -> StatusState:
        return self.channel.state

    def submit(
        self,
        request: ExportRequest,
        should_continue: Callable[[], bool] | None = None,
    ) -> ExportJob:
        """提交导出请求"""
        self.form = ExportForm.from_request(request)
        self.cursor = None
        job = self.job_manager.create_job(request, request.mode)
        self.job = job
        self.channel.begin()
        logger.info(f"[{job.job_id}] 提交导出: mode={request.mode.value}")

        try:
            if request.mode == ExportMode.MERGE_ANNOTATIONS:
                self._run_merge_batch(job, request, should_continue)
            else:
                self.client.trigger_download(request)
                job.mark_running()
                self.job_manager.update_job(job)
        except GeoExportError as e:
            logger.error(f"[{job.job_id}] 导出失败: {e}")
            if job.status != JobStatus.FAILED:
                job.mark_failed(str(e))
                self.job_manager.update_job(job)
            self.channel.post(BatchFailed(str(e)))

        self.channel.process_pending()
        return job

    def wait_for_backend(self, timeout: float | None = None) -> StatusState:
        """模式A：消费通知直到终态，并同步到任务记录"""
        state = self.channel.run_until_terminal(timeout=timeout)
        job = self.job
        if job is not None and job.status == JobStatus.RUNNING:
            if state.phase == StatusPhase.SUCCEEDED:
                job.mark_succeeded()
            elif state.phase == StatusPhase.FAILED:
                job.mark_failed(state.message)
            job.progress.percent = state.progress_percent
            job.progress.message = state.message
            self.job_manager.update_job(job)
        return state

    def teardown(self) -> None:
        """释放会话状态"""
        self.channel.teardown()
        self.cursor = None
        self.job = None

    def _run_merge_batch(
        self,
        job: ExportJob,
        request: ExportRequest,
        should_continue: Callable[[], bool] | None,
    ) -> None:
        data = self.client.fetch_all_data(request)
        joiner = RecordJoiner(company_id=request.company_id)
        units = joiner.join(
            data.geo_projects,
            data.geo_files,
            data.geo_estimates,
            data.geo_annotations,
        )
        for path, count in find_path_collisions(units).items():
            job.add_flag(f"路径冲突:{path}x{count}")

        self.cursor = BatchCursor(units)
        report = self.executor.execute(job, self.cursor, request.custom_path, should_continue)

        if report.succeeded:
            self.channel.post(BatchCompleted(report.units_total))
        elif report.stopped_early:
            self.channel.post(BatchStopped(report.units_done, report.units_total))

    def _reset_form(self) -> None:
        self.form.reset()
