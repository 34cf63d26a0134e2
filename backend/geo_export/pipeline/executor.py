"""
批处理执行器 - 驱动游标逐个 合并→上传→前进

职责：
1. 严格顺序处理：同一时刻只打开一个文档、只有一个上传在途
2. 记录每个单元的处理结果，更新任务进度
3. 合并/上传（含参数校验）失败即中止批次（不跳过、不重试）
4. 单元之间可由调用方提前结束（已上传的不回滚）

测试要点：
- test_execute_all_units: 全部成功 → DONE
- test_merge_failure_aborts: 合并失败后不再处理后续单元
- test_upload_failure_aborts: 上传失败中止
- test_should_continue_stops_between_units: 提前结束
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from ..interfaces import GeoExportError, IAnnotationMerger, IJobManager, IUploader
from ..models import UnitResult
from .batch_cursor import BatchCursor, CursorPhase

if TYPE_CHECKING:
    from ..models import ExportJob

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """批处理结果"""
    phase: CursorPhase
    units_total: int
    units_done: int
    stopped_early: bool = False
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.phase == CursorPhase.DONE


class BatchExecutor:
    """批处理执行器"""

    def __init__(
        self,
        merger: IAnnotationMerger,
        uploader: IUploader,
        job_manager: IJobManager | None = None,
    ):
        self.merger = merger
        self.uploader = uploader
        self.job_manager = job_manager

    def execute(
        self,
        job: ExportJob,
        cursor: BatchCursor,
        custom_path: str,
        should_continue: Callable[[], bool] | None = None,
    ) -> BatchReport:
        """执行批处理；失败时标记任务并重新抛出"""
        job.units_total = len(cursor)
        job.mark_running()
        self._persist(job)

        cursor.start()
        logger.info(f"[{job.job_id}] 开始批处理: {len(cursor)} 个单元")

        while cursor.phase == CursorPhase.PROCESSING:
            if cursor.position > 0 and should_continue is not None and not should_continue():
                logger.info(f"[{job.job_id}] 调用方提前结束于 {cursor.position}/{len(cursor)}")
                cursor.stop()
                job.mark_stopped()
                self._persist(job)
                return BatchReport(
                    phase=cursor.phase,
                    units_total=len(cursor),
                    units_done=cursor.position,
                    stopped_early=True,
                )

            unit = cursor.current()
            position = cursor.position
            job.progress.current_file = unit.display_name
            job.progress.message = f"处理中 ({position + 1}/{len(cursor)})"
            logger.info(f"[{job.job_id}] {job.progress.message}: {unit.output_path}")

            try:
                merged = self.merger.merge(unit.document_b64, unit.overlay_set, unit.display_name)
                self.uploader.upload(merged, unit.output_path, unit.display_name, custom_path)
            except GeoExportError as e:
                logger.error(f"[{job.job_id}] 单元失败 {unit.output_path}: {e}")
                job.record_unit(
                    UnitResult(
                        position=position,
                        output_path=unit.output_path,
                        display_name=unit.display_name,
                        ok=False,
                        error=str(e),
                    )
                )
                cursor.abort(e)
                job.mark_failed(str(e))
                self._persist(job)
                raise

            job.record_unit(
                UnitResult(
                    position=position,
                    output_path=unit.output_path,
                    display_name=unit.display_name,
                    ok=True,
                )
            )
            cursor.advance()
            self._persist(job)

        job.mark_succeeded()
        job.progress.message = "全部单元处理完成"
        self._persist(job)
        logger.info(f"[{job.job_id}] 批处理完成: {len(cursor)} 个单元")
        return BatchReport(
            phase=cursor.phase,
            units_total=len(cursor),
            units_done=cursor.position,
        )

    def _persist(self, job: ExportJob) -> None:
        if self.job_manager is not None:
            self.job_manager.update_job(job)
