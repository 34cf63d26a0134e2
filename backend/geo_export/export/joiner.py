"""
记录拼接器 - 从扁平记录重建 项目→预算→文件→批注 层级

职责：
1. 过滤无文档内容的文件记录（正常情况，不报错）
2. 每个项目内做 预算 × 文件 的笛卡尔积
3. 为每个组合收集批注子集并派生输出路径

测试要点：
- test_join_single_unit: 单项目单预算单文件
- test_join_drops_empty_files: 无内容文件不出现在任何单元中
- test_join_cross_product_count: 单元数 = Σ 预算数 × 文件数
- test_join_order: 输出顺序确定
- test_join_duplicate_paths_flagged: 同名文件路径冲突告警
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Sequence

from ..interfaces import IRecordJoiner
from ..models import Annotation, Estimate, ExportUnit, FileRecord, Project
from .path_resolver import PathResolver

logger = logging.getLogger(__name__)


class RecordJoiner(IRecordJoiner):
    """记录拼接器实现"""

    def __init__(self, company_id: Any = None, resolver: PathResolver | None = None):
        # 公司ID优先取提交请求中的值，缺省时退回项目记录上的 companyId
        self.company_id = company_id
        self.resolver = resolver or PathResolver()

    def join(
        self,
        projects: Sequence[Project],
        files: Sequence[FileRecord | None],
        estimates: Sequence[Estimate],
        annotations: Sequence[Annotation],
    ) -> list[ExportUnit]:
        """拼接导出单元"""
        valid_files = [f for f in files if f is not None and f.has_document]
        dropped = len(files) - len(valid_files)
        if dropped:
            logger.info(f"跳过无文档内容的文件记录: {dropped} 条")

        units: list[ExportUnit] = []
        for project in projects:
            company_id = self.company_id if self.company_id not in (None, "") else project.company_id
            project_estimates = [e for e in estimates if e.geo_project_id == project.id]
            project_files = [f for f in valid_files if f.geo_project_id == project.id]

            for estimate in project_estimates:
                for file in project_files:
                    overlay_set = tuple(
                        a for a in annotations
                        if a.geo_estimate_id == estimate.id and a.file_id == file.id
                    )
                    path = self.resolver.resolve(company_id, project.id, estimate.id, file.name)
                    units.append(
                        ExportUnit(
                            project_id=project.id,
                            estimate_id=estimate.id,
                            file_id=file.id,
                            document_b64=file.base64_file,
                            overlay_set=overlay_set,
                            output_path=path,
                            display_name=file.name,
                        )
                    )

        self._warn_path_collisions(units)
        return units

    def _warn_path_collisions(self, units: list[ExportUnit]) -> None:
        """同一路径出现多次时，后处理的单元会覆盖先处理的单元"""
        for path, count in find_path_collisions(units).items():
            logger.warning(f"输出路径冲突 ({count} 个单元): {path}，按处理顺序后者覆盖前者")


def find_path_collisions(units: Sequence[ExportUnit]) -> dict[str, int]:
    """返回出现多次的输出路径及次数"""
    counts = Counter(u.output_path for u in units)
    return {path: n for path, n in counts.items() if n > 1}
