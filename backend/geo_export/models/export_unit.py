"""
导出单元模型 - 一个 (项目, 预算, 文件) 组合的合并上传单元

由 RecordJoiner 派生，不持久化
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .records import Annotation, RecordId


class ExportUnit(BaseModel):
    """导出单元"""

    model_config = ConfigDict(frozen=True)

    project_id: RecordId
    estimate_id: RecordId
    file_id: RecordId
    document_b64: str = Field(..., repr=False, description="base64编码的PDF")
    overlay_set: tuple[Annotation, ...] = ()
    output_path: str
    display_name: str

    @property
    def overlay_count(self) -> int:
        return len(self.overlay_set)
