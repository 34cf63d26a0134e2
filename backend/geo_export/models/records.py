"""
后端记录模型 - /fetch-all-data 返回的扁平记录

字段名与后端JSON一致（camelCase别名），Python侧使用snake_case访问
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

RecordId = int | str


class _Record(BaseModel):
    """记录基类：不可变、接受别名与字段名、忽略未知字段"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Project(_Record):
    """项目（根分组键）"""
    id: RecordId
    company_id: RecordId | None = Field(None, alias="companyId")


class Estimate(_Record):
    """预算（隶属于一个项目）"""
    id: RecordId
    geo_project_id: RecordId = Field(..., alias="geoProjectId")


class FileRecord(_Record):
    """文件记录（base64File 可能缺失）"""
    id: RecordId
    geo_project_id: RecordId = Field(..., alias="geoProjectId")
    name: str = ""
    base64_file: str | None = Field(None, alias="base64File")

    @property
    def has_document(self) -> bool:
        """是否携带可导出的文档内容"""
        return bool(self.base64_file)


class Annotation(_Record):
    """批注（预算 × 文件 的复合关系，可为零或多条）"""
    geo_estimate_id: RecordId = Field(..., alias="geoEstimateId")
    file_id: RecordId = Field(..., alias="fileId")
    xfdf: str | None = None

    @property
    def overlay_markup(self) -> str:
        return self.xfdf or ""


class FetchAllDataResponse(_Record):
    """批量拉取结果"""
    geo_projects: list[Project] = Field(default_factory=list, alias="geoProjects")
    # 后端可能返回 null 占位
    geo_files: list[FileRecord | None] = Field(default_factory=list, alias="geoFiles")
    geo_estimates: list[Estimate] = Field(default_factory=list, alias="geoEstimates")
    geo_annotations: list[Annotation] = Field(default_factory=list, alias="geoAnnotations")
