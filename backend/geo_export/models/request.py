"""
导出请求模型 - 用户表单参数

companyId/customPath/startRange/endRange/isChecked 原样提交给后端；
merge_annotations 只决定本地走哪种模式，不提交
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ExportMode(str, Enum):
    """导出模式"""
    BACKEND_EXPORT = "backend_export"        # 模式A: 后端导出，通知流汇报进度
    MERGE_ANNOTATIONS = "merge_annotations"  # 模式B: 拉取全部记录，本地逐个合并上传


class ExportRequest(BaseModel):
    """导出请求"""

    model_config = ConfigDict(populate_by_name=True)

    company_id: str = Field(..., min_length=1, alias="companyId")
    custom_path: str = Field(..., min_length=1, alias="customPath")
    start_range: str = Field(..., min_length=1, alias="startRange")
    end_range: str = Field(..., min_length=1, alias="endRange")
    is_checked: bool = Field(False, alias="isChecked", description="文件夹视图")
    merge_annotations: bool = Field(False, description="仅下载带批注的PDF")

    @property
    def mode(self) -> ExportMode:
        if self.merge_annotations:
            return ExportMode.MERGE_ANNOTATIONS
        return ExportMode.BACKEND_EXPORT

    def to_payload(self) -> dict[str, Any]:
        """后端请求体"""
        return self.model_dump(by_alias=True, exclude={"merge_annotations"})


class ExportForm(BaseModel):
    """表单当前输入（成功后按延时清空）"""

    company_id: str = ""
    custom_path: str = ""
    start_range: str = ""
    end_range: str = ""
    is_checked: bool = False

    @classmethod
    def from_request(cls, request: ExportRequest) -> ExportForm:
        return cls(
            company_id=request.company_id,
            custom_path=request.custom_path,
            start_range=request.start_range,
            end_range=request.end_range,
            is_checked=request.is_checked,
        )

    def reset(self) -> None:
        """清空全部输入"""
        self.company_id = ""
        self.custom_path = ""
        self.start_range = ""
        self.end_range = ""
        self.is_checked = False

    @property
    def is_empty(self) -> bool:
        return not any(
            [self.company_id, self.custom_path, self.start_range, self.end_range, self.is_checked]
        )
