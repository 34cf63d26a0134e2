"""
模块接口契约 - 定义各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换

使用方式：
    from geo_export.interfaces import IUploader

    class FakeUploader(IUploader):
        def upload(self, merged_bytes, output_path, display_name, base_path_override):
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from .models import (
        Annotation,
        Estimate,
        ExportJob,
        ExportMode,
        ExportRequest,
        ExportUnit,
        FetchAllDataResponse,
        FileRecord,
        Project,
    )


# ============================================================================
# 导出处理模块接口
# ============================================================================

class IRecordJoiner(ABC):
    """记录拼接器接口 - 扁平记录 → 导出单元序列"""

    @abstractmethod
    def join(
        self,
        projects: Sequence[Project],
        files: Sequence[FileRecord | None],
        estimates: Sequence[Estimate],
        annotations: Sequence[Annotation],
    ) -> list[ExportUnit]:
        """
        按 项目→预算→文件 的嵌套顺序拼接导出单元

        Args:
            projects: 项目记录（保持输入顺序）
            files: 文件记录（无文档内容的记录会被过滤）
            estimates: 预算记录
            annotations: 批注记录

        Returns:
            确定顺序的导出单元列表（空输入返回空列表）
        """
        ...


class IRenderedDocument(ABC):
    """已加载文档句柄 - 渲染能力的单文档视图"""

    @abstractmethod
    def import_overlay(self, markup: str) -> None:
        """导入一段批注标记（XFDF）"""
        ...

    @abstractmethod
    def export_overlay_state(self) -> str:
        """导出当前已导入批注的XFDF"""
        ...

    @abstractmethod
    def serialize(self, with_overlays: bool = True) -> bytes:
        """将文档（含批注）序列化为字节"""
        ...

    @abstractmethod
    def close(self) -> None:
        """释放文档句柄"""
        ...


class IDocumentRenderer(ABC):
    """文档渲染能力接口"""

    @abstractmethod
    def open(self, document_bytes: bytes, filename: str | None = None) -> IRenderedDocument:
        """
        从字节加载文档，返回时文档已就绪

        Raises:
            MergeError: 文档损坏/为空/非PDF
        """
        ...


class IAnnotationMerger(ABC):
    """批注合并器接口"""

    @abstractmethod
    def merge(
        self,
        document_b64: str,
        overlay_set: Sequence[Annotation],
        filename: str | None = None,
    ) -> bytes:
        """
        将批注集合按顺序合并进文档

        Args:
            document_b64: base64编码的PDF
            overlay_set: 批注集合（导入顺序 = 列表顺序）
            filename: 仅用于日志与错误信息

        Returns:
            合并后的PDF字节

        Raises:
            MergeError: 加载/导入/序列化失败
        """
        ...


class IUploader(ABC):
    """上传器接口"""

    @abstractmethod
    def upload(
        self,
        merged_bytes: bytes,
        output_path: str,
        display_name: str,
        base_path_override: str,
    ) -> None:
        """
        上传合并后的文档

        Raises:
            UploadError: 传输失败或后端返回非2xx
        """
        ...


# ============================================================================
# 后端通信接口
# ============================================================================

class IBackendClient(ABC):
    """后端HTTP接口"""

    @abstractmethod
    def trigger_download(self, request: ExportRequest) -> None:
        """触发后端异步导出（进度经通知流返回）"""
        ...

    @abstractmethod
    def fetch_all_data(self, request: ExportRequest) -> FetchAllDataResponse:
        """同步拉取全部记录（批注合并模式）"""
        ...

    @abstractmethod
    def upload_file(
        self, content: bytes, filename: str, path: str, custom_path: str
    ) -> None:
        """上传单个文件到后端文件系统"""
        ...


# ============================================================================
# 任务管理接口
# ============================================================================

class IJobManager(ABC):
    """任务管理器接口"""

    @abstractmethod
    def create_job(self, request: ExportRequest, mode: ExportMode, **kwargs: Any) -> ExportJob:
        """创建任务"""
        ...

    @abstractmethod
    def get_job(self, job_id: str) -> ExportJob | None:
        """获取任务"""
        ...

    @abstractmethod
    def update_job(self, job: ExportJob) -> None:
        """更新任务状态"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class GeoExportError(Exception):
    """基础异常"""
    pass


class InvalidInputError(GeoExportError):
    """输入非法（路径段为空等）"""
    pass


class MergeError(GeoExportError):
    """批注合并失败"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class UploadError(GeoExportError):
    """上传失败"""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        network_error: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.network_error = network_error


class BackendError(GeoExportError):
    """后端接口调用失败（download / fetch-all-data）"""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotificationParseError(GeoExportError):
    """通知载荷格式错误"""
    pass


class BatchStateError(GeoExportError):
    """批处理游标非法状态迁移"""
    pass
