"""
批注合并器 - 将导出单元的批注集合合并进PDF

职责：
1. 解码base64文档并加载（就绪后才导入批注）
2. 按批注集合顺序依次导入（无冲突处理，后者叠加）
3. 全部导入生效后再序列化（不会输出部分批注）
4. 任何退出路径都释放文档句柄

测试要点：
- test_merge_bakes_annotations: 批注写入输出PDF
- test_merge_empty_overlay_set: 无批注时原样输出
- test_merge_invalid_base64: 非法base64
- test_merge_closes_document_on_failure: 失败时释放句柄
"""

from __future__ import annotations

import base64
import binascii
import logging
from contextlib import closing
from typing import Sequence

from ..interfaces import IAnnotationMerger, IDocumentRenderer, MergeError
from ..models import Annotation, ExportUnit

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "base64,"


def decode_document(document_b64: str) -> bytes:
    """解码base64文档（兼容 data:application/pdf;base64, 前缀）"""
    if not document_b64:
        raise MergeError("文档内容为空")
    text = document_b64
    if text.startswith("data:") and DATA_URI_PREFIX in text:
        text = text.split(DATA_URI_PREFIX, 1)[1]
    text = "".join(text.split())
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MergeError(f"文档base64解码失败: {e}") from e


class AnnotationMerger(IAnnotationMerger):
    """批注合并器实现"""

    def __init__(self, renderer: IDocumentRenderer | None = None):
        if renderer is None:
            from .renderer import PyMuPDFRenderer

            renderer = PyMuPDFRenderer()
        self.renderer = renderer

    def merge(
        self,
        document_b64: str,
        overlay_set: Sequence[Annotation],
        filename: str | None = None,
    ) -> bytes:
        """合并批注，返回PDF字节"""
        document_bytes = decode_document(document_b64)

        with closing(self.renderer.open(document_bytes, filename)) as doc:
            for index, annotation in enumerate(overlay_set):
                markup = annotation.overlay_markup
                if not markup.strip():
                    logger.debug(f"跳过空批注: {filename} #{index}")
                    continue
                try:
                    doc.import_overlay(markup)
                except MergeError:
                    raise
                except Exception as e:
                    raise MergeError(f"批注导入失败: {filename} #{index}: {e}") from e

            # 导出批注状态作为导入完成的确认点
            state = doc.export_overlay_state()
            logger.debug(f"批注已导入: {filename} ({len(overlay_set)} 条, {len(state)} 字符)")

            try:
                return doc.serialize(with_overlays=True)
            except MergeError:
                raise
            except Exception as e:
                raise MergeError(f"文档序列化失败: {filename}: {e}") from e

    def merge_unit(self, unit: ExportUnit) -> bytes:
        """合并单个导出单元"""
        return self.merge(unit.document_b64, unit.overlay_set, unit.display_name)
