"""
导出处理模块

子模块：
- path_resolver: 输出路径派生
- joiner: 扁平记录 → 导出单元
- xfdf: 批注标记解析
- renderer: PyMuPDF 渲染能力
- merger: 批注合并
- uploader: 合并结果上传
"""

from .joiner import RecordJoiner, find_path_collisions
from .merger import AnnotationMerger, decode_document
from .path_resolver import PathResolver, resolve
from .renderer import PyMuPDFRenderer
from .uploader import Uploader

__all__ = [
    "PathResolver",
    "resolve",
    "RecordJoiner",
    "find_path_collisions",
    "AnnotationMerger",
    "decode_document",
    "PyMuPDFRenderer",
    "Uploader",
]
