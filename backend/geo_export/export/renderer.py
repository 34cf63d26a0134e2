"""
PDF 渲染能力 - 基于 PyMuPDF 的文档加载/批注导入/序列化

职责：
1. 从字节加载PDF（返回即就绪）
2. 按顺序导入XFDF批注（后导入者叠加在先导入者之上）
3. 导出当前批注状态、序列化含批注的PDF

依赖：
- PyMuPDF (fitz)

测试要点：
- test_open_rejects_empty: 空字节
- test_open_rejects_corrupt: 损坏数据
- test_import_square: 矩形批注落盘
- test_delete_by_name: 删除指令
- test_unsupported_element_skipped: 不支持的批注类型跳过
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Callable

import fitz  # PyMuPDF

from ..config import get_config
from ..interfaces import IDocumentRenderer, IRenderedDocument, MergeError
from .xfdf import (
    OP_ADD,
    OP_DELETE,
    OP_MODIFY,
    XfdfAnnotation,
    XfdfParseError,
    build_xfdf,
    parse_color,
    parse_floats,
    parse_point,
    parse_point_list,
    parse_rect,
    parse_xfdf,
)

logger = logging.getLogger(__name__)

TEXT_ICONS = {"Comment", "Help", "Insert", "Key", "NewParagraph", "Note", "Paragraph"}
FILLABLE_KINDS = {"square", "circle", "polygon", "polyline", "line"}
BORDERED_KINDS = FILLABLE_KINDS | {"ink"}


class PyMuPDFDocument(IRenderedDocument):
    """已加载的PDF文档"""

    def __init__(
        self,
        doc: fitz.Document,
        source: bytes,
        *,
        garbage: int = 3,
        deflate: bool = True,
        font_size: float = 12.0,
    ):
        self._doc = doc
        self._source = source
        self._garbage = garbage
        self._deflate = deflate
        self._font_size = font_size
        # 键为批注名，无名批注使用自增键
        self._imported: dict[str, ET.Element] = {}
        self._anon_seq = 0

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    @property
    def closed(self) -> bool:
        return self._doc.is_closed

    def import_overlay(self, markup: str) -> None:
        try:
            parsed = parse_xfdf(markup)
        except XfdfParseError as e:
            raise MergeError(str(e)) from e

        for operation in parsed.operations:
            if operation.op == OP_DELETE:
                self._delete(operation.target_name, operation.target_page)
            elif operation.op == OP_MODIFY and operation.annotation is not None:
                if operation.annotation.name:
                    self._delete(operation.annotation.name, operation.annotation.page)
                self._add(operation.annotation)
            elif operation.op == OP_ADD and operation.annotation is not None:
                self._add(operation.annotation)

    def export_overlay_state(self) -> str:
        return build_xfdf(list(self._imported.values()))

    def serialize(self, with_overlays: bool = True) -> bytes:
        if not with_overlays:
            return self._source
        return self._doc.tobytes(garbage=self._garbage, deflate=self._deflate)

    def close(self) -> None:
        if not self._doc.is_closed:
            self._doc.close()

    # === 内部实现 ===

    def _add(self, item: XfdfAnnotation) -> None:
        if item.page < 0 or item.page >= self._doc.page_count:
            raise MergeError(f"批注页码越界: {item.page} (共 {self._doc.page_count} 页)")

        builder = _BUILDERS.get(item.kind)
        if builder is None:
            logger.warning(f"不支持的批注类型，已跳过: {item.kind}")
            return

        page = self._doc[item.page]
        try:
            annot = builder(self, page, item)
            self._apply_common(annot, item)
            annot.update()
            if item.name:
                self._doc.xref_set_key(annot.xref, "NM", fitz.get_pdf_str(item.name))
        except XfdfParseError as e:
            raise MergeError(f"{item.kind} 批注格式错误: {e}") from e

        key = item.name
        if not key:
            self._anon_seq += 1
            key = f"__anon_{self._anon_seq}"
        self._imported.pop(key, None)
        self._imported[key] = item.element

    def _delete(self, name: str | None, page_no: int | None) -> None:
        if not name:
            return
        pages = [page_no] if page_no is not None else range(self._doc.page_count)
        for pno in pages:
            if pno < 0 or pno >= self._doc.page_count:
                continue
            page = self._doc[pno]
            xrefs = [a.xref for a in page.annots() if a.info.get("id") == name]
            for xref in xrefs:
                page.delete_annot(page.load_annot(xref))
        self._imported.pop(name, None)

    def _apply_common(self, annot: fitz.Annot, item: XfdfAnnotation) -> None:
        stroke = parse_color(item.attr("color"))
        fill = parse_color(item.attr("interior-color"))
        if item.kind in FILLABLE_KINDS:
            if stroke or fill:
                annot.set_colors(stroke=stroke, fill=fill)
        elif stroke and item.kind != "freetext":
            annot.set_colors(stroke=stroke)

        width = item.attr("width")
        if width and item.kind in BORDERED_KINDS:
            annot.set_border(width=float(width))

        opacity = item.attr("opacity")
        if opacity:
            annot.set_opacity(float(opacity))

        info = {}
        if item.contents:
            info["content"] = item.contents
        if item.attr("title"):
            info["title"] = item.attr("title")
        if item.attr("subject"):
            info["subject"] = item.attr("subject")
        if info:
            annot.set_info(**info)

    def _rect(self, page: fitz.Page, text: str | None) -> fitz.Rect:
        x0, y0, x1, y1 = parse_rect(text)
        rect = fitz.Rect(x0, y0, x1, y1) * page.transformation_matrix
        return rect.normalize()

    def _point(self, page: fitz.Page, xy: tuple[float, float]) -> fitz.Point:
        return fitz.Point(*xy) * page.transformation_matrix


# ============================================================================
# 各类批注构造
# ============================================================================

def _build_square(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    return page.add_rect_annot(d._rect(page, item.attr("rect")))


def _build_circle(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    return page.add_circle_annot(d._rect(page, item.attr("rect")))


def _build_line(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    start = d._point(page, parse_point(item.attr("start")))
    end = d._point(page, parse_point(item.attr("end")))
    return page.add_line_annot(start, end)


def _vertices(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> list[fitz.Point]:
    points = [d._point(page, p) for p in parse_point_list(item.child_text("vertices"))]
    if len(points) < 2:
        raise XfdfParseError("vertices 至少需要2个点")
    return points


def _build_polygon(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    return page.add_polygon_annot(_vertices(d, page, item))


def _build_polyline(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    return page.add_polyline_annot(_vertices(d, page, item))


def _build_ink(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    strokes = []
    for gesture in item.children("inklist", "gesture"):
        points = [d._point(page, p) for p in parse_point_list(gesture.text)]
        if points:
            strokes.append([(p.x, p.y) for p in points])
    if not strokes:
        raise XfdfParseError("ink 缺少 gesture")
    return page.add_ink_annot(strokes)


def _build_freetext(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    return page.add_freetext_annot(
        d._rect(page, item.attr("rect")),
        item.contents,
        fontsize=d._font_size,
    )


def _build_text(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    rect = d._rect(page, item.attr("rect"))
    icon = item.attr("icon", "Note")
    if icon not in TEXT_ICONS:
        icon = "Note"
    return page.add_text_annot(rect.tl, item.contents, icon=icon)


def _markup_rects(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> list[fitz.Rect]:
    """coords 每8个数一组四边形，取外接矩形；缺省退回 rect"""
    coords = parse_floats(item.attr("coords"))
    if not coords:
        return [d._rect(page, item.attr("rect"))]
    if len(coords) % 8:
        raise XfdfParseError("coords 数字个数不是8的倍数")
    rects = []
    for i in range(0, len(coords), 8):
        xs = coords[i:i + 8:2]
        ys = coords[i + 1:i + 8:2]
        rect = fitz.Rect(min(xs), min(ys), max(xs), max(ys)) * page.transformation_matrix
        rects.append(rect.normalize())
    return rects


def _build_highlight(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    return page.add_highlight_annot(_markup_rects(d, page, item))


def _build_underline(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    return page.add_underline_annot(_markup_rects(d, page, item))


def _build_strikeout(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    return page.add_strikeout_annot(_markup_rects(d, page, item))


def _build_squiggly(d: PyMuPDFDocument, page: fitz.Page, item: XfdfAnnotation) -> fitz.Annot:
    return page.add_squiggly_annot(_markup_rects(d, page, item))


_BUILDERS: dict[str, Callable[[PyMuPDFDocument, fitz.Page, XfdfAnnotation], fitz.Annot]] = {
    "square": _build_square,
    "circle": _build_circle,
    "line": _build_line,
    "polygon": _build_polygon,
    "polyline": _build_polyline,
    "ink": _build_ink,
    "freetext": _build_freetext,
    "text": _build_text,
    "highlight": _build_highlight,
    "underline": _build_underline,
    "strikeout": _build_strikeout,
    "squiggly": _build_squiggly,
}


class PyMuPDFRenderer(IDocumentRenderer):
    """PyMuPDF 渲染能力实现"""

    def __init__(self, garbage: int | None = None, deflate: bool | None = None):
        config = get_config()
        self.garbage = config.merge.garbage if garbage is None else garbage
        self.deflate = config.merge.deflate if deflate is None else deflate
        self.font_size = config.merge.default_font_size

    def open(self, document_bytes: bytes, filename: str | None = None) -> PyMuPDFDocument:
        """加载PDF"""
        if not document_bytes:
            raise MergeError(f"文档内容为空: {filename or '<bytes>'}")

        try:
            doc = fitz.open(stream=document_bytes, filetype="pdf")
        except Exception as e:
            raise MergeError(f"文档加载失败: {filename or '<bytes>'}: {e}") from e

        if doc.needs_pass or doc.page_count == 0:
            doc.close()
            raise MergeError(f"文档不可编辑（加密或无页面）: {filename or '<bytes>'}")

        return PyMuPDFDocument(
            doc,
            document_bytes,
            garbage=self.garbage,
            deflate=self.deflate,
            font_size=self.font_size,
        )
