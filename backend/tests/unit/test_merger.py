"""
批注合并器单元测试（PyMuPDF 实际渲染）
"""

from __future__ import annotations

import base64

import fitz
import pytest

from geo_export.export import AnnotationMerger, PyMuPDFRenderer, decode_document
from geo_export.interfaces import IDocumentRenderer, IRenderedDocument, MergeError
from geo_export.models import Annotation, ExportUnit


def _annotation(xfdf: str) -> Annotation:
    return Annotation(geoEstimateId=10, fileId=100, xfdf=xfdf)


def _annots(pdf: bytes, page: int = 0) -> list[tuple]:
    doc = fitz.open(stream=pdf, filetype="pdf")
    return [(a.type[1], a.info.get("id"), fitz.Rect(a.rect)) for a in doc[page].annots()]


class TestAnnotationMerger:
    """批注合并测试"""

    @pytest.fixture
    def merger(self) -> AnnotationMerger:
        return AnnotationMerger(PyMuPDFRenderer())

    def test_merge_bakes_annotations(self, merger, pdf_b64, square_xfdf):
        """测试批注写入输出PDF（坐标由PDF空间换算）"""
        merged = merger.merge(pdf_b64, [_annotation(square_xfdf)], "a.pdf")
        annots = _annots(merged)
        assert len(annots) == 1
        kind, name, rect = annots[0]
        assert kind == "Square"
        assert name == "sq-1"
        # PDF y=600..700 → 页面坐标 842-700=142 .. 842-600=242
        assert abs(rect.y0 - 142) < 5
        assert abs(rect.y1 - 242) < 5

    def test_merge_empty_overlay_set(self, merger, pdf_b64):
        """测试无批注时输出有效PDF"""
        merged = merger.merge(pdf_b64, [], "a.pdf")
        doc = fitz.open(stream=merged, filetype="pdf")
        assert doc.page_count == 2
        assert list(doc[0].annots()) == []

    def test_merge_in_overlay_order(self, merger, pdf_b64, square_xfdf):
        """测试多条批注按顺序导入，后者叠加在前者之上"""
        second = (
            "<xfdf><annots>"
            '<circle page="0" rect="120,620,180,680" name="c-1"/>'
            '<ink page="1" name="ink-1"><inklist><gesture>10,10;20,20;30,10</gesture></inklist></ink>'
            "</annots></xfdf>"
        )
        merged = merger.merge(pdf_b64, [_annotation(square_xfdf), _annotation(second)], "a.pdf")
        assert [a[0] for a in _annots(merged, 0)] == ["Square", "Circle"]
        assert [a[0] for a in _annots(merged, 1)] == ["Ink"]

    def test_ink_annotation(self, merger, pdf_b64):
        """测试手绘批注（多笔画）写入输出PDF"""
        xfdf = (
            "<xfdf><annots>"
            '<ink page="0" name="ink-2" color="#0000FF" width="2"><inklist>'
            "<gesture>10,10;20,20</gesture><gesture>30,30;40,35;50,30</gesture>"
            "</inklist></ink>"
            "</annots></xfdf>"
        )
        merged = merger.merge(pdf_b64, [_annotation(xfdf)], "a.pdf")
        assert [(a[0], a[1]) for a in _annots(merged)] == [("Ink", "ink-2")]

    def test_null_markup_skipped(self, merger, pdf_b64):
        """测试xfdf为null的批注跳过"""
        annotation = Annotation(geoEstimateId=10, fileId=100, xfdf=None)
        merged = merger.merge(pdf_b64, [annotation], "a.pdf")
        assert _annots(merged) == []

    def test_later_delete_removes_earlier_import(self, merger, pdf_b64, square_xfdf):
        """测试删除指令移除先前导入的同名批注"""
        delete = '<xfdf><delete><id page="0">sq-1</id></delete></xfdf>'
        merged = merger.merge(pdf_b64, [_annotation(square_xfdf), _annotation(delete)], "a.pdf")
        assert _annots(merged) == []

    def test_modify_replaces_annotation(self, merger, pdf_b64, square_xfdf):
        """测试修改指令替换同名批注"""
        modify = '<xfdf><modify><circle page="0" rect="100,600,200,700" name="sq-1"/></modify></xfdf>'
        merged = merger.merge(pdf_b64, [_annotation(square_xfdf), _annotation(modify)], "a.pdf")
        assert [(a[0], a[1]) for a in _annots(merged)] == [("Circle", "sq-1")]

    def test_markup_annotations(self, merger, pdf_b64):
        """测试文本标记类与说明类批注"""
        xfdf = (
            "<xfdf><annots>"
            '<highlight page="0" rect="50,700,150,720" '
            'coords="50,720,150,720,50,700,150,700" color="#FFFF00"/>'
            '<text page="0" rect="300,300,320,320" icon="Comment"><contents>note</contents></text>'
            '<freetext page="0" rect="300,400,450,440"><contents>hello</contents></freetext>'
            '<line page="0" start="10,10" end="200,200" width="3"/>'
            '<polygon page="0"><vertices>10,10;50,10;30,40</vertices></polygon>'
            "</annots></xfdf>"
        )
        merged = merger.merge(pdf_b64, [_annotation(xfdf)], "a.pdf")
        kinds = [a[0] for a in _annots(merged)]
        assert kinds == ["Highlight", "Text", "FreeText", "Line", "Polygon"]

    def test_unsupported_element_skipped(self, merger, pdf_b64):
        """测试不支持的批注类型跳过而不失败"""
        xfdf = '<xfdf><annots><stamp page="0" rect="0,0,10,10"/></annots></xfdf>'
        merged = merger.merge(pdf_b64, [_annotation(xfdf)], "a.pdf")
        assert _annots(merged) == []

    def test_blank_markup_skipped(self, merger, pdf_b64):
        """测试空批注文本跳过"""
        merged = merger.merge(pdf_b64, [_annotation("   ")], "a.pdf")
        assert _annots(merged) == []

    def test_merge_unit(self, merger, pdf_b64, sample_annotation):
        """测试按导出单元合并"""
        unit = ExportUnit(
            project_id=1,
            estimate_id=10,
            file_id=100,
            document_b64=pdf_b64,
            overlay_set=(sample_annotation,),
            output_path="company_9/project_1/estimate_10/a.pdf",
            display_name="a.pdf",
        )
        assert len(_annots(merger.merge_unit(unit))) == 1


class TestMergeFailures:
    """合并失败测试"""

    @pytest.fixture
    def merger(self) -> AnnotationMerger:
        return AnnotationMerger(PyMuPDFRenderer())

    def test_empty_document(self, merger):
        """测试空文档"""
        with pytest.raises(MergeError):
            merger.merge("", [])

    def test_invalid_base64(self, merger):
        """测试非法base64"""
        with pytest.raises(MergeError):
            merger.merge("%%%not-base64%%%", [])

    def test_corrupt_pdf(self, merger):
        """测试损坏的PDF"""
        corrupt = base64.b64encode(b"this is not a pdf document").decode()
        with pytest.raises(MergeError):
            merger.merge(corrupt, [])

    def test_malformed_xfdf(self, merger, pdf_b64):
        """测试非法XFDF"""
        with pytest.raises(MergeError):
            merger.merge(pdf_b64, [_annotation("<xfdf><annots>")])

    def test_page_out_of_range(self, merger, pdf_b64):
        """测试批注页码越界"""
        xfdf = '<xfdf><annots><square page="5" rect="0,0,10,10"/></annots></xfdf>'
        with pytest.raises(MergeError):
            merger.merge(pdf_b64, [_annotation(xfdf)])

    def test_merge_closes_document_on_failure(self, pdf_b64):
        """测试失败时文档句柄被释放"""

        class FailingDocument(IRenderedDocument):
            closed = False

            def import_overlay(self, markup: str) -> None:
                raise RuntimeError("render engine crashed")

            def export_overlay_state(self) -> str:
                return ""

            def serialize(self, with_overlays: bool = True) -> bytes:
                return b""

            def close(self) -> None:
                self.closed = True

        document = FailingDocument()

        class Renderer(IDocumentRenderer):
            def open(self, document_bytes: bytes, filename: str | None = None):
                return document

        merger = AnnotationMerger(Renderer())
        with pytest.raises(MergeError):
            merger.merge(pdf_b64, [_annotation("<xfdf/>")], "a.pdf")
        assert document.closed


class TestDecodeDocument:
    """base64解码测试"""

    def test_data_uri_prefix(self, pdf_bytes, pdf_b64):
        """测试兼容 data URI 前缀"""
        assert decode_document(f"data:application/pdf;base64,{pdf_b64}") == pdf_bytes

    def test_whitespace_tolerated(self, pdf_bytes, pdf_b64):
        """测试换行分段的base64"""
        wrapped = "\n".join(pdf_b64[i:i + 76] for i in range(0, len(pdf_b64), 76))
        assert decode_document(wrapped) == pdf_bytes
