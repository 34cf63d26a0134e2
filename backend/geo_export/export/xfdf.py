"""
XFDF 解析 - 将批注标记解析为有序的 添加/修改/删除 指令

支持的容器：
- <annots>  普通导出格式（全部视为添加）
- <add> / <modify> / <delete>  命令格式

页码为0基；坐标为PDF用户空间（左下原点），由渲染层负责换算
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

XFDF_NS = "http://ns.adobe.com/xfdf/"

ET.register_namespace("", XFDF_NS)

OP_ADD = "add"
OP_MODIFY = "modify"
OP_DELETE = "delete"


class XfdfParseError(ValueError):
    """XFDF 格式错误"""
    pass


@dataclass
class XfdfAnnotation:
    """单个批注元素"""
    kind: str
    page: int
    attrs: dict[str, str]
    element: ET.Element
    contents: str = ""
    name: str | None = None

    def attr(self, key: str, default: str | None = None) -> str | None:
        return self.attrs.get(key, default)

    def child_text(self, *path: str) -> str:
        """按局部名逐级查找子元素文本"""
        node: ET.Element | None = self.element
        for tag in path:
            if node is None:
                return ""
            node = _find_child(node, tag)
        return (node.text or "") if node is not None else ""

    def children(self, *path: str) -> list[ET.Element]:
        node: ET.Element | None = self.element
        for tag in path[:-1]:
            if node is None:
                return []
            node = _find_child(node, tag)
        if node is None:
            return []
        return [c for c in node if local_name(c.tag) == path[-1]]


@dataclass
class XfdfOperation:
    op: str
    annotation: XfdfAnnotation | None = None
    target_name: str | None = None
    target_page: int | None = None


@dataclass
class XfdfDocument:
    operations: list[XfdfOperation] = field(default_factory=list)

    @property
    def annotation_count(self) -> int:
        return sum(1 for o in self.operations if o.annotation is not None)


def local_name(tag: str) -> str:
    """去除命名空间前缀"""
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _find_child(node: ET.Element, tag: str) -> ET.Element | None:
    for child in node:
        if local_name(child.tag) == tag:
            return child
    return None


def parse_xfdf(markup: str) -> XfdfDocument:
    """解析XFDF文本"""
    try:
        root = ET.fromstring(markup)
    except ET.ParseError as e:
        raise XfdfParseError(f"XFDF解析失败: {e}") from e

    if local_name(root.tag) != "xfdf":
        raise XfdfParseError(f"根元素不是xfdf: {local_name(root.tag)}")

    doc = XfdfDocument()
    for container in root:
        name = local_name(container.tag)
        if name in ("annots", OP_ADD):
            for el in container:
                doc.operations.append(XfdfOperation(OP_ADD, annotation=_parse_annotation(el)))
        elif name == OP_MODIFY:
            for el in container:
                doc.operations.append(XfdfOperation(OP_MODIFY, annotation=_parse_annotation(el)))
        elif name == OP_DELETE:
            for el in container:
                if local_name(el.tag) != "id":
                    continue
                page = el.get("page")
                doc.operations.append(
                    XfdfOperation(
                        OP_DELETE,
                        target_name=(el.text or "").strip(),
                        target_page=_parse_int(page, "page") if page is not None else None,
                    )
                )
        # pages/fields 等其它节点与批注无关
    return doc


def _parse_annotation(el: ET.Element) -> XfdfAnnotation:
    attrs = dict(el.attrib)
    page = _parse_int(attrs.get("page", "0"), "page")
    contents_el = _find_child(el, "contents")
    return XfdfAnnotation(
        kind=local_name(el.tag),
        page=page,
        attrs=attrs,
        element=el,
        contents=(contents_el.text or "") if contents_el is not None else "",
        name=attrs.get("name"),
    )


def _parse_int(value: str, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise XfdfParseError(f"{label} 不是整数: {value!r}") from e


def parse_floats(text: str | None) -> list[float]:
    """解析逗号/分号/空白分隔的数字序列"""
    if not text:
        return []
    raw = text.replace(";", ",").replace(" ", ",").replace("\n", ",")
    try:
        return [float(p) for p in raw.split(",") if p.strip()]
    except ValueError as e:
        raise XfdfParseError(f"坐标格式错误: {text!r}") from e


def parse_rect(text: str | None) -> tuple[float, float, float, float]:
    nums = parse_floats(text)
    if len(nums) != 4:
        raise XfdfParseError(f"rect 需要4个数: {text!r}")
    return nums[0], nums[1], nums[2], nums[3]


def parse_point(text: str | None) -> tuple[float, float]:
    nums = parse_floats(text)
    if len(nums) != 2:
        raise XfdfParseError(f"点需要2个数: {text!r}")
    return nums[0], nums[1]


def parse_point_list(text: str | None) -> list[tuple[float, float]]:
    """解析 x,y;x,y;... 点序列"""
    nums = parse_floats(text)
    if len(nums) % 2:
        raise XfdfParseError(f"点序列数字个数为奇数: {text!r}")
    return [(nums[i], nums[i + 1]) for i in range(0, len(nums), 2)]


def parse_color(text: str | None) -> tuple[float, float, float] | None:
    """#RRGGBB → (r, g, b) 0~1"""
    if not text:
        return None
    value = text.strip().lstrip("#")
    if len(value) != 6:
        return None
    try:
        return tuple(int(value[i:i + 2], 16) / 255.0 for i in (0, 2, 4))  # type: ignore[return-value]
    except ValueError:
        return None


def build_xfdf(elements: list[ET.Element]) -> str:
    """将批注元素重新组装为XFDF文本"""
    root = ET.Element(f"{{{XFDF_NS}}}xfdf")
    annots = ET.SubElement(root, f"{{{XFDF_NS}}}annots")
    for el in elements:
        annots.append(el)
    return ET.tostring(root, encoding="unicode")
