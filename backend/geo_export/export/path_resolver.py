"""
输出路径派生 - company_<公司>/project_<项目>/estimate_<预算>/<文件名>

测试要点：
- test_resolve_template: 模板拼接
- test_resolve_deterministic: 同输入同输出
- test_resolve_rejects_empty: 任一段为空即报错
"""

from __future__ import annotations

from typing import Any

from ..interfaces import InvalidInputError

PATH_TEMPLATE = "company_{company_id}/project_{project_id}/estimate_{estimate_id}/{file_name}"


class PathResolver:
    """输出路径派生器（纯函数）"""

    template = PATH_TEMPLATE

    def resolve(
        self, company_id: Any, project_id: Any, estimate_id: Any, file_name: Any
    ) -> str:
        segments = {
            "company_id": company_id,
            "project_id": project_id,
            "estimate_id": estimate_id,
            "file_name": file_name,
        }
        for key, value in segments.items():
            if value is None or str(value) == "":
                raise InvalidInputError(f"路径段为空: {key}")
        return self.template.format(**{k: str(v) for k, v in segments.items()})


_default_resolver = PathResolver()


def resolve(company_id: Any, project_id: Any, estimate_id: Any, file_name: Any) -> str:
    """模块级便捷函数"""
    return _default_resolver.resolve(company_id, project_id, estimate_id, file_name)
