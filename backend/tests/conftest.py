"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(pdf_b64, sample_project):
        ...
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Callable

import fitz
import pytest

from geo_export.config import RuntimeConfig, runtime_config
from geo_export.interfaces import BackendError, IBackendClient
from geo_export.models import (
    Annotation,
    Estimate,
    ExportRequest,
    FetchAllDataResponse,
    FileRecord,
    Project,
)

SQUARE_XFDF = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<xfdf xmlns="http://ns.adobe.com/xfdf/" xml:space="preserve">'
    "<annots>"
    '<square page="0" rect="100,600,200,700" color="#FF0000" width="2" '
    'name="sq-1" title="tester" subject="Rectangle"><contents>check</contents></square>'
    "</annots></xfdf>"
)


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def runtime_config_isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RuntimeConfig:
    """每个测试使用独立的全局配置（存储目录指向临时目录）"""
    config = RuntimeConfig(storage_dir=tmp_path / "storage")
    monkeypatch.setattr(runtime_config, "_config", config)
    return config


# ============================================================================
# PDF Fixtures
# ============================================================================

@pytest.fixture
def pdf_bytes() -> bytes:
    """两页A4空白PDF"""
    doc = fitz.open()
    doc.new_page(width=595, height=842)
    doc.new_page(width=595, height=842)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_b64(pdf_bytes: bytes) -> str:
    return base64.b64encode(pdf_bytes).decode("ascii")


@pytest.fixture
def square_xfdf() -> str:
    return SQUARE_XFDF


# ============================================================================
# 记录 Fixtures
# ============================================================================

@pytest.fixture
def sample_project() -> Project:
    return Project(id=1, companyId="9")


@pytest.fixture
def sample_estimate() -> Estimate:
    return Estimate(id=10, geoProjectId=1)


@pytest.fixture
def sample_file(pdf_b64: str) -> FileRecord:
    return FileRecord(id=100, geoProjectId=1, name="a.pdf", base64File=pdf_b64)


@pytest.fixture
def sample_annotation(square_xfdf: str) -> Annotation:
    return Annotation(geoEstimateId=10, fileId=100, xfdf=square_xfdf)


@pytest.fixture
def sample_request() -> ExportRequest:
    return ExportRequest(
        companyId="9",
        customPath="D:/exports",
        startRange="1",
        endRange="50",
    )


@pytest.fixture
def merge_request(sample_request: ExportRequest) -> ExportRequest:
    return sample_request.model_copy(update={"merge_annotations": True})


# ============================================================================
# 替身
# ============================================================================

class FakeBackendClient(IBackendClient):
    """记录调用的后端替身"""

    def __init__(
        self,
        data: FetchAllDataResponse | None = None,
        fail_on: set[str] | None = None,
    ):
        self.data = data or FetchAllDataResponse()
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, Any]] = []
        self.uploads: list[dict[str, Any]] = []

    def trigger_download(self, request: ExportRequest) -> None:
        self.calls.append(("download", request.to_payload()))
        if "download" in self.fail_on:
            raise BackendError("/download 返回 HTTP 500", status_code=500)

    def fetch_all_data(self, request: ExportRequest) -> FetchAllDataResponse:
        self.calls.append(("fetch-all-data", request.to_payload()))
        if "fetch" in self.fail_on:
            raise BackendError("/fetch-all-data 返回 HTTP 500", status_code=500)
        return self.data

    def upload_file(self, content: bytes, filename: str, path: str, custom_path: str) -> None:
        self.calls.append(("upload", path))
        self.uploads.append(
            {"content": content, "filename": filename, "path": path, "customPath": custom_path}
        )


class FakeScheduler:
    """收集延时回调，由测试手动触发"""

    def __init__(self) -> None:
        self.scheduled: list[tuple[float, Callable[[], None]]] = []

    def __call__(self, delay_sec: float, callback: Callable[[], None]) -> None:
        self.scheduled.append((delay_sec, callback))

    def fire_all(self) -> None:
        pending, self.scheduled = self.scheduled, []
        for _, callback in pending:
            callback()


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def fake_client_factory() -> Callable[..., FakeBackendClient]:
    return FakeBackendClient
