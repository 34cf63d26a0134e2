"""
后端HTTP客户端 - /download /fetch-all-data /upload

职责：
1. 触发后端异步导出（结果经通知流返回，不看响应体）
2. 同步拉取全部记录
3. 上传单个合并后的PDF

依赖：
- httpx

测试要点：
- test_trigger_download_posts_form: 请求体字段
- test_fetch_all_data_parses_records: 响应解析
- test_fetch_all_data_http_error: 非2xx
- test_upload_file_multipart: multipart字段
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import get_config
from ..interfaces import BackendError, IBackendClient, UploadError
from ..models import ExportRequest, FetchAllDataResponse

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


class BackendClient(IBackendClient):
    """后端HTTP客户端实现"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.server.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.server.http_timeout_sec
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )

    def __enter__(self) -> BackendClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def trigger_download(self, request: ExportRequest) -> None:
        """POST /download"""
        self._post_json("/download", request)
        logger.info(f"已触发后端导出: company={request.company_id} "
                    f"range={request.start_range}-{request.end_range}")

    def fetch_all_data(self, request: ExportRequest) -> FetchAllDataResponse:
        """POST /fetch-all-data"""
        response = self._post_json("/fetch-all-data", request)
        try:
            data = FetchAllDataResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BackendError(f"fetch-all-data 响应格式错误: {e}") from e

        logger.info(
            f"已拉取记录: projects={len(data.geo_projects)} files={len(data.geo_files)} "
            f"estimates={len(data.geo_estimates)} annotations={len(data.geo_annotations)}"
        )
        return data

    def upload_file(
        self, content: bytes, filename: str, path: str, custom_path: str
    ) -> None:
        """POST /upload (multipart)"""
        try:
            response = self._client.post(
                "/upload",
                files={"file": (filename, content, PDF_CONTENT_TYPE)},
                data={"path": path, "customPath": custom_path},
            )
        except httpx.HTTPError as e:
            raise UploadError(f"上传失败: {path}: {e}", network_error=str(e)) from e

        if not response.is_success:
            raise UploadError(
                f"上传失败: {path}: HTTP {response.status_code}",
                status_code=response.status_code,
            )

    def _post_json(self, endpoint: str, request: ExportRequest) -> httpx.Response:
        try:
            response = self._client.post(endpoint, json=request.to_payload())
        except httpx.HTTPError as e:
            raise BackendError(f"{endpoint} 请求失败: {e}") from e

        if not response.is_success:
            logger.error(f"{endpoint} 返回 {response.status_code}: {response.text}")
            raise BackendError(
                f"{endpoint} 返回 HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response
