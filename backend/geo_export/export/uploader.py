"""
上传器 - 将合并后的PDF及目标路径提交给后端存储

不做自动重试；同一单元重复上传可能产生重复写入
"""

from __future__ import annotations

import logging

from ..interfaces import IBackendClient, IUploader, InvalidInputError

logger = logging.getLogger(__name__)


class Uploader(IUploader):
    """上传器实现"""

    def __init__(self, client: IBackendClient):
        self.client = client

    def upload(
        self,
        merged_bytes: bytes,
        output_path: str,
        display_name: str,
        base_path_override: str,
    ) -> None:
        if not base_path_override:
            raise InvalidInputError("customPath 为空")
        self.client.upload_file(merged_bytes, display_name, output_path, base_path_override)
        logger.info(f"已上传: {base_path_override}/{output_path} ({len(merged_bytes)} bytes)")
