"""
通知流监听 - socket.io 的 status / progress 事件转发到状态通道

监听线程只负责投递原始载荷，解析与状态更新由 StatusChannel 的消费方完成
"""

from __future__ import annotations

import logging
from typing import Any

import socketio

from ..config import get_config
from ..pipeline.status_channel import StatusChannel

logger = logging.getLogger(__name__)


class NotificationListener:
    """socket.io 通知流监听器"""

    def __init__(
        self,
        channel: StatusChannel,
        url: str | None = None,
        client: socketio.Client | None = None,
    ):
        config = get_config()
        self.channel = channel
        self.url = url or config.notification_url
        self.transports = list(config.notifications.transports)
        self.status_event = config.notifications.status_event
        self.progress_event = config.notifications.progress_event
        self._sio = client or socketio.Client(reconnection=True)
        self._sio.on(self.status_event, self._on_status)
        self._sio.on(self.progress_event, self._on_progress)

    def __enter__(self) -> NotificationListener:
        self.connect()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()

    @property
    def connected(self) -> bool:
        return bool(self._sio.connected)

    def connect(self) -> None:
        logger.info(f"连接通知流: {self.url}")
        self._sio.connect(self.url, transports=self.transports)

    def disconnect(self) -> None:
        if self._sio.connected:
            self._sio.disconnect()
            logger.info("通知流已断开")

    def _on_status(self, data: Any) -> None:
        logger.debug(f"status 事件: {data}")
        self.channel.post_raw(self.status_event, data)

    def _on_progress(self, data: Any) -> None:
        self.channel.post_raw(self.progress_event, data)
