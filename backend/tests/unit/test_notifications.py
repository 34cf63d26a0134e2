"""
通知流监听单元测试（socket.io 客户端替身）
"""

from __future__ import annotations

from typing import Any, Callable

from geo_export.models import StatusPhase
from geo_export.pipeline import StatusChannel
from geo_export.remote import NotificationListener


class FakeSocketClient:
    """记录事件处理器的 socket.io 客户端替身"""

    def __init__(self) -> None:
        self.handlers: dict[str, Callable[[Any], None]] = {}
        self.connected = False
        self.connect_args: tuple[str, list[str]] | None = None

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.handlers[event] = handler

    def connect(self, url: str, transports: list[str] | None = None) -> None:
        self.connected = True
        self.connect_args = (url, transports)

    def disconnect(self) -> None:
        self.connected = False

    def emit_from_server(self, event: str, data: Any) -> None:
        self.handlers[event](data)


class TestNotificationListener:
    """通知转发测试"""

    def test_registers_events(self, fake_scheduler):
        sio = FakeSocketClient()
        NotificationListener(StatusChannel(scheduler=fake_scheduler), "http://backend.test", sio)
        assert set(sio.handlers) == {"status", "progress"}

    def test_connect_and_disconnect(self, fake_scheduler, runtime_config_isolated):
        """测试上下文管理连接/断开"""
        sio = FakeSocketClient()
        with NotificationListener(StatusChannel(scheduler=fake_scheduler), "http://backend.test", sio) as listener:
            assert listener.connected
            assert sio.connect_args == (
                "http://backend.test",
                list(runtime_config_isolated.notifications.transports),
            )
        assert not sio.connected

    def test_events_forwarded_to_channel(self, fake_scheduler):
        """测试事件载荷经通道解析后生效"""
        sio = FakeSocketClient()
        channel = StatusChannel(scheduler=fake_scheduler)
        channel.begin()
        NotificationListener(channel, "http://backend.test", sio)

        sio.emit_from_server("progress", {"percent": 40})
        sio.emit_from_server("progress", "garbage")
        sio.emit_from_server("status", {"message": "Data fetching completed!"})
        assert channel.process_pending() == 2
        assert channel.state.phase == StatusPhase.SUCCEEDED

    def test_default_url_from_config(self, fake_scheduler, runtime_config_isolated):
        listener = NotificationListener(StatusChannel(scheduler=fake_scheduler), client=FakeSocketClient())
        assert listener.url == runtime_config_isolated.notification_url
