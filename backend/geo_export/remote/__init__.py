"""
后端通信模块

子模块：
- client: HTTP 接口（httpx）
- notifications: socket.io 通知流监听
"""

from .client import BackendClient
from .notifications import NotificationListener

__all__ = [
    "BackendClient",
    "NotificationListener",
]
