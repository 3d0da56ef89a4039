"""
API 模块

HTTP 客户端创建、端点路由和请求钩子。
"""

from .app import build_headers, create_http_client
from .middleware import RequestLoggingHooks
from .routes import ApiRoute, CHAT_COMPLETION, CREATE_IMAGE, get_route, into_request

__all__ = [
    "ApiRoute",
    "CHAT_COMPLETION",
    "CREATE_IMAGE",
    "RequestLoggingHooks",
    "build_headers",
    "create_http_client",
    "get_route",
    "into_request",
]
