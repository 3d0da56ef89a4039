"""
HTTP 客户端中间件

以 httpx 事件钩子的形式实现请求 ID 注入、请求日志、请求追踪和按操作的性能统计。
"""

import time
from uuid import uuid4
from typing import Optional

import httpx

from api.routes import OPERATION_EXTENSION
from services.logging import (
    RequestTracker, PerformanceMonitor, get_logger, get_request_id, operation_var,
    request_tracker as default_tracker,
    performance_monitor as default_monitor,
)

REQUEST_ID_HEADER = "X-Request-ID"
UPSTREAM_REQUEST_ID_HEADER = "x-request-id"
# request.extensions 中保存开始时间的键
_START_TIME_KEY = "llm_sdk_start_time"


def request_operation(request: httpx.Request) -> str:
    """请求对应的 SDK 操作名；未经 into_request 构建的请求退回到路径"""
    return (
        request.extensions.get(OPERATION_EXTENSION)
        or operation_var.get()
        or request.url.path
    )


class RequestLoggingHooks:
    """请求日志和追踪钩子"""

    def __init__(
        self,
        tracker: Optional[RequestTracker] = None,
        monitor: Optional[PerformanceMonitor] = None
    ):
        self.tracker = tracker or default_tracker
        self.monitor = monitor or default_monitor
        self.logger = get_logger("request")

    def as_event_hooks(self) -> dict:
        """返回 httpx.AsyncClient 的 event_hooks 参数"""
        return {"request": [self.on_request], "response": [self.on_response]}

    async def on_request(self, request: httpx.Request) -> None:
        """发送前：注入请求 ID 并开始追踪"""
        request_id = request.headers.get(REQUEST_ID_HEADER) or get_request_id() or str(uuid4())
        request.headers[REQUEST_ID_HEADER] = request_id
        request.extensions[_START_TIME_KEY] = time.time()
        operation = request_operation(request)

        self.tracker.start_request(
            request_id=request_id,
            operation=operation,
            method=request.method,
            host=request.url.host
        )

        # 不记录请求头，避免泄露 API 密钥
        self.logger.info(
            "Request started",
            request_id=request_id,
            operation=operation,
            method=request.method,
            path=request.url.path,
            host=request.url.host,
            content_length=request.headers.get("content-length", "0")
        )

    async def on_response(self, response: httpx.Response) -> None:
        """收到响应后：结束追踪并记录指标"""
        request = response.request
        request_id = request.headers.get(REQUEST_ID_HEADER, "")
        upstream_request_id = response.headers.get(UPSTREAM_REQUEST_ID_HEADER, "")
        operation = request_operation(request)
        duration = self._elapsed(request)
        error = None if response.is_success else f"HTTP {response.status_code}"

        self.tracker.end_request(
            request_id, response.status_code, error, upstream_request_id=upstream_request_id
        )
        self.monitor.record_request(
            operation=operation,
            duration=duration,
            status_code=response.status_code,
            error_type=f"HTTP_{response.status_code}" if error else None
        )

        self.logger.info(
            "Request completed",
            request_id=request_id,
            operation=operation,
            status_code=response.status_code,
            duration=duration,
            upstream_request_id=upstream_request_id,
        )

    def on_error(self, request: httpx.Request, exc: Exception) -> None:
        """传输层失败（未收到响应）时结束追踪"""
        request_id = request.headers.get(REQUEST_ID_HEADER, "")
        operation = request_operation(request)
        duration = self._elapsed(request)

        self.tracker.end_request(request_id, 0, str(exc))
        self.monitor.record_request(
            operation=operation,
            duration=duration,
            status_code=0,
            error_type=type(exc).__name__
        )

        self.logger.error(
            "Request failed",
            request_id=request_id,
            operation=operation,
            error=str(exc),
            error_type=type(exc).__name__,
            duration=duration
        )

    @staticmethod
    def _elapsed(request: httpx.Request) -> float:
        start_time = request.extensions.get(_START_TIME_KEY)
        if start_time is None:
            return 0.0
        return time.time() - start_time
