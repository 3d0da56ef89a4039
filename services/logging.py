"""
结构化日志系统

SDK 的日志配置、请求上下文，以及对上游 API 调用的追踪和按操作统计。
"""

import inspect
import logging
import time
import uuid
from collections import deque
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Deque, Dict, Iterator, List, Optional
from contextvars import ContextVar
from functools import wraps

import structlog
from structlog.stdlib import LoggerFactory

# 请求上下文变量
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
operation_var: ContextVar[str] = ContextVar('operation', default='')


class RequestTracker:
    """
    上游 API 调用追踪器

    进行中的调用按本地请求 ID 索引；结束的调用连同服务端返回的
    x-request-id 保存在最近调用列表中，便于和服务端日志对照。
    """

    def __init__(self, history_size: int = 100):
        self.active_requests: Dict[str, Dict[str, Any]] = {}
        self.completed_requests: Deque[Dict[str, Any]] = deque(maxlen=history_size)

    def start_request(
        self,
        request_id: str,
        operation: str,
        method: str,
        host: Optional[str] = None
    ) -> Dict[str, Any]:
        """登记一次开始发送的调用"""
        call = {
            "request_id": request_id,
            "operation": operation,
            "method": method,
            "host": host,
            "start_time": time.time(),
            "timestamp": datetime.now().isoformat()
        }
        self.active_requests[request_id] = call
        return call

    def end_request(
        self,
        request_id: str,
        status_code: int,
        error: Optional[str] = None,
        upstream_request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        结束调用追踪

        Args:
            request_id: 本地请求 ID
            status_code: 响应状态码，0 表示未收到响应
            error: 错误描述
            upstream_request_id: 服务端返回的 x-request-id

        Returns:
            Dict[str, Any]: 调用记录，未登记的请求 ID 返回空字典
        """
        call = self.active_requests.pop(request_id, None)
        if call is None:
            return {}

        call["duration"] = time.time() - call["start_time"]
        call["status_code"] = status_code
        call["error"] = error
        call["upstream_request_id"] = upstream_request_id or None
        self.completed_requests.append(call)
        return call

    def get_active_requests(self) -> Dict[str, Dict[str, Any]]:
        """获取进行中的调用"""
        return self.active_requests.copy()

    def get_recent_requests(self) -> List[Dict[str, Any]]:
        """获取最近结束的调用，按结束顺序排列"""
        return list(self.completed_requests)

    def find_by_upstream_id(self, upstream_request_id: str) -> Optional[Dict[str, Any]]:
        """按服务端请求 ID 查找最近的调用"""
        for call in reversed(self.completed_requests):
            if call["upstream_request_id"] == upstream_request_id:
                return call
        return None


class PerformanceMonitor:
    """按 SDK 操作（create_image、chat_completion）汇总的调用指标"""

    def __init__(self):
        self.metrics = self._empty_metrics()

    @staticmethod
    def _empty_metrics() -> Dict[str, Any]:
        return {
            "request_count": 0,
            "error_count": 0,
            "total_duration": 0.0,
            "avg_duration": 0.0,
            "operation_stats": {},
            "error_stats": {}
        }

    def record_request(
        self,
        operation: str,
        duration: float,
        status_code: int,
        error_type: Optional[str] = None
    ):
        """记录一次调用；status_code 为 0 或 >= 400 计为失败"""
        metrics = self.metrics
        metrics["request_count"] += 1
        metrics["total_duration"] += duration
        metrics["avg_duration"] = metrics["total_duration"] / metrics["request_count"]

        stats = metrics["operation_stats"].setdefault(operation, {
            "count": 0,
            "total_duration": 0.0,
            "avg_duration": 0.0,
            "max_duration": 0.0,
            "error_count": 0,
            "status_codes": {}
        })
        stats["count"] += 1
        stats["total_duration"] += duration
        stats["avg_duration"] = stats["total_duration"] / stats["count"]
        stats["max_duration"] = max(stats["max_duration"], duration)
        stats["status_codes"][status_code] = stats["status_codes"].get(status_code, 0) + 1

        if status_code == 0 or status_code >= 400:
            metrics["error_count"] += 1
            stats["error_count"] += 1
            if error_type:
                metrics["error_stats"][error_type] = metrics["error_stats"].get(error_type, 0) + 1

    def get_operation_stats(self, operation: str) -> Dict[str, Any]:
        """获取单个操作的统计，未调用过返回空字典"""
        return dict(self.metrics["operation_stats"].get(operation, {}))

    def get_metrics(self) -> Dict[str, Any]:
        """获取全部指标"""
        return self.metrics.copy()

    def reset_metrics(self):
        """重置指标"""
        self.metrics = self._empty_metrics()


def add_request_context(logger, method_name, event_dict):
    """把当前请求 ID 和操作名写入日志事件"""
    request_id = request_id_var.get('')
    operation = operation_var.get('')

    if request_id:
        event_dict.setdefault('request_id', request_id)
    if operation:
        event_dict.setdefault('operation', operation)

    return event_dict


def add_timestamp(logger, method_name, event_dict):
    event_dict['timestamp'] = datetime.now().isoformat()
    return event_dict


def configure_logging(log_level: str = "INFO", log_file: str = None, json_format: bool = True):
    """配置结构化日志"""

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_timestamp,
        add_request_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(message)s",
        handlers=handlers,
        force=True,
    )


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """获取结构化日志器"""
    return structlog.get_logger(name)


def set_request_context(request_id: str = None, operation: str = None) -> str:
    """
    绑定请求上下文

    未指定 request_id 时生成新的 UUID。调用方在发起 SDK 调用前绑定的
    请求 ID 会随 X-Request-ID 头发送，并出现在该调用的所有日志中。
    """
    if request_id is None:
        request_id = str(uuid.uuid4())

    request_id_var.set(request_id)
    if operation:
        operation_var.set(operation)

    return request_id


def get_request_id() -> str:
    """获取当前上下文中的请求 ID"""
    return request_id_var.get('')


def clear_request_context():
    """清除请求上下文"""
    request_id_var.set('')
    operation_var.set('')


@contextmanager
def operation_context(operation: str) -> Iterator[str]:
    """
    在一次 SDK 调用期间绑定操作名

    已有请求 ID 时沿用，否则生成一个只在本次调用内有效的 ID。
    退出时恢复进入前的上下文，不影响调用方已绑定的值。

    Yields:
        str: 本次调用使用的请求 ID
    """
    operation_token = operation_var.set(operation)
    request_id = get_request_id()
    request_id_token = None
    if not request_id:
        request_id = str(uuid.uuid4())
        request_id_token = request_id_var.set(request_id)

    try:
        yield request_id
    finally:
        if request_id_token is not None:
            request_id_var.reset(request_id_token)
        operation_var.reset(operation_token)


def log_performance(operation: str = None):
    """
    记录异步 SDK 操作的开始、完成和失败

    Args:
        operation: 日志器名称，默认使用函数名
    """
    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"log_performance requires an async function, got {func.__qualname__}")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(operation or func.__name__)
            start_time = time.time()
            logger.info("Operation started", function=func.__name__)

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "Operation failed",
                    function=func.__name__,
                    duration=time.time() - start_time,
                    error=str(e),
                    error_type=type(e).__name__,
                    success=False
                )
                raise

            logger.info(
                "Operation completed",
                function=func.__name__,
                duration=time.time() - start_time,
                success=True
            )
            return result

        return wrapper

    return decorator


# 全局实例
request_tracker = RequestTracker()
performance_monitor = PerformanceMonitor()
