"""
统一错误处理系统

负责将 HTTP 响应和传输层异常转换为 SDK 异常，并提供统一的错误描述格式。
"""

import traceback
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Type

import httpx
from pydantic import ValidationError

from models.errors import ApiErrorResponse
from services.logging import get_logger, get_request_id
from services.exceptions import (
    LlmSdkError, ConfigurationError, RequestValidationError, ApiError,
    BadRequestError, AuthenticationError, PermissionDeniedError, NotFoundError,
    UnprocessableEntityError, RateLimitError, ServerError, ApiConnectionError,
    ApiTimeoutError, ResponseParseError, ImageDownloadError, ImageProcessingError,
    ImageSaveError
)

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """错误分类"""
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    VALIDATION_ERROR = "validation_error"
    AUTHENTICATION_ERROR = "authentication_error"
    AUTHORIZATION_ERROR = "authorization_error"
    RATE_LIMIT_ERROR = "rate_limit_error"
    CONFIGURATION_ERROR = "configuration_error"
    NETWORK_ERROR = "network_error"
    IMAGE_ERROR = "image_error"
    UNKNOWN_ERROR = "unknown_error"


class ErrorCode(Enum):
    """标准错误代码"""
    # 客户端错误 (4xx)
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    UNPROCESSABLE_ENTITY = "UNPROCESSABLE_ENTITY"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"

    # 服务器错误 (5xx)
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # SDK 本地错误
    API_ERROR = "API_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    IMAGE_DOWNLOAD_FAILED = "IMAGE_DOWNLOAD_FAILED"
    INVALID_IMAGE = "INVALID_IMAGE"
    IMAGE_SAVE_FAILED = "IMAGE_SAVE_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# 状态码 -> 异常类型
STATUS_EXCEPTIONS: Dict[int, Type[ApiError]] = {
    400: BadRequestError,
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
    422: UnprocessableEntityError,
    429: RateLimitError,
}


class ErrorHandler:
    """统一错误处理器"""

    def __init__(self):
        self.error_mappings = self._setup_error_mappings()

    def _setup_error_mappings(self) -> Dict[Type[Exception], Dict[str, Any]]:
        """设置错误映射，子类必须排在父类之前"""
        return {
            AuthenticationError: {
                "category": ErrorCategory.AUTHENTICATION_ERROR,
                "get_code": lambda e: ErrorCode.UNAUTHORIZED.value,
                "get_message": lambda e: f"API 密钥无效: {e.message}",
            },
            PermissionDeniedError: {
                "category": ErrorCategory.AUTHORIZATION_ERROR,
                "get_code": lambda e: ErrorCode.FORBIDDEN.value,
                "get_message": lambda e: f"无权访问: {e.message}",
            },
            RateLimitError: {
                "category": ErrorCategory.RATE_LIMIT_ERROR,
                "get_code": lambda e: ErrorCode.TOO_MANY_REQUESTS.value,
                "get_message": lambda e: f"请求频率或额度超限: {e.message}",
            },
            ServerError: {
                "category": ErrorCategory.SERVER_ERROR,
                "get_code": lambda e: (
                    ErrorCode.SERVICE_UNAVAILABLE.value if e.status_code == 503
                    else ErrorCode.INTERNAL_SERVER_ERROR.value
                ),
                "get_message": lambda e: f"服务端错误: {e.message}",
            },
            ApiError: {
                "category": ErrorCategory.CLIENT_ERROR,
                "get_code": lambda e: self._client_error_code(e.status_code),
                "get_message": lambda e: f"请求失败: {e.message}",
            },
            ConfigurationError: {
                "category": ErrorCategory.CONFIGURATION_ERROR,
                "get_code": lambda e: ErrorCode.CONFIGURATION_ERROR.value,
                "get_message": lambda e: f"配置错误: {e.message}",
            },
            RequestValidationError: {
                "category": ErrorCategory.VALIDATION_ERROR,
                "get_code": lambda e: ErrorCode.VALIDATION_ERROR.value,
                "get_message": lambda e: f"参数验证失败: {e.message}",
            },
            ValidationError: {
                "category": ErrorCategory.VALIDATION_ERROR,
                "get_code": lambda e: ErrorCode.VALIDATION_ERROR.value,
                "get_message": lambda e: "数据验证失败",
            },
            ApiTimeoutError: {
                "category": ErrorCategory.NETWORK_ERROR,
                "get_code": lambda e: ErrorCode.TIMEOUT.value,
                "get_message": lambda e: (
                    f"请求超时 ({e.timeout_seconds}s)" if e.timeout_seconds is not None else "请求超时"
                ),
            },
            ApiConnectionError: {
                "category": ErrorCategory.NETWORK_ERROR,
                "get_code": lambda e: ErrorCode.CONNECTION_ERROR.value,
                "get_message": lambda e: f"网络连接失败: {e.message}",
            },
            ResponseParseError: {
                "category": ErrorCategory.SERVER_ERROR,
                "get_code": lambda e: ErrorCode.INVALID_RESPONSE.value,
                "get_message": lambda e: f"响应解析失败: {e.message}",
            },
            ImageDownloadError: {
                "category": ErrorCategory.IMAGE_ERROR,
                "get_code": lambda e: ErrorCode.IMAGE_DOWNLOAD_FAILED.value,
                "get_message": lambda e: f"图像获取失败: {e.message}",
            },
            ImageProcessingError: {
                "category": ErrorCategory.IMAGE_ERROR,
                "get_code": lambda e: ErrorCode.INVALID_IMAGE.value,
                "get_message": lambda e: f"图像数据无效: {e.message}",
            },
            ImageSaveError: {
                "category": ErrorCategory.IMAGE_ERROR,
                "get_code": lambda e: ErrorCode.IMAGE_SAVE_FAILED.value,
                "get_message": lambda e: f"图像保存失败: {e.message}",
            },
        }

    @staticmethod
    def _client_error_code(status_code: int) -> str:
        codes = {
            400: ErrorCode.BAD_REQUEST,
            404: ErrorCode.NOT_FOUND,
            422: ErrorCode.UNPROCESSABLE_ENTITY,
        }
        return codes.get(status_code, ErrorCode.API_ERROR).value

    def raise_for_response(self, response: httpx.Response) -> None:
        """
        检查响应状态码，非 2xx 时抛出对应的 ApiError 子类

        Args:
            response: httpx 响应对象

        Raises:
            ApiError: 响应状态码表示失败
        """
        if response.is_success:
            return

        status_code = response.status_code
        message, code, error_type, param = self._parse_error_body(response)
        request_id = response.headers.get("x-request-id") or get_request_id() or None

        kwargs = dict(code=code, error_type=error_type, param=param, request_id=request_id)

        if status_code == 429:
            exc = RateLimitError(
                message,
                status_code,
                retry_after=self._parse_retry_after(response),
                **kwargs
            )
        elif status_code >= 500:
            exc = ServerError(message, status_code, **kwargs)
        else:
            exc_class = STATUS_EXCEPTIONS.get(status_code, ApiError)
            exc = exc_class(message, status_code, **kwargs)

        self._log_error(exc, self.describe(exc))
        raise exc

    def _parse_error_body(self, response: httpx.Response):
        """解析错误响应体，返回 (message, code, type, param)"""
        try:
            body = ApiErrorResponse.model_validate(response.json()).error
        except (ValueError, ValidationError):
            text = response.text.strip()
            message = text[:500] if text else response.reason_phrase or f"HTTP {response.status_code}"
            return message, None, None, None

        code = str(body.code) if body.code is not None else None
        return body.message or f"HTTP {response.status_code}", code, body.type, body.param

    @staticmethod
    def _parse_retry_after(response: httpx.Response) -> Optional[float]:
        value = response.headers.get("retry-after")
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    def wrap_transport_error(
        self,
        exc: httpx.HTTPError,
        url: str = None,
        timeout_seconds: Optional[float] = None
    ) -> LlmSdkError:
        """
        将 httpx 传输层异常转换为 SDK 异常

        Args:
            exc: httpx 异常
            url: 请求地址
            timeout_seconds: 客户端配置的超时时间

        Returns:
            LlmSdkError: 对应的 SDK 异常
        """
        if isinstance(exc, httpx.TimeoutException):
            wrapped: LlmSdkError = ApiTimeoutError(
                f"Request timed out: {exc}", url=url, timeout_seconds=timeout_seconds
            )
        else:
            wrapped = ApiConnectionError(f"{type(exc).__name__}: {exc}", url=url)

        self._log_error(wrapped, self.describe(wrapped))
        return wrapped

    def describe(self, exc: Exception, include_traceback: bool = False) -> Dict[str, Any]:
        """
        生成统一格式的错误描述

        Args:
            exc: 异常对象
            include_traceback: 是否包含堆栈跟踪

        Returns:
            Dict[str, Any]: {code, category, message, details}
        """
        error_info = self._get_error_info(exc)

        details: Dict[str, Any] = {
            "exception_type": type(exc).__name__,
            "timestamp": error_info["timestamp"],
        }
        if isinstance(exc, ValidationError):
            details["validation_errors"] = exc.errors(include_url=False, include_context=False)
        elif isinstance(exc, LlmSdkError):
            details.update({k: v for k, v in exc.details.items() if v is not None})

        if include_traceback:
            details["traceback"] = traceback.format_exc()

        return {
            "code": error_info["code"],
            "category": error_info["category"].value,
            "message": error_info["message"],
            "details": details,
        }

    def _get_error_info(self, exc: Exception) -> Dict[str, Any]:
        """获取错误信息"""
        mapping = None
        for error_type, error_mapping in self.error_mappings.items():
            if isinstance(exc, error_type):
                mapping = error_mapping
                break

        if mapping:
            return {
                "category": mapping["category"],
                "code": mapping["get_code"](exc),
                "message": mapping["get_message"](exc),
                "timestamp": datetime.now().isoformat()
            }

        # 未知错误的默认处理
        return {
            "category": ErrorCategory.UNKNOWN_ERROR,
            "code": ErrorCode.UNKNOWN_ERROR.value,
            "message": f"未知错误: {exc}",
            "timestamp": datetime.now().isoformat()
        }

    def _log_error(self, exc: Exception, description: Dict[str, Any]):
        """记录错误日志"""
        status_code = getattr(exc, "status_code", None)
        if status_code is not None and 400 <= status_code < 500:
            log_method = logger.warning
        else:
            log_method = logger.error

        log_method(
            f"API call failed: {description['message']}",
            error_code=description["code"],
            error_category=description["category"],
            status_code=status_code,
            exception_type=type(exc).__name__,
        )


# 全局错误处理器实例
error_handler = ErrorHandler()
