"""
SDK 异常类定义
"""

from typing import Any, Dict, Optional


class LlmSdkError(Exception):
    """SDK 基础异常类"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(LlmSdkError):
    """配置异常（如缺少 API 密钥）"""
    def __init__(self, message: str, setting: str = None):
        super().__init__(message, {"setting": setting} if setting else None)
        self.setting = setting


class RequestValidationError(LlmSdkError):
    """请求参数验证异常"""
    def __init__(self, message: str, parameter: str = None):
        super().__init__(message, {"parameter": parameter} if parameter else None)
        self.parameter = parameter


class ApiError(LlmSdkError):
    """API 返回非 2xx 状态码"""

    def __init__(
        self,
        message: str,
        status_code: int,
        code: Optional[str] = None,
        error_type: Optional[str] = None,
        param: Optional[str] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message, {
            "status_code": status_code,
            "code": code,
            "type": error_type,
            "param": param,
            "request_id": request_id,
        })
        self.status_code = status_code
        self.code = code
        self.error_type = error_type
        self.param = param
        self.request_id = request_id


class BadRequestError(ApiError):
    """400 请求无效"""


class AuthenticationError(ApiError):
    """401 API 密钥无效"""


class PermissionDeniedError(ApiError):
    """403 无权访问"""


class NotFoundError(ApiError):
    """404 资源不存在"""


class UnprocessableEntityError(ApiError):
    """422 请求无法处理"""


class RateLimitError(ApiError):
    """429 请求频率或额度超限"""
    def __init__(self, message: str, status_code: int = 429, retry_after: Optional[float] = None, **kwargs):
        super().__init__(message, status_code, **kwargs)
        self.retry_after = retry_after
        self.details["retry_after"] = retry_after


class ServerError(ApiError):
    """5xx 服务端错误"""


class ApiConnectionError(LlmSdkError):
    """网络连接异常"""
    def __init__(self, message: str, url: str = None):
        super().__init__(message, {"url": url} if url else None)
        self.url = url


class ApiTimeoutError(ApiConnectionError):
    """请求超时"""
    def __init__(self, message: str = "Request timed out", url: str = None, timeout_seconds: float = None):
        super().__init__(message, url)
        self.timeout_seconds = timeout_seconds
        if timeout_seconds is not None:
            self.details["timeout_seconds"] = timeout_seconds


class ResponseParseError(LlmSdkError):
    """响应体无法解析"""
    def __init__(self, message: str, body: str = None):
        super().__init__(message, {"body": body[:500]} if body else None)
        self.body = body


class ImageDownloadError(LlmSdkError):
    """图像获取异常"""
    def __init__(self, message: str, url: str = None):
        super().__init__(message, {"url": url} if url else None)
        self.url = url


class ImageProcessingError(LlmSdkError):
    """图像数据无效"""
    def __init__(self, message: str, image_format: str = None):
        super().__init__(message, {"format": image_format} if image_format else None)
        self.image_format = image_format


class ImageSaveError(LlmSdkError):
    """图像写入本地失败"""
    def __init__(self, message: str, path: str = None):
        super().__init__(message, {"path": path} if path else None)
        self.path = path
