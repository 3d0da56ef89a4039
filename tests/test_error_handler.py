"""
错误处理系统测试

测试 HTTP 响应到 SDK 异常的映射和统一错误描述格式。
"""

import httpx
import pytest
from pydantic import BaseModel, ValidationError

from services.error_handler import ErrorHandler, ErrorCategory, ErrorCode, error_handler
from services.exceptions import (
    ApiConnectionError, ApiError, ApiTimeoutError, AuthenticationError, BadRequestError,
    ConfigurationError, ImageDownloadError, ImageProcessingError, ImageSaveError, NotFoundError,
    PermissionDeniedError, RateLimitError, RequestValidationError, ResponseParseError,
    ServerError, UnprocessableEntityError
)
from services.logging import set_request_context

REQUEST = httpx.Request("POST", "https://api.test.local/v1/chat/completions")


def make_response(status_code: int, json=None, text=None, headers=None) -> httpx.Response:
    return httpx.Response(status_code, json=json, text=text, headers=headers, request=REQUEST)


class TestRaiseForResponse:
    """响应状态码映射测试"""

    def setup_method(self):
        """设置测试"""
        self.error_handler = ErrorHandler()

    def test_success_does_not_raise(self):
        """测试 2xx 不抛出异常"""
        self.error_handler.raise_for_response(make_response(200, json={}))
        self.error_handler.raise_for_response(make_response(204))

    @pytest.mark.parametrize("status_code,exc_class", [
        (400, BadRequestError),
        (401, AuthenticationError),
        (403, PermissionDeniedError),
        (404, NotFoundError),
        (409, ApiError),
        (422, UnprocessableEntityError),
        (429, RateLimitError),
        (500, ServerError),
        (502, ServerError),
    ])
    def test_status_mapping(self, status_code, exc_class):
        """测试状态码到异常类型的映射"""
        response = make_response(status_code, json={"error": {"message": "boom"}})

        with pytest.raises(exc_class) as exc_info:
            self.error_handler.raise_for_response(response)

        assert type(exc_info.value) is exc_class
        assert exc_info.value.status_code == status_code
        assert exc_info.value.message == "boom"

    def test_error_envelope_parsed(self):
        """测试解析错误信封"""
        response = make_response(401, json={
            "error": {
                "message": "Incorrect API key provided: sk-****.",
                "type": "invalid_request_error",
                "param": None,
                "code": "invalid_api_key",
            }
        }, headers={"x-request-id": "req_123"})

        with pytest.raises(AuthenticationError) as exc_info:
            self.error_handler.raise_for_response(response)

        exc = exc_info.value
        assert exc.code == "invalid_api_key"
        assert exc.error_type == "invalid_request_error"
        assert exc.param is None
        assert exc.request_id == "req_123"
        assert exc.details["status_code"] == 401

    def test_numeric_error_code(self):
        """测试数字错误代码转换为字符串"""
        response = make_response(400, json={"error": {"message": "bad", "code": 1001}})

        with pytest.raises(BadRequestError) as exc_info:
            self.error_handler.raise_for_response(response)
        assert exc_info.value.code == "1001"

    def test_plain_text_body(self):
        """测试纯文本错误响应"""
        with pytest.raises(ServerError) as exc_info:
            self.error_handler.raise_for_response(make_response(503, text="upstream unavailable"))
        assert exc_info.value.message == "upstream unavailable"

    def test_empty_body_uses_reason_phrase(self):
        """测试空响应体使用状态描述"""
        with pytest.raises(NotFoundError) as exc_info:
            self.error_handler.raise_for_response(make_response(404))
        assert exc_info.value.message == "Not Found"

    def test_empty_message_in_envelope(self):
        """测试错误信封中 message 为空"""
        with pytest.raises(BadRequestError) as exc_info:
            self.error_handler.raise_for_response(make_response(400, json={"error": {}}))
        assert exc_info.value.message == "HTTP 400"

    def test_request_id_falls_back_to_context(self):
        """测试无 x-request-id 头时使用上下文请求 ID"""
        set_request_context(request_id="ctx-1")

        with pytest.raises(ServerError) as exc_info:
            self.error_handler.raise_for_response(make_response(500, text="oops"))
        assert exc_info.value.request_id == "ctx-1"

    @pytest.mark.parametrize("header,expected", [
        ("12", 12.0),
        ("0.5", 0.5),
        ("Wed, 21 Oct 2015 07:28:00 GMT", None),
    ])
    def test_retry_after(self, header, expected):
        """测试 retry-after 解析"""
        response = make_response(429, json={"error": {"message": "slow down"}},
                                 headers={"retry-after": header})

        with pytest.raises(RateLimitError) as exc_info:
            self.error_handler.raise_for_response(response)
        assert exc_info.value.retry_after == expected


class TestWrapTransportError:
    """传输层异常转换测试"""

    def test_timeout(self):
        """测试超时异常"""
        exc = error_handler.wrap_transport_error(httpx.ReadTimeout("timed out"), "https://x/v1")

        assert isinstance(exc, ApiTimeoutError)
        assert exc.url == "https://x/v1"
        assert exc.timeout_seconds is None

    def test_timeout_records_configured_seconds(self):
        """测试超时异常携带配置的超时时间"""
        exc = error_handler.wrap_transport_error(
            httpx.ConnectTimeout("timed out"), "https://x/v1", timeout_seconds=30.0
        )

        assert exc.timeout_seconds == 30.0
        description = error_handler.describe(exc)
        assert description["details"]["timeout_seconds"] == 30.0
        assert "30.0s" in description["message"]

    def test_connection_error(self):
        """测试连接异常"""
        exc = error_handler.wrap_transport_error(httpx.ConnectError("refused"))

        assert type(exc) is ApiConnectionError
        assert "ConnectError" in exc.message
        assert "refused" in exc.message


class TestDescribe:
    """错误描述测试"""

    def setup_method(self):
        """设置测试"""
        self.error_handler = ErrorHandler()

    @pytest.mark.parametrize("exc,code,category", [
        (AuthenticationError("bad key", 401), ErrorCode.UNAUTHORIZED, ErrorCategory.AUTHENTICATION_ERROR),
        (PermissionDeniedError("no", 403), ErrorCode.FORBIDDEN, ErrorCategory.AUTHORIZATION_ERROR),
        (RateLimitError("slow"), ErrorCode.TOO_MANY_REQUESTS, ErrorCategory.RATE_LIMIT_ERROR),
        (ServerError("down", 503), ErrorCode.SERVICE_UNAVAILABLE, ErrorCategory.SERVER_ERROR),
        (ServerError("crash", 500), ErrorCode.INTERNAL_SERVER_ERROR, ErrorCategory.SERVER_ERROR),
        (BadRequestError("bad", 400), ErrorCode.BAD_REQUEST, ErrorCategory.CLIENT_ERROR),
        (NotFoundError("gone", 404), ErrorCode.NOT_FOUND, ErrorCategory.CLIENT_ERROR),
        (ApiError("conflict", 409), ErrorCode.API_ERROR, ErrorCategory.CLIENT_ERROR),
        (ConfigurationError("no key"), ErrorCode.CONFIGURATION_ERROR, ErrorCategory.CONFIGURATION_ERROR),
        (RequestValidationError("bad"), ErrorCode.VALIDATION_ERROR, ErrorCategory.VALIDATION_ERROR),
        (ApiTimeoutError(), ErrorCode.TIMEOUT, ErrorCategory.NETWORK_ERROR),
        (ApiConnectionError("down"), ErrorCode.CONNECTION_ERROR, ErrorCategory.NETWORK_ERROR),
        (ResponseParseError("bad json"), ErrorCode.INVALID_RESPONSE, ErrorCategory.SERVER_ERROR),
        (ImageDownloadError("404"), ErrorCode.IMAGE_DOWNLOAD_FAILED, ErrorCategory.IMAGE_ERROR),
        (ImageProcessingError("corrupt"), ErrorCode.INVALID_IMAGE, ErrorCategory.IMAGE_ERROR),
        (ImageSaveError("read-only"), ErrorCode.IMAGE_SAVE_FAILED, ErrorCategory.IMAGE_ERROR),
    ])
    def test_error_mapping(self, exc, code, category):
        """测试异常的错误代码和分类"""
        description = self.error_handler.describe(exc)

        assert description["code"] == code.value
        assert description["category"] == category.value
        assert description["details"]["exception_type"] == type(exc).__name__

    def test_api_error_details(self):
        """测试 API 错误详情，空值不输出"""
        exc = RateLimitError("quota", retry_after=3.0, code="insufficient_quota")

        description = self.error_handler.describe(exc)

        assert "请求频率或额度超限" in description["message"]
        details = description["details"]
        assert details["status_code"] == 429
        assert details["code"] == "insufficient_quota"
        assert details["retry_after"] == 3.0
        assert "param" not in details
        assert "timestamp" in details

    def test_pydantic_validation_error(self):
        """测试 Pydantic 验证错误"""

        class Sample(BaseModel):
            value: int

        with pytest.raises(ValidationError) as exc_info:
            Sample(value="not a number")

        description = self.error_handler.describe(exc_info.value)

        assert description["code"] == ErrorCode.VALIDATION_ERROR.value
        assert description["details"]["validation_errors"][0]["loc"] == ("value",)

    def test_unknown_error(self):
        """测试未知异常"""
        description = self.error_handler.describe(RuntimeError("strange"))

        assert description["code"] == ErrorCode.UNKNOWN_ERROR.value
        assert description["category"] == ErrorCategory.UNKNOWN_ERROR.value
        assert "strange" in description["message"]

    def test_include_traceback(self):
        """测试包含堆栈跟踪"""
        try:
            raise ConfigurationError("missing")
        except ConfigurationError as e:
            description = self.error_handler.describe(e, include_traceback=True)

        assert "ConfigurationError" in description["details"]["traceback"]

    def test_image_save_error_details(self):
        """测试图像保存错误包含目标路径"""
        description = self.error_handler.describe(ImageSaveError("disk full", path="/tmp/llm-sdk/a.png"))

        assert description["message"] == "图像保存失败: disk full"
        assert description["details"]["path"] == "/tmp/llm-sdk/a.png"

    def test_subclass_checked_before_parent(self):
        """测试子类映射优先于父类"""
        assert self.error_handler.describe(ApiTimeoutError())["code"] == ErrorCode.TIMEOUT.value
        assert self.error_handler.describe(ServerError("x", 500))["category"] == \
            ErrorCategory.SERVER_ERROR.value
