"""
LLM SDK 客户端

通过 httpx 异步调用图像生成和对话补全接口，负责请求发送、错误映射和响应解析。
"""

import os
from typing import Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from api.app import create_http_client
from api.middleware import RequestLoggingHooks
from api.routes import get_route, into_request
from config.manager import get_current_config
from config.models import SdkConfig
from models.base import PayloadModel
from models.create_image import CreateImageRequest, CreateImageResponse
from models.chat_completion import ChatCompletionRequest, ChatCompletionResponse
from services.error_handler import error_handler
from services.exceptions import ConfigurationError, ResponseParseError
from services.interfaces import LlmSdkInterface
from services.logging import get_logger, log_performance, operation_context

logger = get_logger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class LlmSdk(LlmSdkInterface):
    """OpenAI 兼容 API 的异步客户端"""

    def __init__(
        self,
        api_key: str,
        *,
        config: Optional[SdkConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        hooks: Optional[RequestLoggingHooks] = None,
    ):
        """
        初始化客户端

        Args:
            api_key: API 密钥
            config: SDK 配置，默认使用全局配置
            http_client: 外部传入的 httpx 客户端（调用方负责关闭）
            transport: 自定义传输层，仅在未传入 http_client 时生效
            hooks: 请求日志钩子
        """
        self.config = config or get_current_config()
        self._hooks = hooks or RequestLoggingHooks()

        if http_client is None:
            self._client = create_http_client(
                self.config.api, api_key, transport=transport, hooks=self._hooks
            )
            self._owns_client = True
        else:
            self._client = http_client
            self._owns_client = False

        logger.info("LlmSdk initialized", base_url=self.config.api.base_url)

    @classmethod
    def from_env(cls, config: Optional[SdkConfig] = None, **kwargs) -> "LlmSdk":
        """
        从环境变量读取 API 密钥创建客户端

        Raises:
            ConfigurationError: 环境变量未设置或为空
        """
        config = config or get_current_config()
        env_name = config.api.api_key_env
        api_key = os.environ.get(env_name, "")
        if not api_key.strip():
            raise ConfigurationError(
                f"Environment variable {env_name} is not set",
                setting=env_name
            )
        return cls(api_key, config=config, **kwargs)

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._client

    @log_performance("llm_sdk.create_image")
    async def create_image(self, req: CreateImageRequest) -> CreateImageResponse:
        """生成图像"""
        return await self.send(req, CreateImageResponse)

    @log_performance("llm_sdk.chat_completion")
    async def chat_completion(self, req: ChatCompletionRequest) -> ChatCompletionResponse:
        """创建对话补全"""
        return await self.send(req, ChatCompletionResponse)

    async def send(self, req: PayloadModel, response_model: Type[ResponseT]) -> ResponseT:
        """
        发送请求并解析响应

        Args:
            req: 请求模型
            response_model: 响应模型类型

        Returns:
            解析后的响应模型

        Raises:
            ApiError: 非 2xx 响应
            ApiConnectionError: 网络错误或超时
            ResponseParseError: 响应体不符合预期结构
        """
        route = get_route(req)

        with operation_context(route.name):
            request = into_request(req, self._client)

            try:
                response = await self._client.send(request)
            except httpx.HTTPError as e:
                self._hooks.on_error(request, e)
                raise error_handler.wrap_transport_error(
                    e, str(request.url), timeout_seconds=self.config.api.timeout
                ) from e

            error_handler.raise_for_response(response)

            try:
                return response_model.model_validate(response.json())
            except ValueError as e:
                logger.error(
                    "Failed to parse response",
                    operation=route.name,
                    response_model=response_model.__name__,
                    error=str(e)
                )
                raise ResponseParseError(
                    f"Unexpected {route.name} response: {e}",
                    body=response.text
                ) from e

    async def aclose(self) -> None:
        """关闭内部创建的 HTTP 客户端"""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "LlmSdk":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
