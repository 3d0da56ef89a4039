"""
API 路由定义

请求模型与 API 端点的对应关系，以及由请求模型构建 httpx 请求的逻辑。
"""

import logging
from dataclasses import dataclass
from typing import Dict, Type

import httpx

from models.base import PayloadModel
from models.create_image import CreateImageRequest
from models.chat_completion import ChatCompletionRequest
from services.exceptions import RequestValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiRoute:
    """单个 API 端点"""
    name: str
    method: str
    path: str


# https://platform.openai.com/docs/api-reference/images/create
CREATE_IMAGE = ApiRoute("create_image", "POST", "/images/generations")
# https://platform.openai.com/docs/api-reference/chat/create
CHAT_COMPLETION = ApiRoute("chat_completion", "POST", "/chat/completions")

# request.extensions 中保存操作名的键，供请求钩子按操作统计
OPERATION_EXTENSION = "llm_sdk_operation"

ROUTES: Dict[Type[PayloadModel], ApiRoute] = {
    CreateImageRequest: CREATE_IMAGE,
    ChatCompletionRequest: CHAT_COMPLETION,
}


def get_route(request: PayloadModel) -> ApiRoute:
    """
    查找请求模型对应的端点

    Raises:
        RequestValidationError: 请求类型没有对应端点
    """
    route = ROUTES.get(type(request))
    if route is None:
        raise RequestValidationError(
            f"No API route registered for {type(request).__name__}",
            parameter="request"
        )
    return route


def into_request(request: PayloadModel, http_client: httpx.AsyncClient) -> httpx.Request:
    """
    将请求模型转换为 httpx 请求

    Args:
        request: 请求模型
        http_client: 提供 base_url 和默认头的 httpx 客户端

    Returns:
        httpx.Request: 待发送的请求
    """
    route = get_route(request)
    payload = request.to_payload()
    logger.debug(f"Building {route.method} {route.path} with fields: {sorted(payload)}")
    return http_client.build_request(
        route.method, route.path, json=payload,
        extensions={OPERATION_EXTENSION: route.name}
    )
