"""
HTTP 客户端工厂

创建带认证头、gzip、超时和日志钩子的 httpx.AsyncClient。
"""

import logging
from typing import Dict, Optional

import httpx

from config.models import ApiConfig
from services.exceptions import ConfigurationError
from .middleware import RequestLoggingHooks

logger = logging.getLogger(__name__)


def build_headers(api_config: ApiConfig, api_key: str) -> Dict[str, str]:
    """
    构建默认请求头

    Args:
        api_config: API 连接配置
        api_key: API 密钥

    Returns:
        Dict[str, str]: 请求头

    Raises:
        ConfigurationError: API 密钥为空
    """
    if not api_key or not api_key.strip():
        raise ConfigurationError("API key must not be empty", setting=api_config.api_key_env)

    headers = {
        "Authorization": f"Bearer {api_key.strip()}",
        "Accept": "application/json",
        "Accept-Encoding": "gzip",
        "User-Agent": api_config.user_agent,
    }
    if api_config.organization:
        headers["OpenAI-Organization"] = api_config.organization
    return headers


def create_http_client(
    api_config: ApiConfig,
    api_key: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    hooks: Optional[RequestLoggingHooks] = None,
) -> httpx.AsyncClient:
    """
    创建 httpx 异步客户端

    Args:
        api_config: API 连接配置
        api_key: API 密钥
        transport: 自定义传输层（测试时使用）
        hooks: 请求日志钩子

    Returns:
        httpx.AsyncClient: 配置好的客户端
    """
    headers = build_headers(api_config, api_key)
    hooks = hooks or RequestLoggingHooks()

    client = httpx.AsyncClient(
        base_url=api_config.base_url,
        headers=headers,
        timeout=httpx.Timeout(api_config.timeout),
        transport=transport,
        event_hooks=hooks.as_event_hooks(),
    )

    logger.info(f"HTTP client created: base_url={api_config.base_url}, timeout={api_config.timeout}s")
    return client
