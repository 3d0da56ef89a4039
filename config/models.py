"""
配置数据模型和验证

基于 Pydantic 的 SDK 配置模型，提供数据验证和类型检查功能。
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any


DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_USER_AGENT = "llm-sdk-python/0.1.0"


class ApiConfig(BaseModel):
    """API 连接配置"""
    base_url: str = Field(DEFAULT_BASE_URL, description="API 根地址")
    api_key_env: str = Field("OPENAI_API_KEY", description="读取 API 密钥的环境变量名")
    organization: Optional[str] = Field(None, description="组织 ID (OpenAI-Organization 头)")
    timeout: float = Field(120.0, gt=0, le=600, description="请求超时时间 (秒)")
    user_agent: str = Field(DEFAULT_USER_AGENT, description="User-Agent 头")

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        if not v:
            raise ValueError("API 地址不能为空")
        if not v.startswith(("http://", "https://")):
            raise ValueError("API 地址必须以 http:// 或 https:// 开头")
        return v.rstrip("/")

    @field_validator('api_key_env')
    @classmethod
    def validate_api_key_env(cls, v):
        if not v:
            raise ValueError("环境变量名不能为空")
        return v


class ImageConfig(BaseModel):
    """图像保存配置"""
    output_dir: str = Field("/tmp/llm-sdk", description="生成图像的保存目录")
    default_filename: str = Field("caterpillar.png", description="默认图像文件名")

    @field_validator('default_filename')
    @classmethod
    def validate_default_filename(cls, v):
        if not v or "/" in v:
            raise ValueError("文件名不能为空且不能包含路径分隔符")
        return v


class LogConfig(BaseModel):
    """日志配置"""
    level: str = Field("INFO", description="日志级别")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="日志格式"
    )
    file_path: Optional[str] = Field(None, description="日志文件路径")
    json_format: bool = Field(False, description="是否输出 JSON 格式日志")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"日志级别必须是 {valid_levels} 中的一个")
        return v.upper()


class SdkConfig(BaseModel):
    """SDK 完整配置"""
    model_config = ConfigDict(extra="forbid")  # 禁止额外字段

    api: ApiConfig = ApiConfig()
    image: ImageConfig = ImageConfig()
    log: LogConfig = LogConfig()


def validate_config_dict(config_dict: Dict[str, Any]) -> SdkConfig:
    """
    验证配置字典并返回 SdkConfig 实例

    Args:
        config_dict: 配置字典

    Returns:
        SdkConfig: 验证后的配置对象

    Raises:
        ValueError: 配置验证失败
    """
    try:
        return SdkConfig(**config_dict)
    except Exception as e:
        raise ValueError(f"配置验证失败: {str(e)}")


def get_default_config() -> Dict[str, Any]:
    """
    获取默认配置

    Returns:
        Dict[str, Any]: 默认配置字典
    """
    return {
        "api": {
            "base_url": DEFAULT_BASE_URL,
            "api_key_env": "OPENAI_API_KEY",
            "organization": None,
            "timeout": 120.0,
            "user_agent": DEFAULT_USER_AGENT
        },
        "image": {
            "output_dir": "/tmp/llm-sdk",
            "default_filename": "caterpillar.png"
        },
        "log": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file_path": None,
            "json_format": False
        }
    }
