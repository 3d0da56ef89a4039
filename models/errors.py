"""
API 错误响应模型

服务端在非 2xx 响应中返回的错误结构：{"error": {"message", "type", "param", "code"}}
"""

from typing import Optional, Union

from pydantic import BaseModel, Field


class ApiErrorBody(BaseModel):
    """错误详情"""

    message: str = Field("", description="错误信息")
    type: Optional[str] = Field(None, description="错误类型")
    param: Optional[str] = Field(None, description="出错的参数")
    code: Optional[Union[str, int]] = Field(None, description="错误代码")


class ApiErrorResponse(BaseModel):
    """错误响应模型"""

    error: ApiErrorBody

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": {
                    "message": "Incorrect API key provided: sk-****.",
                    "type": "invalid_request_error",
                    "param": None,
                    "code": "invalid_api_key"
                }
            }
        }
    }
