"""
图像生成请求与响应模型

对应 POST /images/generations，使用 Pydantic 进行数据验证。
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .base import PayloadModel


class ImageModel(str, Enum):
    """图像生成模型"""
    DALL_E_3 = "dall-e-3"
    DALL_E_2 = "dall-e-2"


class ImageQuality(str, Enum):
    """图像质量，hd 生成细节更丰富的图像（仅 dall-e-3）"""
    STANDARD = "standard"
    HD = "hd"


class ImageResponseFormat(str, Enum):
    """返回格式：URL 或 base64 编码的图像"""
    URL = "url"
    B64_JSON = "b64_json"


class ImageSize(str, Enum):
    """图像尺寸"""
    SMALL = "256x256"
    MEDIUM = "512x512"
    LARGE = "1024x1024"
    LARGE_WIDE = "1792x1024"
    LARGE_TALL = "1024x1792"


class ImageStyle(str, Enum):
    """图像风格（仅 dall-e-3）"""
    VIVID = "vivid"
    NATURAL = "natural"


# 各模型的提示词长度上限
MAX_PROMPT_LENGTH = {
    ImageModel.DALL_E_2: 1000,
    ImageModel.DALL_E_3: 4000,
}

# 各模型支持的尺寸
SUPPORTED_SIZES = {
    ImageModel.DALL_E_2: {ImageSize.SMALL, ImageSize.MEDIUM, ImageSize.LARGE},
    ImageModel.DALL_E_3: {ImageSize.LARGE, ImageSize.LARGE_WIDE, ImageSize.LARGE_TALL},
}


class CreateImageRequest(PayloadModel):
    """图像生成请求模型"""

    prompt: str = Field(
        ...,
        min_length=1,
        description="期望图像的文本描述"
    )
    model: ImageModel = Field(
        ImageModel.DALL_E_3,
        description="用于生成图像的模型"
    )
    n: Optional[int] = Field(
        None,
        ge=1,
        le=10,
        description="生成图像的数量，dall-e-3 仅支持 1"
    )
    quality: Optional[ImageQuality] = Field(None, description="图像质量")
    response_format: Optional[ImageResponseFormat] = Field(None, description="返回格式")
    size: Optional[ImageSize] = Field(None, description="图像尺寸")
    style: Optional[ImageStyle] = Field(None, description="图像风格")
    user: Optional[str] = Field(None, description="终端用户的唯一标识")

    @model_validator(mode="after")
    def validate_model_constraints(self):
        max_length = MAX_PROMPT_LENGTH[self.model]
        if len(self.prompt) > max_length:
            raise ValueError(f"{self.model.value} 的提示词长度不能超过 {max_length} 个字符")

        if self.model == ImageModel.DALL_E_3:
            if self.n is not None and self.n != 1:
                raise ValueError("dall-e-3 仅支持 n=1")
        else:
            if self.quality is not None:
                raise ValueError("quality 参数仅支持 dall-e-3")
            if self.style is not None:
                raise ValueError("style 参数仅支持 dall-e-3")

        if self.size is not None and self.size not in SUPPORTED_SIZES[self.model]:
            supported = sorted(size.value for size in SUPPORTED_SIZES[self.model])
            raise ValueError(f"{self.model.value} 不支持尺寸 {self.size.value}，可选: {supported}")

        return self

    @classmethod
    def new(cls, prompt: str) -> "CreateImageRequest":
        """仅使用提示词创建请求，其余参数使用服务端默认值"""
        return cls(prompt=prompt)


class ImageObject(BaseModel):
    """生成的单张图像"""

    b64_json: Optional[str] = Field(None, description="base64 编码的图像（response_format=b64_json）")
    url: Optional[str] = Field(None, description="图像 URL（response_format=url，默认）")
    revised_prompt: Optional[str] = Field(None, description="模型改写后的提示词")


class CreateImageResponse(BaseModel):
    """图像生成响应模型"""

    created: int = Field(description="创建时间（Unix 秒）")
    data: List[ImageObject] = Field(default_factory=list, description="生成的图像列表")
