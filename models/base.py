"""
请求模型基类

统一请求体的 JSON 序列化规则：未设置的可选字段不输出，指定的空列表字段不输出。
"""

from typing import Any, ClassVar, Dict, Tuple

from pydantic import BaseModel, model_serializer


class PayloadModel(BaseModel):
    """可序列化为 API 请求体的模型"""

    # 为空时从 JSON 中省略的字段
    omit_if_empty: ClassVar[Tuple[str, ...]] = ()

    @model_serializer(mode="wrap")
    def _drop_empty_fields(self, handler) -> Dict[str, Any]:
        data = handler(self)
        for key in self.omit_if_empty:
            if key in data and not data[key]:
                del data[key]
        return data

    def to_payload(self) -> Dict[str, Any]:
        """
        转换为 API 请求体

        Returns:
            Dict[str, Any]: 可直接 JSON 编码的字典
        """
        return self.model_dump(mode="json", exclude_none=True)
