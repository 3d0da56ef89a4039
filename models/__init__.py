"""
数据模型包

包含图像生成、对话补全的请求/响应模型以及 API 错误模型。
"""

from .create_image import (
    CreateImageRequest,
    CreateImageResponse,
    ImageModel,
    ImageObject,
    ImageQuality,
    ImageResponseFormat,
    ImageSize,
    ImageStyle,
)
from .chat_completion import (
    AssistantMessage,
    ChatCompleteModel,
    ChatCompletionChoice,
    ChatCompletionMessage,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatCompleteUsage,
    ChatResponseFormat,
    ChatResponseFormatObject,
    FinishReason,
    FunctionCall,
    FunctionInfo,
    NamedToolChoice,
    SystemMessage,
    Tool,
    ToolCall,
    ToolChoice,
    ToolChoiceMode,
    ToolMessage,
    ToolType,
    UserMessage,
    new_system_message,
    new_user_message,
    tool_choice_function,
)
from .errors import ApiErrorBody, ApiErrorResponse

__all__ = [
    "CreateImageRequest",
    "CreateImageResponse",
    "ImageModel",
    "ImageObject",
    "ImageQuality",
    "ImageResponseFormat",
    "ImageSize",
    "ImageStyle",
    "AssistantMessage",
    "ChatCompleteModel",
    "ChatCompletionChoice",
    "ChatCompletionMessage",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatCompleteUsage",
    "ChatResponseFormat",
    "ChatResponseFormatObject",
    "FinishReason",
    "FunctionCall",
    "FunctionInfo",
    "NamedToolChoice",
    "SystemMessage",
    "Tool",
    "ToolCall",
    "ToolChoice",
    "ToolChoiceMode",
    "ToolMessage",
    "ToolType",
    "UserMessage",
    "new_system_message",
    "new_user_message",
    "tool_choice_function",
    "ApiErrorBody",
    "ApiErrorResponse",
]
