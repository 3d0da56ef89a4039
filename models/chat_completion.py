"""
对话补全请求与响应模型

对应 POST /chat/completions。消息按 role 字段区分类型。
"""

from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from .base import PayloadModel


class ChatCompleteModel(str, Enum):
    """对话模型"""
    GPT3_TURBO = "gpt-3.5-turbo-1106"
    GPT3_TURBO_INSTRUCT = "gpt-3.5-turbo-instruct"
    GPT4_TURBO = "gpt-4-1106-preview"
    GPT4_TURBO_VISION = "gpt-4-vision-preview"


class ToolType(str, Enum):
    """工具类型，目前仅支持 function"""
    FUNCTION = "function"


class ChatResponseFormat(str, Enum):
    """输出格式，json_object 开启 JSON 模式"""
    TEXT = "text"
    JSON_OBJECT = "json_object"


class ToolChoiceMode(str, Enum):
    """工具调用模式"""
    NONE = "none"
    AUTO = "auto"


class FinishReason(str, Enum):
    """模型停止生成的原因"""
    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"
    FUNCTION_CALL = "function_call"


# ── 消息 ──────────────────────────────────────────────────────────────────────

class SystemMessage(PayloadModel):
    """系统消息"""
    role: Literal["system"] = "system"
    content: str
    name: Optional[str] = Field(None, description="参与者名称，用于区分同一角色的多个参与者")


class UserMessage(PayloadModel):
    """用户消息"""
    role: Literal["user"] = "user"
    content: str
    name: Optional[str] = None


class FunctionCall(BaseModel):
    """模型生成的函数调用"""
    name: str
    # 模型生成的 JSON 参数，不保证合法，调用前需自行校验
    arguments: str


class ToolCall(BaseModel):
    """模型生成的工具调用"""
    id: str
    type: ToolType = ToolType.FUNCTION
    function: FunctionCall


class AssistantMessage(PayloadModel):
    """助手消息，既可作为请求历史，也出现在响应中"""
    omit_if_empty: ClassVar[Tuple[str, ...]] = ("tool_calls",)

    role: Literal["assistant"] = "assistant"
    content: Optional[str] = None
    name: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)

    @field_validator("tool_calls", mode="before")
    @classmethod
    def null_tool_calls(cls, v):
        return v if v is not None else []


class ToolMessage(PayloadModel):
    """工具执行结果消息"""
    role: Literal["tool"] = "tool"
    content: str
    tool_call_id: str


ChatCompletionMessage = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, ToolMessage],
    Field(discriminator="role"),
]


def _optional_name(name: str) -> Optional[str]:
    return name or None


def new_system_message(content: str, name: str = "") -> SystemMessage:
    """创建系统消息，name 为空字符串时不输出 name 字段"""
    return SystemMessage(content=content, name=_optional_name(name))


def new_user_message(content: str, name: str = "") -> UserMessage:
    """创建用户消息，name 为空字符串时不输出 name 字段"""
    return UserMessage(content=content, name=_optional_name(name))


# ── 工具 ──────────────────────────────────────────────────────────────────────

class FunctionInfo(BaseModel):
    """可供模型调用的函数描述"""
    description: Optional[str] = None
    name: str = Field(..., pattern=r"^[a-zA-Z0-9_-]{1,64}$")
    # JSON Schema 对象；无参数函数使用 {"type": "object", "properties": {}}
    parameters: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class Tool(BaseModel):
    """模型可调用的工具"""
    type: ToolType = ToolType.FUNCTION
    function: FunctionInfo


class ToolChoiceFunction(BaseModel):
    name: str


class NamedToolChoice(BaseModel):
    """强制模型调用指定函数"""
    type: ToolType = ToolType.FUNCTION
    function: ToolChoiceFunction


ToolChoice = Union[ToolChoiceMode, NamedToolChoice]


def tool_choice_function(name: str) -> NamedToolChoice:
    """构造指定函数的 tool_choice"""
    return NamedToolChoice(function=ToolChoiceFunction(name=name))


class ChatResponseFormatObject(BaseModel):
    type: ChatResponseFormat = ChatResponseFormat.JSON_OBJECT


# ── 请求 ──────────────────────────────────────────────────────────────────────

class ChatCompletionRequest(PayloadModel):
    """对话补全请求模型"""
    omit_if_empty: ClassVar[Tuple[str, ...]] = ("tools",)

    messages: List[ChatCompletionMessage] = Field(..., description="当前对话的消息列表")
    model: Optional[ChatCompleteModel] = Field(None, description="使用的模型")
    frequency_penalty: Optional[float] = Field(
        None, ge=-2.0, le=2.0,
        description="正值按已出现频率惩罚新 token，降低逐字重复"
    )
    max_tokens: Optional[int] = Field(None, ge=1, description="生成的最大 token 数")
    n: Optional[int] = Field(None, ge=1, description="为每条输入生成的候选数量")
    presence_penalty: Optional[float] = Field(
        None, ge=-2.0, le=2.0,
        description="正值惩罚已出现过的 token，鼓励新话题"
    )
    response_format: Optional[ChatResponseFormatObject] = None
    seed: Optional[int] = Field(None, description="尽力确定性采样的随机种子")
    stop: Optional[Union[str, List[str]]] = Field(None, description="最多 4 个停止序列")
    stream: Optional[bool] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0, description="采样温度")
    top_p: Optional[float] = Field(None, ge=0.0, le=1.0, description="核采样概率质量")
    tools: List[Tool] = Field(default_factory=list, description="模型可调用的工具列表")
    tool_choice: Optional[ToolChoice] = None
    user: Optional[str] = Field(None, description="终端用户的唯一标识")

    @field_validator("stop")
    @classmethod
    def validate_stop(cls, v):
        if isinstance(v, list) and len(v) > 4:
            raise ValueError("stop 最多支持 4 个序列")
        return v

    @field_validator("stream")
    @classmethod
    def validate_stream(cls, v):
        if v:
            raise ValueError("不支持流式响应 (stream=True)，响应总是作为单个 JSON 返回")
        return v


# ── 响应 ──────────────────────────────────────────────────────────────────────

class ChatCompleteUsage(BaseModel):
    """token 用量统计"""
    completion_tokens: int
    prompt_tokens: int
    total_tokens: int


class ChatCompletionChoice(BaseModel):
    finish_reason: Optional[FinishReason] = None
    index: int
    message: AssistantMessage


class ChatCompletionResponse(BaseModel):
    """对话补全响应模型"""
    id: str
    choices: List[ChatCompletionChoice]
    created: int
    model: str
    system_fingerprint: Optional[str] = None
    object: str = "chat.completion"
    usage: ChatCompleteUsage
