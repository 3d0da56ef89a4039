"""
Command-line entry point for the LLM SDK.
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from pydantic import ValidationError

from config.manager import init_config
from models.create_image import (
    CreateImageRequest, ImageModel, ImageQuality, ImageResponseFormat, ImageSize, ImageStyle
)
from models.chat_completion import (
    ChatCompleteModel, ChatCompletionRequest, new_system_message, new_user_message
)
from services.client import LlmSdk
from services.error_handler import error_handler
from services.exceptions import LlmSdkError
from services.image_store import ImageStore
from services.logging import configure_logging, get_logger

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(description="LLM SDK command-line client")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="配置文件路径 (默认使用内置配置)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="日志级别 (覆盖配置文件)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    image_parser = subparsers.add_parser("image", help="根据提示词生成图像")
    image_parser.add_argument("prompt", type=str, help="图像描述")
    image_parser.add_argument(
        "--model", choices=[m.value for m in ImageModel], default=ImageModel.DALL_E_3.value
    )
    image_parser.add_argument("--quality", choices=[q.value for q in ImageQuality], default=None)
    image_parser.add_argument("--style", choices=[s.value for s in ImageStyle], default=None)
    image_parser.add_argument("--size", choices=[s.value for s in ImageSize], default=None)
    image_parser.add_argument("--output-dir", type=str, default=None, help="图像保存目录")
    image_parser.add_argument("--filename", type=str, default=None, help="图像文件名")

    chat_parser = subparsers.add_parser("chat", help="发送一条对话消息")
    chat_parser.add_argument("message", type=str, help="用户消息")
    chat_parser.add_argument("--system", type=str, default=None, help="系统提示词")
    chat_parser.add_argument(
        "--model",
        choices=[m.value for m in ChatCompleteModel],
        default=ChatCompleteModel.GPT3_TURBO.value
    )
    chat_parser.add_argument("--temperature", type=float, default=None)
    chat_parser.add_argument("--max-tokens", type=int, default=None)

    return parser.parse_args(argv)


def build_image_request(args) -> CreateImageRequest:
    """根据命令行参数构建图像生成请求"""
    options = {
        "prompt": args.prompt,
        "model": args.model,
        "quality": args.quality,
        "style": args.style,
        "size": args.size,
        # 直接取回图像数据，避免再次下载
        "response_format": ImageResponseFormat.B64_JSON,
    }
    return CreateImageRequest(**{k: v for k, v in options.items() if v is not None})


def build_chat_request(args) -> ChatCompletionRequest:
    """根据命令行参数构建对话补全请求"""
    messages = []
    if args.system:
        messages.append(new_system_message(args.system))
    messages.append(new_user_message(args.message))

    options = {
        "messages": messages,
        "model": args.model,
        "temperature": args.temperature,
        "max_tokens": args.max_tokens,
    }
    return ChatCompletionRequest(**{k: v for k, v in options.items() if v is not None})


async def run_image(args, config) -> None:
    """生成图像并保存到本地"""
    request = build_image_request(args)
    store = ImageStore(
        output_dir=args.output_dir or config.image.output_dir,
        default_filename=config.image.default_filename,
    )

    async with LlmSdk.from_env(config) as sdk:
        response = await sdk.create_image(request)

    for index, image in enumerate(response.data):
        filename = args.filename
        if filename and len(response.data) > 1:
            filename = f"{index}-{filename}"
        path = await store.save(image, filename)
        print(path)
        if image.revised_prompt:
            print(f"revised prompt: {image.revised_prompt}")


async def run_chat(args, config) -> None:
    """发送对话消息并输出回复"""
    request = build_chat_request(args)

    async with LlmSdk.from_env(config) as sdk:
        response = await sdk.chat_completion(request)

    for choice in response.choices:
        print(choice.message.content or "")


COMMANDS = {
    "image": run_image,
    "chat": run_chat,
}


def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    args = parse_args(argv)

    try:
        config = init_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(
        log_level=args.log_level or config.log.level,
        log_file=config.log.file_path,
        json_format=config.log.json_format
    )

    try:
        asyncio.run(COMMANDS[args.command](args, config))
    except (LlmSdkError, ValidationError) as e:
        print(json.dumps(error_handler.describe(e), ensure_ascii=False, indent=2, default=str), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    return 0


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
