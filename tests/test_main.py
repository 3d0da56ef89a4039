"""
命令行入口测试
"""

import base64

import httpx
import pytest
from respx import MockRouter

import main
from config.manager import ENV_OVERRIDES
from models.chat_completion import SystemMessage, UserMessage
from models.create_image import ImageResponseFormat

API_BASE = "https://api.openai.com/v1"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_name in ENV_OVERRIDES:
        monkeypatch.delenv(env_name, raising=False)


class TestParseArgs:
    """参数解析测试"""

    def test_image_command(self):
        """测试 image 子命令"""
        args = main.parse_args(["image", "a cat", "--quality", "hd", "--filename", "cat.png"])

        assert args.command == "image"
        assert args.prompt == "a cat"
        assert args.quality == "hd"
        assert args.filename == "cat.png"
        assert args.model == "dall-e-3"

    def test_chat_command(self):
        """测试 chat 子命令"""
        args = main.parse_args(["--log-level", "DEBUG", "chat", "hello", "--temperature", "0.5"])

        assert args.command == "chat"
        assert args.log_level == "DEBUG"
        assert args.temperature == 0.5
        assert args.model == "gpt-3.5-turbo-1106"

    def test_command_required(self):
        """测试缺少子命令"""
        with pytest.raises(SystemExit):
            main.parse_args([])

    def test_invalid_choice(self):
        """测试无效的选项值"""
        with pytest.raises(SystemExit):
            main.parse_args(["image", "a cat", "--size", "100x100"])


class TestBuildRequests:
    """请求构建测试"""

    def test_build_image_request(self):
        """测试构建图像请求"""
        args = main.parse_args(["image", "a cat", "--style", "natural"])

        req = main.build_image_request(args)

        assert req.prompt == "a cat"
        assert req.response_format is ImageResponseFormat.B64_JSON
        assert req.to_payload() == {
            "prompt": "a cat",
            "model": "dall-e-3",
            "style": "natural",
            "response_format": "b64_json",
        }

    def test_build_chat_request(self):
        """测试构建对话请求"""
        args = main.parse_args(["chat", "hello", "--system", "be brief", "--max-tokens", "50"])

        req = main.build_chat_request(args)

        assert isinstance(req.messages[0], SystemMessage)
        assert isinstance(req.messages[1], UserMessage)
        assert req.max_tokens == 50
        assert req.temperature is None


class TestMain:
    """主函数测试"""

    def test_image_command_saves_file(self, tmp_path, png_bytes, monkeypatch, respx_mock: MockRouter, capsys):
        """测试生成并保存图像"""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        respx_mock.post(f"{API_BASE}/images/generations").mock(return_value=httpx.Response(200, json={
            "created": 1700000000,
            "data": [{
                "b64_json": base64.b64encode(png_bytes).decode(),
                "revised_prompt": "a small caterpillar",
            }],
        }))

        exit_code = main.main(["image", "a caterpillar", "--output-dir", str(tmp_path)])

        assert exit_code == 0
        assert (tmp_path / "caterpillar.png").read_bytes() == png_bytes
        output = capsys.readouterr().out
        assert str(tmp_path / "caterpillar.png") in output
        assert "a small caterpillar" in output

    def test_image_command_unwritable_output(self, tmp_path, png_bytes, monkeypatch, respx_mock: MockRouter, capsys):
        """测试输出目录不可写时返回错误"""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        blocker = tmp_path / "images"
        blocker.write_text("occupied")
        respx_mock.post(f"{API_BASE}/images/generations").mock(return_value=httpx.Response(200, json={
            "created": 1700000000,
            "data": [{"b64_json": base64.b64encode(png_bytes).decode()}],
        }))

        exit_code = main.main(["image", "a caterpillar", "--output-dir", str(blocker)])

        assert exit_code == 1
        error = capsys.readouterr().err
        assert '"code": "IMAGE_SAVE_FAILED"' in error
        assert '"category": "image_error"' in error
        assert blocker.read_text() == "occupied"

    def test_chat_command_prints_reply(self, monkeypatch, respx_mock: MockRouter, capsys):
        """测试输出对话回复"""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        respx_mock.post(f"{API_BASE}/chat/completions").mock(return_value=httpx.Response(200, json={
            "id": "chatcmpl-1",
            "created": 1700000000,
            "model": "gpt-3.5-turbo-1106",
            "choices": [{
                "index": 0,
                "message": {"role": "assistant", "content": "Hi there!"},
                "finish_reason": "stop",
            }],
            "usage": {"prompt_tokens": 5, "completion_tokens": 3, "total_tokens": 8},
        }))

        exit_code = main.main(["chat", "hello"])

        assert exit_code == 0
        assert "Hi there!" in capsys.readouterr().out

    def test_missing_api_key(self, monkeypatch, capsys):
        """测试缺少 API 密钥"""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        exit_code = main.main(["chat", "hello"])

        assert exit_code == 1
        error = capsys.readouterr().err
        assert '"code": "CONFIGURATION_ERROR"' in error
        assert '"setting": "OPENAI_API_KEY"' in error

    def test_api_error(self, monkeypatch, respx_mock: MockRouter, capsys):
        """测试 API 返回错误"""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-bad")
        respx_mock.post(f"{API_BASE}/chat/completions").mock(return_value=httpx.Response(
            401, json={"error": {"message": "Incorrect API key provided", "code": "invalid_api_key"}}
        ))

        exit_code = main.main(["chat", "hello"])

        assert exit_code == 1
        error = capsys.readouterr().err
        assert '"code": "UNAUTHORIZED"' in error
        assert '"status_code": 401' in error

    def test_invalid_request(self, monkeypatch, capsys):
        """测试请求参数验证失败"""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        exit_code = main.main(["image", "a cat", "--model", "dall-e-2", "--quality", "hd"])

        assert exit_code == 1
        error = capsys.readouterr().err
        assert '"code": "VALIDATION_ERROR"' in error

    def test_missing_config_file(self, capsys):
        """测试配置文件不存在"""
        exit_code = main.main(["--config", "/nonexistent/llm-sdk.yaml", "chat", "hello"])

        assert exit_code == 1
        assert "配置文件不存在" in capsys.readouterr().err
