"""
测试公共夹具
"""

import io

import pytest
from PIL import Image

from api.middleware import RequestLoggingHooks
from config.models import SdkConfig
from services.logging import RequestTracker, PerformanceMonitor, clear_request_context

TEST_BASE_URL = "https://api.test.local/v1"


@pytest.fixture
def sdk_config(tmp_path):
    """指向测试地址的 SDK 配置"""
    return SdkConfig(
        api={"base_url": TEST_BASE_URL, "timeout": 5.0},
        image={"output_dir": str(tmp_path / "images")},
    )


@pytest.fixture
def hooks():
    """使用独立追踪器和监控器的请求钩子"""
    return RequestLoggingHooks(tracker=RequestTracker(), monitor=PerformanceMonitor())


@pytest.fixture
def png_bytes():
    """4x2 的 PNG 图像数据"""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 2), color=(255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def reset_request_context():
    yield
    clear_request_context()
