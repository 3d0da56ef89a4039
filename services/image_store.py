"""
图像存储

负责获取生成的图像（base64 解码或 URL 下载）、校验图像数据并保存到本地目录。
"""

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from PIL import Image, UnidentifiedImageError

from models.create_image import ImageObject
from services.exceptions import ImageDownloadError, ImageProcessingError, ImageSaveError
from services.interfaces import ImageStoreInterface

logger = logging.getLogger(__name__)


class ImageStore(ImageStoreInterface):
    """图像存储类"""

    # 支持的图像格式
    SUPPORTED_IMAGE_FORMATS = {"PNG", "JPEG", "WEBP"}

    # 最大图像大小 (50MB)
    MAX_IMAGE_SIZE = 50 * 1024 * 1024

    DEFAULT_OUTPUT_DIR = "/tmp/llm-sdk"
    DEFAULT_FILENAME = "caterpillar.png"

    def __init__(
        self,
        output_dir: Optional[str] = None,
        default_filename: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        """
        初始化图像存储

        Args:
            output_dir: 保存目录
            default_filename: 未指定文件名时使用的文件名
            http_client: 下载图像用的 httpx 客户端，为 None 时每次下载临时创建
            timeout: 下载超时时间（秒）
        """
        self.output_dir = Path(output_dir or self.DEFAULT_OUTPUT_DIR)
        self.default_filename = default_filename or self.DEFAULT_FILENAME
        self._http_client = http_client
        self.timeout = timeout
        logger.info(f"ImageStore initialized with output_dir={self.output_dir}")

    async def fetch_bytes(self, image: ImageObject) -> bytes:
        """
        获取图像字节

        Args:
            image: 接口返回的图像对象

        Returns:
            bytes: 图像数据

        Raises:
            ImageProcessingError: base64 数据无效
            ImageDownloadError: 下载失败或图像对象既无 URL 也无 base64 数据
        """
        if image.b64_json:
            try:
                return base64.b64decode(image.b64_json, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ImageProcessingError(f"Invalid base64 image data: {e}")

        if image.url:
            return await self._download(image.url)

        raise ImageDownloadError("Image object has neither b64_json nor url")

    async def _download(self, url: str) -> bytes:
        """下载图像"""
        logger.info(f"Downloading image: {url[:80]}...")
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Image download error: {e}")
            raise ImageDownloadError(f"Image download failed: {e}", url=url) from e

        if not response.is_success:
            raise ImageDownloadError(
                f"Image download failed with status {response.status_code}",
                url=url
            )

        content = response.content
        if len(content) > self.MAX_IMAGE_SIZE:
            raise ImageDownloadError(
                f"Image exceeds size limit ({self.MAX_IMAGE_SIZE / 1024 / 1024:.1f}MB)",
                url=url
            )
        return content

    def validate_image(self, data: bytes) -> Dict[str, Any]:
        """
        校验图像数据

        Args:
            data: 图像字节

        Returns:
            Dict[str, Any]: 图像信息 {format, width, height, mode}

        Raises:
            ImageProcessingError: 数据不是受支持的图像
        """
        if not data:
            raise ImageProcessingError("Image data is empty")

        try:
            with Image.open(io.BytesIO(data)) as image:
                info = {
                    "format": image.format,
                    "width": image.size[0],
                    "height": image.size[1],
                    "mode": image.mode,
                }
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.error(f"Image validation error: {e}")
            raise ImageProcessingError(f"Cannot decode image data: {e}")

        if info["format"] not in self.SUPPORTED_IMAGE_FORMATS:
            raise ImageProcessingError(
                f"Unsupported image format: {info['format']}",
                image_format=info["format"]
            )

        return info

    async def save(self, image: ImageObject, filename: Optional[str] = None) -> Path:
        """
        获取、校验并保存图像

        Args:
            image: 接口返回的图像对象
            filename: 文件名，默认使用 default_filename

        Returns:
            Path: 保存后的文件路径

        Raises:
            ImageSaveError: 输出目录无法创建或文件无法写入
        """
        data = await self.fetch_bytes(image)
        info = self.validate_image(data)

        path = self.output_dir / (filename or self.default_filename)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write image to {path}: {e}")
            raise ImageSaveError(f"Cannot write image to {path}: {e}", path=str(path)) from e

        logger.info(
            f"Image saved: {path} ({info['width']}x{info['height']}, format={info['format']}, "
            f"size={len(data)} bytes)"
        )
        return path

    def get_supported_formats(self) -> List[str]:
        """获取支持的图像格式列表"""
        return sorted(self.SUPPORTED_IMAGE_FORMATS)
