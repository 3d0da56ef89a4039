"""
Core interfaces and abstract classes for the LLM SDK.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from models.create_image import CreateImageRequest, CreateImageResponse, ImageObject
from models.chat_completion import ChatCompletionRequest, ChatCompletionResponse


class LlmSdkInterface(ABC):
    """Abstract interface for the API client."""

    @abstractmethod
    async def create_image(self, req: CreateImageRequest) -> CreateImageResponse:
        """Generate image(s) from a prompt."""
        pass

    @abstractmethod
    async def chat_completion(self, req: ChatCompletionRequest) -> ChatCompletionResponse:
        """Create a chat completion for the given conversation."""
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying HTTP connections."""
        pass


class ImageStoreInterface(ABC):
    """Abstract interface for persisting generated images."""

    @abstractmethod
    async def fetch_bytes(self, image: ImageObject) -> bytes:
        """Return the raw image bytes, decoding or downloading as needed."""
        pass

    @abstractmethod
    async def save(self, image: ImageObject, filename: Optional[str] = None) -> Path:
        """Write the image to the output directory and return its path."""
        pass


class ConfigManagerInterface(ABC):
    """Abstract interface for configuration management."""

    @abstractmethod
    def load_config(self, config_path: str) -> Any:
        """Load configuration from file."""
        pass

    @abstractmethod
    def get_api_config(self) -> Dict[str, Any]:
        """Get API connection configuration."""
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """Validate configuration parameters."""
        pass
