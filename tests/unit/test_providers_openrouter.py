"""Unit tests for the OpenRouter provider."""

import base64
import io
from unittest.mock import MagicMock, patch

import pytest
import requests
from PIL import Image

from imgblend.core.config import Config
from imgblend.core.image_gen import NO_IMAGE_MESSAGE, BlendClient
from imgblend.core.providers.openrouter import OpenRouterProvider, _mime_from_data_url
from imgblend.core.reference import ImagePart
from imgblend.utils.exceptions import (
    APIError,
    GenerationError,
    NetworkError,
    RequestTimeoutError,
)

_BUF = io.BytesIO()
Image.new("RGB", (2, 2), color=(1, 2, 3)).save(_BUF, format="JPEG")
RESULT_JPEG = _BUF.getvalue()
RESULT_B64 = base64.b64encode(RESULT_JPEG).decode("ascii")

POST = "imgblend.core.providers.transport.requests.post"


def _images(n: int) -> list[ImagePart]:
    return [ImagePart(data=f"ref{i}", mime_type="image/png") for i in range(n)]


def _config() -> Config:
    return Config(openrouter_api_key="sk-test", image_provider="openrouter")


def _json_response(body) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.headers = {"content-type": "application/json"}
    mock_response.json.return_value = body
    mock_response.text = str(body)
    return mock_response


def _message_with_images(*urls: str) -> dict:
    return {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": "",
                    "images": [{"type": "image_url", "image_url": {"url": u}} for u in urls],
                }
            }
        ]
    }


@pytest.mark.unit
class TestOpenRouterPayload:
    def test_one_message_text_then_data_urls(self):
        payload = OpenRouterProvider()._build_payload("blend 1:1", "google/x", _images(3))
        assert payload["model"] == "google/x"
        assert payload["modalities"] == ["image"]
        content = payload["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "blend 1:1"}
        assert [c["image_url"]["url"] for c in content[1:]] == [
            "data:image/png;base64,ref0",
            "data:image/png;base64,ref1",
            "data:image/png;base64,ref2",
        ]


@pytest.mark.unit
class TestOpenRouterGenerate:
    def test_success_from_message_images(self):
        url = f"data:image/jpeg;base64,{RESULT_B64}"
        with patch(POST, return_value=_json_response(_message_with_images(url))) as mock_post:
            result = OpenRouterProvider().generate(
                "p", _images(2), model="google/x", timeout=9, config=_config()
            )
        args, kwargs = mock_post.call_args
        assert args[0] == "https://openrouter.ai/api/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert result.mime_type == "image/jpeg"
        assert result.image_bytes == RESULT_JPEG

    def test_binary_image_response(self):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.headers = {"content-type": "image/jpeg"}
        mock_response.content = RESULT_JPEG
        with patch(POST, return_value=mock_response):
            result = OpenRouterProvider().generate(
                "p", _images(2), model="google/x", timeout=9, config=_config()
            )
        assert result.image_bytes == RESULT_JPEG

    def test_first_image_wins(self):
        first = f"data:image/jpeg;base64,{RESULT_B64}"
        second = "data:image/png;base64," + base64.b64encode(b"other").decode("ascii")
        with patch(POST, return_value=_json_response(_message_with_images(first, second))):
            result = OpenRouterProvider().generate(
                "p", _images(2), model="google/x", timeout=9, config=_config()
            )
        assert result.data == RESULT_B64

    def test_no_images_raises(self):
        body = {"choices": [{"message": {"role": "assistant", "content": "Sorry"}}]}
        with patch(POST, return_value=_json_response(body)):
            with pytest.raises(APIError) as exc_info:
                OpenRouterProvider().generate(
                    "p", _images(2), model="google/x", timeout=9, config=_config()
                )
        assert str(exc_info.value) == NO_IMAGE_MESSAGE


@pytest.mark.unit
class TestMimeFromDataUrl:
    def test_data_url(self):
        assert _mime_from_data_url("data:image/JPEG;base64,xx") == "image/jpeg"

    def test_bare_base64_is_png(self):
        assert _mime_from_data_url("iVBORw0KGgo") == "image/png"


def _generate(config: Config | None = None):
    return OpenRouterProvider().generate(
        "p", _images(2), model="google/x", timeout=9, config=config or _config()
    )


@pytest.mark.unit
class TestOpenRouterTransportErrors:
    @pytest.mark.parametrize(
        "status, fragment",
        [
            (401, "Authentication failed"),
            (503, "service error"),
        ],
    )
    def test_http_errors(self, status, fragment):
        response = _json_response({"error": {"message": "nope"}})
        response.status_code = status
        with patch(POST, return_value=response):
            with pytest.raises(APIError) as exc_info:
                _generate()
        assert exc_info.value.status_code == status
        assert fragment in str(exc_info.value)
        assert "OpenRouter" in str(exc_info.value)

    def test_timeout(self):
        with patch(POST, side_effect=requests.exceptions.Timeout()):
            with pytest.raises(RequestTimeoutError):
                _generate()

    def test_connection_error(self):
        with patch(POST, side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(NetworkError):
                _generate()

    def test_binary_body_without_image_content_type(self):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.headers = {"content-type": "application/octet-stream"}
        mock_response.content = RESULT_JPEG
        mock_response.text = "binary"
        mock_response.json.side_effect = ValueError("Expecting value")
        with patch(POST, return_value=mock_response):
            with pytest.raises(APIError) as exc_info:
                _generate()
        assert "parse" in str(exc_info.value)


@pytest.mark.unit
class TestOpenRouterMalformedResponse:
    """Valid JSON with the wrong nesting surfaces as the prefixed GenerationError."""

    @pytest.mark.parametrize(
        "body",
        [
            {"choices": {"a": 1}},
            {"choices": ["x"]},
            {"choices": [{"message": "text"}]},
            {"choices": [{"message": {"images": {"0": {}}}}]},
            {"choices": [{"message": {"images": ["x"]}}]},
            {"choices": [{"message": {"images": [{"image_url": "data:image/png;base64,AA=="}]}}]},
            {"choices": [{"message": {"images": [{"image_url": {"url": 5}}]}}]},
        ],
    )
    def test_wrong_shape_is_generation_error(self, body):
        client = BlendClient(_config(), OpenRouterProvider())
        with patch(POST, return_value=_json_response(body)):
            with pytest.raises(GenerationError) as exc_info:
                client.generate(_images(2), "1:1")
        assert str(exc_info.value).startswith("Failed to generate image: ")
        assert isinstance(exc_info.value.original_error, APIError)
