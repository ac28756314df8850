"""
Pytest configuration: default runs most tests; use --run-slow to include slow tests.
"""

import io
from pathlib import Path

import pytest
from PIL import Image


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (live Gemini / OpenRouter blends). Default: skip them.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow", False):
        return
    skip_slow = pytest.mark.skip(reason="Slow test; run with --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def make_image_bytes(fmt: str = "PNG", color: str = "red", size: tuple[int, int] = (8, 8)) -> bytes:
    """Encode a small solid-color image in the given Pillow format."""
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG", "red")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG", "blue")


@pytest.fixture
def reference_files(tmp_path: Path) -> list[Path]:
    """Four valid reference images on disk (two PNG, two JPEG)."""
    paths = []
    for i, (fmt, ext, color) in enumerate(
        [("PNG", ".png", "red"), ("JPEG", ".jpg", "green"), ("PNG", ".png", "blue"), ("JPEG", ".jpeg", "white")]
    ):
        path = tmp_path / f"ref{i}{ext}"
        path.write_bytes(make_image_bytes(fmt, color))
        paths.append(path)
    return paths
