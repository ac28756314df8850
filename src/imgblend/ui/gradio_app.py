"""
Gradio web UI for imgblend.

Single page: upload 2 to 4 reference images, remove any of them, pick an
output aspect ratio, generate, preview, and download result.png. Each browser
session gets its own BlendSession; all sessions share one BlendClient built
at launch from the environment.
"""

import argparse
import atexit
import contextlib
import importlib.resources
import io
import os
import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any, cast

import gradio as gr
import yaml
from PIL import Image

from imgblend import (
    APIError,
    AspectRatio,
    BlendClient,
    BlendError,
    BlendSession,
    Config,
    ConfigurationError,
    GenerationError,
    ImageProcessingError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
    __version__,
)
from imgblend.core.config import DEFAULT_MODELS
from imgblend.core.reference import MAX_REFERENCE_IMAGES, MIN_REFERENCE_IMAGES, SUPPORTED_EXTENSIONS
from imgblend.logging_config import configure_logging, get_logger, get_verbosity_from_env

logger = get_logger(__name__)

# Default server port; overridable via IMGBLEND_UI_PORT
DEFAULT_UI_PORT = 7860
DEFAULT_UI_HOST = "127.0.0.1"

BASE_PAGE_TITLE = "Image Merge Reference"

# Temp dirs we create (one per session download); cleaned on process exit
_temp_dirs: set[str] = set()


def _register_temp_dir(path: str) -> None:
    _temp_dirs.add(path)


def _cleanup_temp_dirs() -> None:
    for path in _temp_dirs:
        with contextlib.suppress(OSError):
            shutil.rmtree(path, ignore_errors=True)


atexit.register(_cleanup_temp_dirs)


def _load_ui_models(config: Config) -> tuple[list[str], str]:
    """
    Load the model choices for the configured provider from ui_models.yaml.

    Returns (models, default_model). A model set via IMGBLEND_MODEL is put first.
    """
    try:
        with (
            importlib.resources.files("imgblend")
            .joinpath("ui_models.yaml")
            .open(encoding="utf-8") as f
        ):
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        data = {}

    section = data.get(config.image_provider) or {}
    models: list[str] = list(section.get("models") or [])
    default_model: str = (
        config.image_model
        or section.get("default")
        or DEFAULT_MODELS.get(config.image_provider, "")
    )
    if default_model and default_model not in models:
        models = [default_model] + models
    return models, default_model


def _exception_to_message(exc: BaseException) -> str:
    """Map library and known exceptions to a short user-facing message (same as CLI)."""
    if isinstance(exc, ValidationError):
        return exc.args[0] if exc.args else "Validation failed."
    if isinstance(exc, ConfigurationError):
        return exc.args[0] if exc.args else "Invalid configuration."
    if isinstance(exc, ImageProcessingError):
        return exc.args[0] if exc.args else "Image processing failed."
    if isinstance(exc, (GenerationError, APIError, NetworkError, RequestTimeoutError)):
        return exc.args[0] if exc.args else "API or network error."
    if isinstance(exc, BlendError):
        return exc.args[0] if exc.args else "An error occurred."
    return str(exc) if exc.args else "An unexpected error occurred."


def _format_status(message: str, status_type: str = "info") -> str:
    """
    Format a status message with color and icon.

    Args:
        message: The status message text.
        status_type: One of "info", "success", "error", "warning", "idle".

    Returns:
        HTML-formatted status string ("" for idle).
    """
    if status_type == "success":
        icon = "✅"
        color = "#10b981"  # green-500
        bg_color = "#d1fae5"  # green-100
    elif status_type == "error":
        icon = "❌"
        color = "#ef4444"  # red-500
        bg_color = "#fee2e2"  # red-100
    elif status_type == "warning":
        icon = "⚠️"
        color = "#f59e0b"  # amber-500
        bg_color = "#fef3c7"  # amber-100
    elif status_type == "info":
        icon = "ℹ️"
        color = "#3b82f6"  # blue-500
        bg_color = "#dbeafe"  # blue-100
    else:  # idle
        return ""

    return f"""<div style="padding: 12px 16px; border-radius: 8px; background-color: {bg_color}; border-left: 4px solid {color}; margin: 8px 0;">
    <span style="font-size: 16px; margin-right: 8px;">{icon}</span>
    <span style="color: {color}; font-weight: 500;">{message}</span>
</div>"""


def _session_status(session: BlendSession) -> str:
    """Status HTML for the current session: error, else nothing."""
    if session.error:
        return _format_status(session.error, "error")
    return ""


def _ensure_session(session: BlendSession | None, client: BlendClient) -> BlendSession:
    return session if session is not None else BlendSession(client)


def _upload_paths(files: Any) -> list[str]:
    """Normalize a gr.File value (path, list of paths, or file objects) to paths."""
    if not files:
        return []
    if not isinstance(files, (list, tuple)):
        files = [files]
    paths: list[str] = []
    for f in files:
        if isinstance(f, (str, Path)):
            paths.append(str(f))
        elif isinstance(f, dict) and f.get("path"):
            paths.append(str(f["path"]))
        elif getattr(f, "name", None):
            paths.append(str(f.name))
    return paths


def _gallery_value(session: BlendSession) -> list[tuple[Image.Image, str]]:
    """(preview, caption) pairs for the reference gallery, decoded from the transport encoding."""
    return [
        (Image.open(io.BytesIO(ref.image_bytes)).copy(), ref.filename)
        for ref in session.references
    ]


def _remove_choices(session: BlendSession) -> list[tuple[str, str]]:
    return [(f"{i + 1}. {ref.filename}", ref.id) for i, ref in enumerate(session.references)]


def _upload_label(session: BlendSession) -> str:
    count = len(session.references)
    if count == 0:
        return "Select Images"
    return f"Add More Images ({count}/{MAX_REFERENCE_IMAGES})"


def _result_preview(session: BlendSession) -> Image.Image | None:
    return session.result.image if session.result is not None else None


def _reference_outputs(session: BlendSession, status_html: str) -> tuple[Any, ...]:
    """Shared outputs after the reference set changes."""
    choices = _remove_choices(session)
    return (
        session,
        _gallery_value(session),
        gr.update(choices=choices, value=None, interactive=bool(choices)),
        gr.update(interactive=bool(choices)),
        gr.update(value=None, label=_upload_label(session)),
        gr.update(interactive=session.can_generate),
        _result_preview(session),
        gr.update(value=None, interactive=False) if session.result is None else gr.update(),
        status_html,
    )


def _upload_handler(
    files: Any,
    session: BlendSession | None,
    client: BlendClient,
) -> tuple[Any, ...]:
    """File picker change: add all selected files or none."""
    session = _ensure_session(session, client)
    paths = _upload_paths(files)
    if not paths:
        return _reference_outputs(session, _session_status(session))
    try:
        added = session.add_images(paths)
    except BlendError as e:
        logger.info("Upload rejected: %s", e)
        return _reference_outputs(session, _format_status(_exception_to_message(e), "error"))
    logger.info("Added %d reference images (total %d)", len(added), len(session.references))
    return _reference_outputs(session, "")


def _remove_handler(
    image_id: str | None,
    session: BlendSession | None,
    client: BlendClient,
) -> tuple[Any, ...]:
    """Remove button: drop the selected reference."""
    session = _ensure_session(session, client)
    if image_id:
        session.remove_image(image_id)
    status = ""
    if 0 < len(session.references) < MIN_REFERENCE_IMAGES:
        status = _format_status(
            f"Add at least {MIN_REFERENCE_IMAGES} images to generate.", "warning"
        )
    return _reference_outputs(session, status)


def _aspect_ratio_handler(
    value: str,
    session: BlendSession | None,
    client: BlendClient,
) -> BlendSession:
    session = _ensure_session(session, client)
    session.set_aspect_ratio(value)
    return session


def _model_handler(
    model: str | None,
    session: BlendSession | None,
    client: BlendClient,
) -> BlendSession:
    """Model dropdown: give this session a client bound to the chosen model."""
    session = _ensure_session(session, client)
    if model and model != session.client.config.model:
        session.client = client.with_model(model)
    return session


def _save_for_download(session: BlendSession) -> str:
    out_dir = tempfile.mkdtemp(prefix="imgblend_")
    _register_temp_dir(out_dir)
    return str(session.save_result(out_dir))


def _generate_click_handler(
    session: BlendSession | None,
    client: BlendClient,
) -> Generator[tuple[Any, ...], None, None]:
    """
    Generate button: yields (session, output image, download button, generate button, status).

    First yield shows the loading state; the last shows the result or the error.
    """
    session = _ensure_session(session, client)
    logger.info("Generate requested references=%d", len(session.references))
    yield (
        session,
        None,
        gr.update(value=None, interactive=False),
        gr.update(interactive=False),
        _format_status("Generating…", "info"),
    )
    try:
        result = session.generate()
    except ValidationError as e:
        # Another generate is still running for this session
        yield (
            session,
            gr.update(),
            gr.update(),
            gr.update(interactive=False),
            _format_status(_exception_to_message(e), "warning"),
        )
        return
    if result is None:
        yield (
            session,
            None,
            gr.update(value=None, interactive=False),
            gr.update(interactive=session.can_generate),
            _session_status(session),
        )
        return
    download_path = _save_for_download(session)
    yield (
        session,
        result.image,
        gr.update(value=download_path, interactive=True),
        gr.update(interactive=session.can_generate),
        _format_status(f"Done in {result.generation_time:.1f}s", "success"),
    )


def _build_blocks(client: BlendClient) -> gr.Blocks:
    """Build the Gradio Blocks UI around a shared client."""
    models, default_model = _load_ui_models(client.config)
    ratio_choices = [(ratio.label, ratio.value) for ratio in AspectRatio]

    header_html = f"""
<div style="text-align: center; margin: 16px 0 24px 0;">
    <h1 style="
        font-size: 2.5em;
        font-weight: 800;
        margin: 0;
        background: linear-gradient(90deg, #c084fc 0%, #4f46e5 100%);
        -webkit-background-clip: text;
        -webkit-text-fill-color: transparent;
        background-clip: text;
    ">{BASE_PAGE_TITLE}</h1>
    <p style="font-size: 1.1em; color: #94a3b8; margin: 8px 0 0 0;">Blend multiple images into one unique AI-generated creation.</p>
</div>
"""

    with gr.Blocks(title=BASE_PAGE_TITLE) as app:
        gr.HTML(header_html)
        session_state = gr.State(value=None)

        with gr.Row():
            with gr.Column():
                gr.Markdown(f"### 1. Upload Images ({MIN_REFERENCE_IMAGES}-{MAX_REFERENCE_IMAGES})")
                gallery = gr.Gallery(
                    label="Reference images",
                    columns=MAX_REFERENCE_IMAGES,
                    height=200,
                    interactive=False,
                )
                file_input = gr.File(
                    label="Select Images",
                    file_count="multiple",
                    file_types=list(SUPPORTED_EXTENSIONS),
                    type="filepath",
                )
                with gr.Row():
                    remove_dd = gr.Dropdown(
                        label="Remove image",
                        choices=[],
                        value=None,
                        interactive=False,
                        scale=3,
                    )
                    remove_btn = gr.Button("Remove", interactive=False, scale=1)

                gr.Markdown("### 2. Output Format")
                ratio_radio = gr.Radio(
                    choices=ratio_choices,
                    value=AspectRatio.SQUARE.value,
                    label="Aspect ratio",
                )
                with gr.Accordion("Advanced", open=False):
                    model_dd = gr.Dropdown(
                        label=f"Image model ({client.config.image_provider})",
                        choices=models,
                        value=default_model,
                        allow_custom_value=True,
                    )

                generate_btn = gr.Button("Generate Image", variant="primary", interactive=False)
                status_html = gr.HTML(value="")

            with gr.Column():
                gr.Markdown("### 3. Result")
                out_image = gr.Image(label="Result", type="pil", interactive=False, height=480)
                download_btn = gr.DownloadButton("Download", value=None, interactive=False)

        _ref_outputs = [
            session_state,
            gallery,
            remove_dd,
            remove_btn,
            file_input,
            generate_btn,
            out_image,
            download_btn,
            status_html,
        ]

        file_input.upload(
            fn=lambda files, s: _upload_handler(files, s, client),
            inputs=[file_input, session_state],
            outputs=_ref_outputs,
        )
        remove_btn.click(
            fn=lambda image_id, s: _remove_handler(image_id, s, client),
            inputs=[remove_dd, session_state],
            outputs=_ref_outputs,
        )
        ratio_radio.change(
            fn=lambda value, s: _aspect_ratio_handler(value, s, client),
            inputs=[ratio_radio, session_state],
            outputs=[session_state],
        )
        model_dd.change(
            fn=lambda model, s: _model_handler(model, s, client),
            inputs=[model_dd, session_state],
            outputs=[session_state],
        )

        def _on_generate(s: BlendSession | None) -> Generator[tuple[Any, ...], None, None]:
            yield from _generate_click_handler(s, client)

        generate_btn.click(
            fn=_on_generate,
            inputs=[session_state],
            outputs=[session_state, out_image, download_btn, generate_btn, status_html],
        )

        gr.HTML(f"""
<div style="text-align: center; margin: 40px 0 20px 0; padding-top: 20px; border-top: 1px solid #e5e7eb;">
    <p style="font-size: 0.9em; color: #9ca3af; margin: 0;">imgblend v{__version__}</p>
</div>
""")

    return cast(gr.Blocks, app)


def launch(
    server_name: str | None = None,
    server_port: int | None = None,
    share: bool = False,
) -> None:
    """
    Validate configuration, build the Gradio app and launch the server.

    Args:
        server_name: Host to bind (default: IMGBLEND_UI_HOST or 127.0.0.1).
        server_port: Port (default: IMGBLEND_UI_PORT or 7860).
        share: If True, create a public share link (e.g. gradio.live).

    Raises:
        ConfigurationError: If the API key or other settings are missing or invalid
    """
    config = Config.from_env()
    config.validate()
    client = BlendClient(config)

    host = server_name or os.getenv("IMGBLEND_UI_HOST", DEFAULT_UI_HOST)
    port = server_port
    if port is None:
        try:
            port = int(os.getenv("IMGBLEND_UI_PORT", str(DEFAULT_UI_PORT)))
        except ValueError:
            port = DEFAULT_UI_PORT
    logger.info(
        "imgblend ui v%s starting on http://%s:%s provider=%s model=%s",
        __version__,
        host,
        port,
        config.image_provider,
        config.model,
    )
    app = _build_blocks(client)
    app.launch(server_name=host, server_port=port, share=share, inbrowser=True)


def main() -> None:
    """Entry point for the imgblend-ui console script. Parses --port, --host, --share."""
    parser = argparse.ArgumentParser(
        description="Launch the imgblend Gradio web UI.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        metavar="PORT",
        help=f"Port to bind (default: IMGBLEND_UI_PORT or {DEFAULT_UI_PORT}).",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        metavar="HOST",
        help=f"Host to bind (default: IMGBLEND_UI_HOST or {DEFAULT_UI_HOST}). Use 0.0.0.0 for LAN.",
    )
    parser.add_argument(
        "--share",
        action="store_true",
        default=None,
        help="Create a public share link (e.g. gradio.live). Overrides IMGBLEND_UI_SHARE.",
    )
    args = parser.parse_args()
    configure_logging(verbose_level=get_verbosity_from_env(), quiet=False)
    share_val = args.share
    if share_val is None:
        env_share = os.environ.get("IMGBLEND_UI_SHARE", "").lower()
        share_val = env_share in ("1", "true", "yes")
    try:
        launch(server_name=args.host, server_port=args.port, share=share_val)
    except ConfigurationError as e:
        parser.exit(2, f"Configuration error: {e}\n")
