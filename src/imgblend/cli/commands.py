"""
Click command definitions for the imgblend CLI.

This module contains the Click command group and all CLI commands
(blend, ui).
"""

import os
from pathlib import Path

import click

from imgblend import (
    AspectRatio,
    BlendClient,
    Config,
    GenerationResult,
    __version__,
)
from imgblend.cli import progress
from imgblend.cli.handlers import run_with_error_handling
from imgblend.cli.utils import resolve_output_path
from imgblend.core.config import KNOWN_IMAGE_PROVIDERS
from imgblend.core.reference import SUPPORTED_EXTENSIONS, validate_reference_count
from imgblend.core.session import load_references
from imgblend.logging_config import configure_logging, get_verbosity_from_env

_ASPECT_CHOICES = [m.name.lower() for m in AspectRatio] + [m.value for m in AspectRatio]


@click.group(
    help=f"""Blend 2 to 4 reference images into one AI-generated image.

\b
Version: {__version__}
Supported inputs: {", ".join(SUPPORTED_EXTENSIONS)}
"""
)
@click.version_option(version=__version__, package_name="imgblend")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


@cli.command()
@click.option(
    "--image",
    "-i",
    "images",
    multiple=True,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Reference image (.png/.jpg/.jpeg). Repeat 2 to 4 times; order is kept.",
)
@click.option(
    "--aspect-ratio",
    "-a",
    type=click.Choice(_ASPECT_CHOICES, case_sensitive=False),
    default=AspectRatio.SQUARE.name.lower(),
    show_default=True,
    help="Output shape: square (1:1), portrait (9:16) or landscape (16:9).",
)
@click.option(
    "--out",
    "-o",
    type=click.Path(path_type=Path),
    help="Output file or directory (default: ./result.png).",
)
@click.option(
    "--provider",
    type=click.Choice(list(KNOWN_IMAGE_PROVIDERS), case_sensitive=False),
    default=None,
    help="Image provider (default from IMGBLEND_PROVIDER, else gemini).",
)
@click.option("--model", "-m", help="Model ID for the provider (default from config).")
@click.option(
    "--api-key",
    help="API key for the selected provider (overrides the environment variable).",
)
@click.option(
    "--max-retries",
    type=click.IntRange(min=0),
    default=None,
    help="Retry transient failures this many times (default from IMGBLEND_MAX_RETRIES, else 0).",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Minimize progress messages; only print result path or errors.",
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Increase verbosity: -v also show the instruction, -vv show API detail.",
)
@click.option(
    "--debug-api",
    is_flag=True,
    help="Log raw API request payload and response (image data truncated); show tracebacks for unexpected errors.",
)
def blend(
    images: tuple[Path, ...],
    aspect_ratio: str,
    out: Path | None,
    provider: str | None,
    model: str | None,
    api_key: str | None,
    max_retries: int | None,
    quiet: bool,
    verbose_count: int,
    debug_api: bool,
) -> None:
    """Blend reference images into one new image and save it."""
    # CLI flags override IMGBLEND_VERBOSITY
    verbose_level = min(verbose_count, 2) if verbose_count > 0 else get_verbosity_from_env()
    configure_logging(verbose_level=verbose_level, quiet=quiet)

    def do_blend() -> None:
        # 1. Load and validate config
        config = Config.from_env()
        if provider is not None:
            config.set_provider(provider.lower())
        if model:
            config.set_image_model(model)
        if api_key is not None:
            config.set_api_key(api_key)
        if max_retries is not None:
            config.max_retries = max_retries
        if debug_api:
            config.debug_api = True
        config.validate()

        # 2. Count check before reading any file
        validate_reference_count(len(images))
        ratio = AspectRatio.parse(aspect_ratio)

        # 3. Read and encode references
        references = load_references(images)
        if not quiet:
            progress.print_info(f"Loaded {len(references)} reference images")

        # 4. Generate
        client = BlendClient(config)
        result: GenerationResult
        if not quiet:
            with progress.generation_progress(
                model=config.model,
                reference_count=len(references),
                aspect_ratio=ratio.token,
            ):
                result = client.generate(references, ratio)
        else:
            result = client.generate(references, ratio)

        # 5. Save raw bytes
        out_path = resolve_output_path(out)
        if out_path.exists() and not quiet:
            progress.print_warning(f"Overwriting {out_path}")
        out_path.write_bytes(result.image_bytes)

        # 6. Report
        if not quiet:
            progress.print_success_result(
                output_path=out_path,
                generation_time=result.generation_time,
                model_used=result.model_used,
                aspect_ratio=ratio.token,
                references=[ref.filename for ref in references],
            )
        # Path on stdout for scriptability
        click.echo(str(out_path))

    run_with_error_handling(do_blend, quiet=quiet, debug=debug_api)


@cli.command()
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    envvar="IMGBLEND_UI_PORT",
    help="Port for the Gradio server (default: 7860 or IMGBLEND_UI_PORT).",
)
@click.option(
    "--host",
    "host",
    type=str,
    default=None,
    envvar="IMGBLEND_UI_HOST",
    help="Host to bind (default: 127.0.0.1 or IMGBLEND_UI_HOST). Use 0.0.0.0 for LAN.",
)
@click.option(
    "--share",
    is_flag=True,
    default=None,
    envvar="IMGBLEND_UI_SHARE",
    help="Create a public share link (e.g. gradio.live).",
)
@click.option(
    "--debug-api",
    is_flag=True,
    help="Log raw API request/response (image data truncated) when generating from the UI.",
)
def ui(
    port: int | None,
    host: str | None,
    share: bool | None,
    debug_api: bool,
) -> None:
    """Launch the Gradio web UI."""
    from imgblend.ui.gradio_app import launch as launch_ui

    configure_logging(verbose_level=get_verbosity_from_env(), quiet=False)

    if debug_api:
        os.environ["IMGBLEND_DEBUG_API"] = "1"

    share_val = share
    if share_val is None:
        env_share = os.environ.get("IMGBLEND_UI_SHARE", "").lower()
        share_val = env_share in ("1", "true", "yes")
    run_with_error_handling(
        lambda: launch_ui(server_name=host, server_port=port, share=bool(share_val)),
        debug=debug_api,
    )


def main() -> None:
    """Entry point for the imgblend console script."""
    cli()


__all__ = ["cli", "main", "blend", "ui"]
