from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import typer  # type: ignore[import]

from framepack_launcher.config import LauncherSettings, get_settings
from framepack_launcher.launcher import ConsolePrompt, FixedPrompt, run_launcher
from framepack_launcher.launcher.prompts import Prompt
from framepack_launcher.utils.log_utils import logger


app = typer.Typer(
    help="Build, launch and monitor the FramePack web UI in Docker",
    add_completion=False,
)


def _apply_overrides(
    settings: LauncherSettings,
    *,
    image: str | None,
    name: str | None,
    port: int | None,
    output_dir: Path | None,
    build_context: Path | None,
    timeout: float | None,
) -> LauncherSettings:
    overrides: dict[str, object] = {}
    if image:
        overrides["image_name"] = image
    if name:
        overrides["container_name"] = name
    if port is not None:
        overrides["host_port"] = port
    if output_dir is not None:
        overrides["output_dir"] = output_dir.expanduser().resolve()
    if build_context is not None:
        overrides["build_context"] = build_context.expanduser().resolve()
    if timeout is not None:
        overrides["ready_timeout"] = timeout
    return replace(settings, **overrides) if overrides else settings


def _select_prompt(assume_yes: bool, assume_no: bool) -> Prompt:
    if assume_yes and assume_no:
        raise typer.BadParameter("Use at most one of --yes or --no.", param_hint="--yes/--no")
    if assume_yes:
        return FixedPrompt(True)
    if assume_no:
        return FixedPrompt(False)
    return ConsolePrompt()


@app.command()
def launch(
    image: str | None = typer.Option(None, "--image", help="Docker image tag to run or build."),
    name: str | None = typer.Option(None, "--name", help="Container name."),
    port: int | None = typer.Option(
        None, "--port", "-p", min=1, max=65535, help="Host port for the web UI."
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        help="Host directory mounted as the application's output folder (created if missing).",
        file_okay=False,
        dir_okay=True,
    ),
    build_context: Path | None = typer.Option(
        None,
        "--build-context",
        help="Directory holding the Dockerfile used when the image is missing.",
        file_okay=False,
        dir_okay=True,
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", min=1, help="Seconds to wait for the readiness message."
    ),
    cpu: bool = typer.Option(False, "--cpu", help="Skip GPU checks and run CPU-only."),
    assume_yes: bool = typer.Option(False, "--yes", "-y", help="Answer yes to every prompt."),
    assume_no: bool = typer.Option(False, "--no", "-n", help="Answer no to every prompt."),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Read FRAMEPACK_* settings from this file instead of the repository .env.",
        exists=True,
        dir_okay=False,
    ),
) -> int:
    prompt = _select_prompt(assume_yes, assume_no)
    settings = _apply_overrides(
        get_settings(env_file),
        image=image,
        name=name,
        port=port,
        output_dir=output_dir,
        build_context=build_context,
        timeout=timeout,
    )
    logger.debug(f"Settings: {settings}")
    exit_code = run_launcher(settings, prompt, want_gpu=not cpu)
    if exit_code:
        raise typer.Exit(code=exit_code)
    return exit_code


def main() -> None:
    app()


if __name__ == "__main__":
    main()
