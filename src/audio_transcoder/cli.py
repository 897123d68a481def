"""
CLI module - Command line interface for Audio Transcoder

Entry point for the `atc` command using Typer.
"""

import sys
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import AppConfig, load_config
from .constants import BITRATE_PLACEHOLDER
from .context import CancelContext
from .errors import ConfigError, ProfileError, TranscodeCancelledError, TranscodeError
from .logging_setup import configure_logging
from .profile import Profile, with_bitrate, with_seek
from .registry import ProfileRegistry
from .synthesizer import resolve_program, split_template, synthesize
from .transcoder import ProcessTranscoder, Transcoder

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="atc",
    help="Audio Transcoder - convert audio through named encoder profiles.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    if value:
        console.print(f"atc version {__version__}")
        raise typer.Exit()


# Type aliases for common options
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file", exists=True, dir_okay=False),
]
ProfileOption = Annotated[
    str | None, typer.Option("--profile", "-p", help="Transcoding profile (see list-profiles)")
]
BitrateOption = Annotated[
    int | None, typer.Option("--bitrate", "-b", min=1, help="Override the profile bitrate (kbit/s)")
]
SeekOption = Annotated[float, typer.Option("--seek", "-s", min=0, help="Start offset in seconds")]


@app.callback()
def main(
    version: Annotated[
        bool, typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
):
    """Audio Transcoder - convert audio through named encoder profiles."""
    pass


def _fail(message: str, out: Console = console) -> NoReturn:
    out.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


def get_config(config_path: Path | None = None, out: Console = console) -> AppConfig:
    """Load configuration and set up logging."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        _fail(str(e), out)
    configure_logging(config.logging)
    return config


def get_transcoder(config: AppConfig) -> Transcoder:
    """Transcoding backend used by the CLI."""
    return ProcessTranscoder(chunk_size=config.transcode.chunk_size)


def resolve_profile(
    registry: ProfileRegistry,
    name: str,
    bitrate: int | None = None,
    seek: float = 0.0,
    out: Console = console,
) -> Profile:
    """Look up a profile and apply per-request overrides."""
    profile = registry.get(name)
    if profile is None:
        out.print(f"[red]Error:[/red] Unknown profile: {escape(name)}")
        out.print(f"Available: {', '.join(registry)}")
        out.print("\nRun [cyan]atc list-profiles[/cyan] to see all options")
        raise typer.Exit(1)

    if bitrate is not None:
        profile = with_bitrate(profile, bitrate)
    if seek:
        profile = with_seek(profile, seek)
    return profile


@app.command("list-profiles")
def list_profiles(config: ConfigOption = None):
    """List available transcoding profiles."""
    cfg = get_config(config)
    registry = cfg.registry()

    table = Table(title="Available Transcoding Profiles")
    table.add_column("Name", style="cyan")
    table.add_column("MIME")
    table.add_column("Suffix")
    table.add_column("Bitrate", justify="right")
    table.add_column("Source")

    for name, profile in registry.items():
        bitrate = f"{profile.bitrate}k" if profile.bitrate else "[yellow]required[/yellow]"
        source = "config" if name in cfg.profiles else "[dim]built-in[/dim]"
        table.add_row(name, profile.mime, profile.suffix, bitrate, source)

    console.print(table)


@app.command("show-command")
def show_command(
    source: Annotated[Path, typer.Argument(help="Input audio file")],
    profile: ProfileOption = None,
    bitrate: BitrateOption = None,
    seek: SeekOption = 0.0,
    config: ConfigOption = None,
):
    """
    Print the command a transcode would run, without running it.

    [bold]Examples:[/bold]

        atc show-command song.flac -p opus_rg

        atc show-command song.flac -p mp3 -b 320 -s 90
    """
    cfg = get_config(config)
    prof = resolve_profile(cfg.registry(), profile or cfg.transcode.default_profile, bitrate, seek)

    try:
        command = synthesize(prof, str(source))
    except ProfileError as e:
        _fail(str(e))

    typer.echo(str(command))


@app.command("transcode")
def transcode_cmd(
    source: Annotated[Path, typer.Argument(help="Audio file to transcode", exists=True, dir_okay=False)],
    profile: ProfileOption = None,
    bitrate: BitrateOption = None,
    seek: SeekOption = 0.0,
    output: Annotated[
        str | None, typer.Option("--output", "-o", help="Output file, or '-' for stdout")
    ] = None,
    timeout: Annotated[
        float | None, typer.Option("--timeout", "-t", min=0, help="Give up after this many seconds (0=no limit)")
    ] = None,
    overwrite: Annotated[bool, typer.Option("--overwrite", "-f", help="Overwrite existing output file")] = False,
    config: ConfigOption = None,
):
    """
    Transcode a single audio file using a profile.

    [bold]Examples:[/bold]

        atc transcode song.flac -p opus

        atc transcode song.flac -p mp3_rg -b 192 -o song.mp3

        atc transcode song.flac -p opus_car -o - > song.opus
    """
    to_stdout = output == "-"
    out = err_console if to_stdout else console

    cfg = get_config(config, out)
    name = profile or cfg.transcode.default_profile
    prof = resolve_profile(cfg.registry(), name, bitrate, seek, out)

    if prof.bitrate == 0 and _needs_bitrate(prof):
        _fail(f"Profile {name} has no default bitrate; pass one with --bitrate", out)

    if timeout is None:
        timeout = cfg.transcode.timeout
    ctx = CancelContext(timeout=timeout or None)
    transcoder = get_transcoder(cfg)

    if to_stdout:
        _run(transcoder, ctx, prof, source, sys.stdout.buffer, out)
        sys.stdout.buffer.flush()
        return

    output_file = Path(output) if output else source.with_name(prof.filename(source.stem))
    if output_file.resolve() == source.resolve():
        _fail(f"Output {output_file} is the input file; choose a different --output", out)
    if output_file.exists() and not overwrite:
        out.print(f"[yellow]Warning:[/yellow] Output file exists: {output_file}")
        out.print("Use --overwrite to replace, or specify different --output")
        raise typer.Exit(1)

    out.print(f"[bold]Input:[/bold] {source}")
    out.print(f"[bold]Output:[/bold] {output_file}")
    out.print(f"[bold]Profile:[/bold] {name} ({prof.mime}, {prof.bitrate}k)")
    out.print()

    # Write next to the target, then move into place on success
    temp_file = output_file.with_name(f".{output_file.name}.part")
    try:
        with open(temp_file, "wb") as f:
            _run(transcoder, ctx, prof, source, f, out)
        temp_file.replace(output_file)
    except OSError as e:
        _fail(f"Cannot write {output_file}: {e}", out)
    finally:
        temp_file.unlink(missing_ok=True)

    out_mb = output_file.stat().st_size / (1024 * 1024)
    out.print(f"[green]Success![/green] {out_mb:.1f}MB written")
    out.print(f"Output: {output_file}")


def _needs_bitrate(profile: Profile) -> bool:
    try:
        return BITRATE_PLACEHOLDER in split_template(profile.exec_template)
    except ProfileError:
        return False  # reported when the command is synthesized


def _run(transcoder: Transcoder, ctx: CancelContext, profile: Profile, source: Path, sink, out: Console) -> None:
    """Run one transcode, turning failures into CLI errors."""
    try:
        transcoder.transcode(ctx, profile, source, sink)
    except KeyboardInterrupt:
        ctx.cancel()
        out.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(130) from None
    except TranscodeCancelledError as e:
        _fail(f"Transcode {e.reason}", out)
    except ProfileError as e:
        _fail(f"Profile configuration: {e}", out)
    except TranscodeError as e:
        out.print(f"[red]Failed:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


@app.command()
def check(config: ConfigOption = None):
    """Check that every profile's program can be found."""
    cfg = get_config(config)
    registry = cfg.registry()

    table = Table(title="Profile Programs")
    table.add_column("Profile", style="cyan")
    table.add_column("Program")
    table.add_column("Status")
    table.add_column("Path", style="dim")

    problems = []
    for name, profile in registry.items():
        try:
            program = split_template(profile.exec_template)[0]
        except ProfileError as e:
            table.add_row(name, "-", "[red]Invalid[/red]", escape(str(e)))
            problems.append(name)
            continue
        try:
            path = resolve_program(program)
        except ProfileError:
            table.add_row(name, program, "[red]Missing[/red]", "-")
            problems.append(name)
            continue
        table.add_row(name, program, "[green]Available[/green]", path)

    console.print(table)

    if problems:
        console.print(f"\n[yellow]Warning:[/yellow] {len(problems)} profile(s) cannot run: {', '.join(problems)}")
        console.print("Install system tools: sudo apt install ffmpeg")


def main_cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main_cli()
