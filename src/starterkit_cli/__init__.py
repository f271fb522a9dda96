#!/usr/bin/env python3
# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "typer",
#     "rich",
#     "platformdirs",
#     "readchar",
#     "httpx",
#     "truststore",
#     "license-expression",
# ]
# ///
"""
Starter Kit CLI - Spawn a new project from the starter kit

Usage:
    uvx starterkit-cli new
    uvx starterkit-cli new --name my-app --desc "My app" --license MIT --path ./my-app

Or install globally:
    uv tool install starterkit-cli
    starterkit new
"""

import importlib.metadata
import os
import shutil
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional

import typer
import httpx
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text
from rich.live import Live
from rich.align import Align
from rich.table import Table
from typer.core import TyperGroup

# For cross-platform keyboard input
import readchar
import ssl
import truststore

from .archive import ARCHIVE_URL, MaterializeResult, download_archive, materialize_archive
from .errors import InstallerError, ScaffoldError
from .installer import Installer, run_installer, select_installer
from .manifest import MANIFEST_FILENAME, patch_manifest
from .tracker import StepTracker
from .updates import check_for_update, update_check_enabled
from .validation import (
    DEFAULT_DESCRIPTION,
    DEFAULT_LICENSE,
    DEFAULT_NAME,
    ProjectOptions,
    default_path,
    topmost_missing,
    validate_description,
    validate_license,
    validate_name,
    validate_path,
)

try:
    __version__ = importlib.metadata.version("starterkit-cli")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"

ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

ARCHIVE_URL_ENV = "STARTERKIT_ARCHIVE_URL"
DOCS_URL = "https://reactql.org"
REPO_URL = "https://github.com/reactql/cli"

LICENSE_CHOICES = {
    "MIT": "MIT License",
    "Apache-2.0": "Apache License 2.0",
    "BSD-3-Clause": "BSD 3-Clause License",
    "GPL-3.0-only": "GNU General Public License v3.0",
    "ISC": "ISC License",
    "None": "No license",
    "other": "Enter another SPDX identifier",
}

BANNER = """
╔═╗╔╦╗╔═╗╦═╗╔╦╗╔═╗╦═╗  ╦╔═╦╔╦╗
╚═╗ ║ ╠═╣╠╦╝ ║ ║╣ ╠╦╝  ╠╩╗║ ║
╚═╝ ╩ ╩ ╩╩╚═ ╩ ╚═╝╩╚═  ╩ ╩╩ ╩
"""

TAGLINE = "Starter Kit CLI - Spawn a new project in one command"

console = Console()


def get_key():
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()
    if key == readchar.key.UP:
        return 'up'
    if key == readchar.key.DOWN:
        return 'down'
    if key == readchar.key.ENTER:
        return 'enter'
    if key == readchar.key.ESC:
        return 'escape'
    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt
    return key


def select_with_arrows(options: dict, prompt_text: str = "Select an option", default_key: str = None) -> str:
    """
    Interactive selection using arrow keys with Rich Live display.

    Args:
        options: Dict with keys as option keys and values as descriptions
        prompt_text: Text to show above the options
        default_key: Default option key to start with

    Returns:
        Selected option key
    """
    option_keys = list(options.keys())
    selected_index = option_keys.index(default_key) if default_key in option_keys else 0

    def create_selection_panel():
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")
        for i, key in enumerate(option_keys):
            marker = "▶" if i == selected_index else " "
            table.add_row(marker, f"[cyan]{key}[/cyan] [dim]({options[key]})[/dim]")
        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")
        return Panel(table, title=f"[bold]{prompt_text}[/bold]", border_style="cyan", padding=(1, 2))

    console.print()
    with Live(create_selection_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
            except KeyboardInterrupt:
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)
            if key == 'up':
                selected_index = (selected_index - 1) % len(option_keys)
            elif key == 'down':
                selected_index = (selected_index + 1) % len(option_keys)
            elif key == 'enter':
                return option_keys[selected_index]
            elif key == 'escape':
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)
            live.update(create_selection_panel(), refresh=True)


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner()
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="starterkit",
    help="Spawn a new project from the starter kit",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


def show_banner():
    """Display the ASCII art banner."""
    banner_lines = BANNER.strip('\n').split('\n')
    colors = ["bright_blue", "cyan", "bright_cyan"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        styled_banner.append(line + "\n", style=colors[i % len(colors)])

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


def notify_if_outdated():
    """Tell the user about a newer release. Never interrupts the command."""
    if not update_check_enabled(sys.stdout):
        return
    try:
        with httpx.Client(verify=ssl_context) as update_client:
            newer = check_for_update(__version__, client=update_client)
    except (httpx.HTTPError, KeyError, TypeError, ValueError, OSError):
        return
    if newer:
        console.print(Panel(
            f"Update available [dim]{__version__}[/dim] → [green]{newer}[/green]\n"
            "Run [cyan]uv tool upgrade starterkit-cli[/cyan] to update",
            border_style="yellow",
            padding=(0, 2),
        ))


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    notify_if_outdated()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def ask(message: str, default: str, validator: Callable[[str], Optional[str]]) -> str:
    """Prompt until ``validator`` accepts the answer."""
    while True:
        value = Prompt.ask(f"[cyan]{message}[/cyan]", default=default, console=console)
        error = validator(value)
        if error is None:
            return value
        console.print(f"[red]>>[/red] {error}")


def ask_license() -> str:
    choice = select_with_arrows(LICENSE_CHOICES, "License?", DEFAULT_LICENSE)
    if choice == "other":
        return ask("License?", DEFAULT_LICENSE, validate_license)
    console.print(f"[cyan]License?[/cyan] {choice}")
    return choice


def _resolve_field(label: str, value: Optional[str], validator, interactive: bool, prompt, default: str) -> str:
    """Take a flag value if given, otherwise prompt (or fall back to the default)."""
    if value is None:
        if interactive:
            return prompt()
        value = default
    error = validator(value)
    if error:
        console.print(f"[red]Error:[/red] {error} ({label}: '{value}')")
        raise typer.Exit(1)
    return value


def collect_options(
    name: Optional[str],
    description: Optional[str],
    license: Optional[str],
    path: Optional[str],
    *,
    interactive: bool,
) -> tuple[ProjectOptions, Optional[Path]]:
    """Assemble the project options, validating each field in turn.

    Returns the options and the topmost directory created for the install
    path, or None when the path already existed.
    """
    name = _resolve_field(
        "project name", name, validate_name, interactive,
        lambda: ask("Project name?", DEFAULT_NAME, validate_name), DEFAULT_NAME,
    )
    description = _resolve_field(
        "description", description, validate_description, interactive,
        lambda: ask("Project description?", DEFAULT_DESCRIPTION, validate_description), DEFAULT_DESCRIPTION,
    )
    license = _resolve_field(
        "license", license, validate_license, interactive, ask_license, DEFAULT_LICENSE,
    )

    suggested = str(default_path(name))
    created = {}

    def check_path(value: str) -> Optional[str]:
        target = Path(value).expanduser()
        missing = topmost_missing(target)
        error = validate_path(target)
        created[value] = missing.resolve() if error is None and missing is not None else None
        return error

    path = _resolve_field(
        "path", path, check_path, interactive,
        lambda: ask("Where to install?", suggested, check_path), suggested,
    )
    resolved = Path(path).expanduser().resolve()
    return ProjectOptions(name=name, description=description, license=license, path=resolved), created[path]


@contextmanager
def _step(tracker: StepTracker, key: str, detail: str = ""):
    tracker.start(key, detail)
    try:
        yield
    except ScaffoldError as e:
        tracker.error(key, str(e))
        raise


def scaffold_project(
    options: ProjectOptions,
    *,
    url: str = ARCHIVE_URL,
    client: httpx.Client,
    tracker: StepTracker,
) -> MaterializeResult:
    """Download the kit, extract it into ``options.path`` and patch the manifest.

    Stages run strictly in order; the first failure raises and nothing after
    it runs. The temporary archive is always removed.
    """
    fd, tmp_name = tempfile.mkstemp(prefix="starterkit-", suffix=".zip")
    os.close(fd)
    archive_path = Path(tmp_name)
    try:
        with _step(tracker, "fetch", "contacting server"):
            download = download_archive(
                url,
                archive_path,
                client=client,
                on_progress=lambda done, total: tracker.start(
                    "fetch", f"{done:,} of {total:,} bytes" if total else f"{done:,} bytes"
                ),
            )
        tracker.complete("fetch", f"{download.size:,} bytes")

        with _step(tracker, "extract"):
            result = materialize_archive(archive_path, options.path)
        tracker.complete("extract", f"{result.files} files, {result.directories} folders")

        with _step(tracker, "manifest"):
            patch_manifest(options.path, options)
        tracker.complete("manifest", MANIFEST_FILENAME)
    finally:
        archive_path.unlink(missing_ok=True)
        tracker.complete("cleanup")
    return result


def rollback(path: Path, created: Optional[Path]):
    """Remove what this run wrote into the install directory.

    ``created`` is the topmost directory this run made for ``path``; it is
    removed whole. Otherwise only the contents of ``path`` are cleared.
    """
    if created is not None:
        if created.exists():
            shutil.rmtree(created)
        return
    if not path.exists():
        return
    for item in path.iterdir():
        if item.is_dir() and not item.is_symlink():
            shutil.rmtree(item)
        else:
            item.unlink()


def fatal_error(error: Exception, *, debug: bool = False, extra: Optional[dict] = None):
    title = getattr(error, "title", "Error")
    console.print()
    console.print(Panel(str(error), title=f"[bold red]ERROR[/bold red] -- {title}", border_style="red", padding=(1, 2)))
    if debug:
        env_pairs = [
            ("Python", sys.version.split()[0]),
            ("Platform", sys.platform),
            ("CWD", str(Path.cwd())),
        ]
        env_pairs.extend((extra or {}).items())
        label_width = max(len(k) for k, _ in env_pairs)
        env_lines = [f"{k.ljust(label_width)} → [bright_black]{v}[/bright_black]" for k, v in env_pairs]
        console.print(Panel("\n".join(env_lines), title="Debug Environment", border_style="magenta"))
    raise typer.Exit(1)


def next_steps(options: ProjectOptions, installer: Optional[Installer]) -> Panel:
    if installer is None:
        start, prefix = "npm start", "npm run"
    else:
        start, prefix = f"{installer.name} start", installer.run_prefix

    steps_lines = [f"1. Go to the project folder: [cyan]cd {options.path}[/cyan]"]
    if installer is None:
        steps_lines.append("2. Install dependencies: [cyan]yarn[/cyan] or [cyan]npm install[/cyan]")
    step = len(steps_lines) + 1
    steps_lines.append(f"{step}. Start a dev server on [blue underline]http://localhost:8080[/blue underline]: [cyan]{start}[/cyan]")
    steps_lines.append(f"{step + 1}. Build for production: [cyan]{prefix} build[/cyan]")
    steps_lines.append(
        f"{step + 2}. Start production server on [blue underline]http://localhost:4000[/blue underline] "
        f"(after building): [cyan]{prefix} server[/cyan]"
    )
    steps_lines.append("")
    steps_lines.append(f"Docs/help available at [blue underline]{DOCS_URL}[/blue underline]")
    steps_lines.append(f"Don't forget to star us on GitHub: [blue underline]{REPO_URL}[/blue underline]")
    return Panel("\n".join(steps_lines), title="Next Steps", border_style="cyan", padding=(1, 2))


@app.command("new")
def new(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New project name"),
    desc: Optional[str] = typer.Option(None, "--desc", "-d", help="Project description"),
    license: Optional[str] = typer.Option(None, "--license", "-l", help="License for package.json (SPDX identifier or None)"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help="Path to install the starter kit"),
    skip_install: bool = typer.Option(False, "--skip-install", help="Skip installing dependencies with yarn/npm"),
    skip_tls: bool = typer.Option(False, "--skip-tls", help="Skip SSL/TLS verification (not recommended)"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose diagnostic output for failures"),
    archive_url: str = typer.Option(ARCHIVE_URL, "--archive-url", envvar=ARCHIVE_URL_ENV, help="Zip archive to create the project from"),
):
    """
    Create a new project from the starter kit.

    This command will:
    1. Ask for the project name, description, license and install path (unless given as options)
    2. Download the starter kit archive
    3. Extract it into the install path
    4. Write the project details into package.json
    5. Install dependencies with yarn (or npm when yarn is not available)

    Examples:
        starterkit new
        starterkit new --name my-app --license MIT
        starterkit new -n my-app -d "My new app" -l None -p ./my-app
        starterkit new --name my-app --skip-install
    """
    show_banner()
    console.print("Spawning new project...\n")

    options, created = collect_options(name, desc, license, path, interactive=sys.stdin.isatty())

    setup_lines = [
        "[cyan]Starter Kit Project Setup[/cyan]",
        "",
        f"{'Project':<15} [green]{options.name}[/green]",
        f"{'Description':<15} {options.description}",
        f"{'License':<15} {options.license}",
        f"{'Target Path':<15} [dim]{options.path}[/dim]",
    ]
    console.print(Panel("\n".join(setup_lines), border_style="cyan", padding=(1, 2)))

    tracker = StepTracker("Create Starter Kit Project")
    for key, label in [
        ("fetch", "Download archive"),
        ("extract", "Extract archive"),
        ("manifest", "Write package.json"),
        ("cleanup", "Remove temporary archive"),
    ]:
        tracker.add(key, label)

    failure = None
    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        verify = ssl_context if not skip_tls else False
        with httpx.Client(verify=verify) as client:
            try:
                scaffold_project(options, url=archive_url, client=client, tracker=tracker)
            except ScaffoldError as e:
                failure = e

    console.print(tracker.render())
    if failure is not None:
        rollback(options.path, created)
        fatal_error(failure, debug=debug, extra={"Archive URL": archive_url, "Target": str(options.path)})

    installer = None
    if skip_install:
        console.print("\n[yellow]Skipping dependency installation (--skip-install)[/yellow]")
    else:
        try:
            installer = select_installer()
            if installer.name == "yarn":
                console.print("\n[cyan]Installing via Yarn...[/cyan]\n")
            else:
                console.print(
                    "\n[yellow]Yarn not found; falling back to NPM.[/yellow] "
                    "Tip: For faster future builds, install [underline]https://yarnpkg.com[/underline]\n"
                )
            run_installer(installer, options.path, console=console)
        except InstallerError as e:
            fatal_error(e, debug=debug, extra={"Target": str(options.path)})

    console.print("\n[bold green]We have lift off! Your starter kit is ready.[/bold green]")
    console.print()
    console.print(next_steps(options, installer))


app.command("n", hidden=True)(new)


@app.command("version")
def version():
    """Show the starterkit-cli version."""
    console.print(__version__)


app.command("v", hidden=True)(version)


def main():
    app()


if __name__ == "__main__":
    main()
