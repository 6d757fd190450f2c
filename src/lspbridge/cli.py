"""Command-line interface for lspbridge."""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console

from lspbridge import __version__

console = Console(stderr=True)

# File suffix -> LSP language id, for documents opened from the command line
_LANGUAGE_IDS = {
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".js": "javascript",
    ".ts": "typescript",
    ".json": "json",
    ".md": "markdown",
    ".py": "python",
    ".rs": "rust",
    ".txt": "plaintext",
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="lspbridge",
        description="Launch a language server and bridge editor events to it",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated, up to -vvvv for wire traces)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file path (default: ./lspbridge.yaml)",
    )

    subparsers = parser.add_subparsers(dest="mode", help="Operating mode")

    run_parser = subparsers.add_parser(
        "run",
        help="Start the server, forward events, then shut it down",
    )
    run_parser.add_argument(
        "--install-root",
        type=Path,
        default=Path.cwd(),
        help="Installation root the server path is resolved against",
    )
    run_parser.add_argument(
        "--root",
        type=Path,
        help="Workspace root to watch (default: no filesystem watching)",
    )
    run_parser.add_argument(
        "--debug",
        action="store_true",
        help="Launch the server in diagnostic mode",
    )
    run_parser.add_argument(
        "--open",
        nargs="*",
        type=Path,
        default=[],
        metavar="FILE",
        help="Files to open as documents once the server is running",
    )
    run_parser.add_argument(
        "--duration",
        type=float,
        help="Seconds to keep the session alive (default: until the server exits or Ctrl-C)",
    )

    return parser


def language_id_for(path: Path) -> str:
    language = _LANGUAGE_IDS.get(path.suffix.lower())
    if language is not None:
        return language
    guessed, _ = mimetypes.guess_type(path.name)
    if guessed and "/" in guessed:
        return guessed.split("/", 1)[1]
    return "plaintext"


async def run_session(
    config_path: Path | None,
    install_root: Path,
    workspace_root: Path | None,
    debug: bool,
    open_files: Sequence[Path],
    duration: float | None,
    verbose: int | None,
    quiet: bool,
) -> int:
    """Activate, open the requested files, wait, deactivate.

    Returns:
        Exit code
    """
    from lspbridge.config import load_config
    from lspbridge.endpoint import LaunchMode
    from lspbridge.host import ActivationContext, Workspace
    from lspbridge.logging import setup_logging
    from lspbridge.session import SessionManager, Started

    config = load_config(config_path)
    if verbose is not None:
        config.logging.verbose = verbose
    setup_logging(config.logging)

    errors: list[str] = []

    def report(message: str) -> None:
        errors.append(message)
        console.print(f"[red]Error: {message}[/red]")

    context = ActivationContext(
        install_root=install_root.resolve(),
        workspace=Workspace(root=workspace_root.resolve() if workspace_root else None),
        launch_mode=LaunchMode.DIAGNOSTIC if debug else LaunchMode.NORMAL,
        error_reporter=report,
    )
    manager = SessionManager(config)

    result = await manager.activate(context)
    if not isinstance(result, Started):
        return 1

    if not quiet:
        name = result.server_info.name if result.server_info else "language server"
        console.print(f"[green]{name} running[/green] [dim](pid {result.pid})[/dim]")

    try:
        for path in open_files:
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as e:
                report(f"Cannot open {path}: {e}")
                continue
            context.workspace.open_document(path.resolve().as_uri(), language_id_for(path), text)

        session = manager.session
        channel = session.channel if session is not None else None
        if channel is not None:
            try:
                await asyncio.wait_for(channel.wait_closed_by_server(), timeout=duration)
            except asyncio.TimeoutError:
                pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        if not quiet:
            for document in context.workspace.documents:
                count = len(context.diagnostics.get(document.uri))
                console.print(f"[dim]{document.uri}: {count} diagnostic(s)[/dim]")
        status = await manager.deactivate()
        context.dispose()

    if not quiet:
        console.print(f"[dim]Server stopped ({status.value if status else 'not running'})[/dim]")

    return 1 if errors else 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.mode is None:
        parser.print_help()
        return 1

    if parsed.mode == "run":
        return asyncio.run(
            run_session(
                config_path=parsed.config,
                install_root=parsed.install_root,
                workspace_root=parsed.root,
                debug=parsed.debug,
                open_files=parsed.open,
                duration=parsed.duration,
                verbose=parsed.verbose,
                quiet=parsed.quiet,
            )
        )
    parser.print_help()
    return 1
