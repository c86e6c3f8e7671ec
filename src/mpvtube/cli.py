"""
mpv-tube CLI - Entry point

Starts mpv, wires the player and blocks until mpv exits or Ctrl-C.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Callable, Optional

from loguru import logger
from rich.console import Console

from .core.config import Config, ensure_directories, load_config
from .core.output import setup_from_config
from .domain.invidious import InvalidMediaURLError, InvidiousClient, MediaItem, extract_media_id
from .domain.playback import AddMediaLimiter, MediaLoader, MpvSession, PlayerError, VideoStore
from .ui.player import Player
from .ui.renderer import TerminalRenderer

console = Console(stderr=True)


def start_session(config: Config) -> MpvSession:
    """Start mpv, first asking an orphan on the same socket to quit.

    Raises:
        StartupFailed, ConnectFailed: If mpv cannot be started and reached
    """
    socket_path = config.player.socket_path
    if os.path.exists(socket_path):
        MpvSession.send_quit(socket_path)

    session = MpvSession()
    session.init(
        config.player.mpv_path,
        config.player.ytdl_path,
        config.player.num_retries,
        config.player.user_agent,
        socket_path,
    )
    return session


def run_player(
    config: Config, action: Callable[[Player], None], save_queue: Optional[str] = None
) -> int:
    """Run the terminal player, apply action, and wait for mpv to exit.

    With save_queue, the queue is written there when quitting while mpv is
    still running.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        session = start_session(config)
    except PlayerError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    renderer = TerminalRenderer(use_colors=config.ui.use_colors)
    client = InvidiousClient(config.api.instance, timeout=config.api.timeout)
    loader = MediaLoader(
        session,
        client,
        AddMediaLimiter(config.player.add_media_limit),
        VideoStore(),
        on_error=renderer.show_error,
    )
    player = Player(
        session,
        renderer,
        loader,
        instance=config.api.instance,
        refresh_interval=config.ui.refresh_interval,
    )
    player.start()

    try:
        with renderer.term.fullscreen(), renderer.term.hidden_cursor():
            action(player)
            while not session.wait_closed(timeout=0.5):
                pass
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        if save_queue and not session.exited():
            player.save_queue(save_queue)
        player.stop()
        session.exit()
        player.join(timeout=2.0)

    return 0


def open_playlist(
    config: Config, path: str, append: bool, save_queue: Optional[str] = None
) -> int:
    if not Path(path).is_file():
        console.print(f"[red]No such playlist file: {path}[/red]")
        return 1
    return run_player(
        config, lambda player: player.open_playlist(path, replace=not append), save_queue
    )


def play_media(
    config: Config, media: str, audio: bool, save_queue: Optional[str] = None
) -> int:
    try:
        media_id, kind = extract_media_id(media)
    except InvalidMediaURLError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    if kind == "video":
        item = MediaItem(kind="video", title=media_id, video_id=media_id)
    else:
        item = MediaItem(kind="playlist", title=media_id, playlist_id=media_id)
    return run_player(
        config, lambda player: player.add_media(item, audio, current=True), save_queue
    )


def quit_orphan(socket_path: str) -> int:
    if not os.path.exists(socket_path):
        console.print(f"[yellow]No socket at {socket_path}[/yellow]")
        return 1
    MpvSession.send_quit(socket_path)
    console.print(f"[green]✓[/green] Sent quit to {socket_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mpv-tube",
        description="Play videos, playlists and playlist files through mpv",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("--instance", help="Invidious instance URL")
    parser.add_argument("--socket", help="mpv IPC socket path")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    parser.add_argument(
        "--save-queue", metavar="PATH", help="Save the queue to PATH when quitting"
    )

    subparsers = parser.add_subparsers(dest="subcommand", required=True)

    open_parser = subparsers.add_parser("open", help="Play a saved playlist file")
    open_parser.add_argument("playlist", help="Playlist file")
    open_parser.add_argument(
        "--append", action="store_true", help="Append to the queue instead of replacing it"
    )

    play_parser = subparsers.add_parser("play", help="Play a video or playlist")
    play_parser.add_argument("media", help="Video/playlist URL or ID")
    play_parser.add_argument("--audio", action="store_true", help="Audio only")

    quit_parser = subparsers.add_parser("quit", help="Quit an mpv left behind on a socket")
    quit_parser.add_argument("socket_path", help="mpv IPC socket path")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    ensure_directories()
    config = load_config(args.config)
    if args.instance:
        config.api.instance = args.instance
    if args.socket:
        config.player.socket_path = args.socket
    if args.debug:
        config.logging.level = "DEBUG"

    log_file = setup_from_config(config.logging)
    logger.debug(f"Logging to {log_file}")

    if args.subcommand == "open":
        sys.exit(open_playlist(config, args.playlist, args.append, args.save_queue))
    elif args.subcommand == "play":
        sys.exit(play_media(config, args.media, args.audio, args.save_queue))
    elif args.subcommand == "quit":
        sys.exit(quit_orphan(args.socket_path))


if __name__ == "__main__":
    main()
