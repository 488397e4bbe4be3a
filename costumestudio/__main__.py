"""CLI entry point for CostumeStudio.

This module provides subcommand-based CLI for designing and curating
costumes.

Usage:
    python -m costumestudio init [--force]              # Write default config
    python -m costumestudio generate "<prompt>" [-n 2]  # Generate costume images
    python -m costumestudio save <id> <url> --prompt P  # Toggle image in gallery
    python -m costumestudio share <id> <url> --prompt P # Share to world favorites
    python -m costumestudio upvote <id>                 # Upvote a shared image
    python -m costumestudio gallery                     # Show saved images
    python -m costumestudio favorites                   # Show world favorites
    python -m costumestudio status                      # Show profile summary
    python -m costumestudio download <url> <dest>       # Download an image

Author:
    Jake Meador <jameador13@gmail.com>
"""

import argparse
import asyncio
import contextlib
import logging
import sys
from pathlib import Path

import yaml

from . import config
from .collection import CollectionManager
from .engines import create_engine
from .errors import CostumeStudioError, NotFoundError
from .ids import IdAllocator
from .lock import ProfileLock
from .session import DesignSession, download_image
from .store import JsonFileStore
from .views import (
    format_gallery,
    format_world_favorites,
    project_gallery,
    project_world_favorites,
    welcome_message,
)

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = ['main']

logger = logging.getLogger('costumestudio')


def setup_logging(debug: bool = False, log_file: str | None = None) -> None:
    """Configure root logging for CLI runs."""
    log_level = logging.DEBUG if debug else logging.INFO
    log_format = '%(asctime)s [%(levelname)s] %(message)s'
    log_handlers = [logging.StreamHandler()]

    if log_file:
        log_handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=log_level, format=log_format, handlers=log_handlers, force=True)

    # OpenAI's HTTP client is chatty at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)


def load_cli_config(args: argparse.Namespace) -> dict:
    overrides = config.parse_set_string(args.set) if args.set else None
    loaded, _ = config.load_config(
        config_path=args.config,
        profile=args.profile,
        overrides=overrides,
        save_overrides=args.save_config,
    )
    return loaded


@contextlib.contextmanager
def open_profile(args: argparse.Namespace):
    """Lock the profile and yield (config, store, manager) with state loaded."""
    cfg = load_cli_config(args)
    path = config.store_path(cfg)

    with ProfileLock(path.parent):
        store = JsonFileStore(path)
        manager = CollectionManager(store)
        manager.load_all()
        yield cfg, store, manager


def require_issued(store: JsonFileStore, image_id: int) -> None:
    """Refuse ids the allocator never handed out."""
    if not IdAllocator(store).is_issued(image_id):
        raise NotFoundError(image_id, kind='generated image')


def cmd_init(args: argparse.Namespace) -> None:
    """Write a default costumestudio.yaml."""
    written = config.generate_config(Path.cwd(), force=args.force)
    if written:
        print(f'✅ Wrote {written}')
    else:
        print('⚠️  costumestudio.yaml already exists (use --force to overwrite)')


def cmd_generate(args: argparse.Namespace) -> None:
    """Generate costume images from a prompt."""
    with open_profile(args) as (cfg, store, manager):
        gen_config = cfg.get('generation', {})
        colors = cfg.get('colors', {})

        engine = create_engine(gen_config.get('engine', 'openai'), gen_config)
        session = DesignSession(
            engine,
            IdAllocator(store),
            top_color=colors.get('top', '#ff0000'),
            bottom_color=colors.get('bottom', '#0000ff'),
        )

        count = args.count if args.count is not None else gen_config.get('default_count', 4)
        result = asyncio.run(session.request_images(
            args.prompt,
            count=count,
            top_color=args.top_color,
            bottom_color=args.bottom_color,
        ))

        if not result.images:
            print('\n❌ No images were generated. Try a different idea.\n')
            return

        print(f'\n🎨 {result.refined_prompt}\n')
        for image in result.images:
            print(f'  #{image.id}  {image.url}')
            if not args.save:
                continue
            if manager.is_saved(image.id):
                print('      ⚠️  Already in gallery, left unchanged')
                continue
            saved = manager.toggle_save(image.id, image.url, image.prompt)
            if saved.saved:
                print('      ✅ Saved to gallery')
        print()


def cmd_save(args: argparse.Namespace) -> None:
    """Toggle an image in the personal gallery."""
    with open_profile(args) as (_, store, manager):
        require_issued(store, args.id)
        result = manager.toggle_save(args.id, args.url, args.prompt)
        if result.saved:
            print(f'✅ Saved image #{args.id} to your gallery')
        else:
            print(f'✅ Removed image #{args.id} from your gallery')


def cmd_share(args: argparse.Namespace) -> None:
    """Share an image to world favorites."""
    with open_profile(args) as (_, store, manager):
        require_issued(store, args.id)
        username = args.username if args.username is not None else manager.display_username()
        shared = manager.share(args.id, args.url, args.prompt, username)
        print(f'✅ Shared image #{shared.id} as {shared.username}')


def cmd_upvote(args: argparse.Namespace) -> None:
    """Upvote a shared image."""
    with open_profile(args) as (_, _store, manager):
        result = manager.upvote(args.id)
        print(f'▲ Image #{args.id} now has {result.votes} votes')


def cmd_gallery(args: argparse.Namespace) -> None:
    """Show saved images."""
    with open_profile(args) as (_, _store, manager):
        print()
        print(format_gallery(project_gallery(manager.state.saved)))
        print()


def cmd_favorites(args: argparse.Namespace) -> None:
    """Show world favorites."""
    with open_profile(args) as (_, _store, manager):
        projection = project_world_favorites(manager.state.shared)
        print()
        print(format_world_favorites(projection, manager.state.upvoted))
        print()


def cmd_status(args: argparse.Namespace) -> None:
    """Show a summary of the current profile."""
    with open_profile(args) as (cfg, store, manager):
        state = manager.state
        print()
        print(welcome_message(manager.display_username()))
        print()
        print(f'  Profile:       {config.store_path(cfg)}')
        print(f'  Saved images:  {len(state.saved)}')
        print(f'  Shared images: {len(state.shared)}')
        print(f'  Upvotes given: {len(state.upvoted)}')
        print(f'  Last image id: {IdAllocator(store).peek()}')
        print()


def cmd_download(args: argparse.Namespace) -> None:
    """Download an image."""
    path = download_image(args.url, Path(args.destination))
    print(f'✅ Downloaded to {path}')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='costumestudio',
        description='Design costumes with AI and share them with the world',
    )

    parser.add_argument('--config', type=str, help='Path to costumestudio.yaml')
    parser.add_argument('--profile', type=str, help='Config profile to apply')
    parser.add_argument('--set', type=str, help='Config overrides: "key.path=value ..."')
    parser.add_argument('--save-config', action='store_true',
                        help='Save --set overrides back to the config file')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--log-file', type=str, help='Also log to this file')

    subparsers = parser.add_subparsers(dest='command', required=True)

    init_parser = subparsers.add_parser('init', help='Write default costumestudio.yaml')
    init_parser.add_argument('--force', action='store_true', help='Overwrite existing config')
    init_parser.set_defaults(func=cmd_init)

    generate_parser = subparsers.add_parser('generate', help='Generate costume images')
    generate_parser.add_argument('prompt', type=str, help='Costume idea')
    generate_parser.add_argument('-n', '--count', type=int, help='Number of images (1-4)')
    generate_parser.add_argument('--top-color', type=str, help='Top color')
    generate_parser.add_argument('--bottom-color', type=str, help='Bottom color')
    generate_parser.add_argument('--save', action='store_true',
                                 help='Save generated images to the gallery')
    generate_parser.set_defaults(func=cmd_generate)

    save_parser = subparsers.add_parser('save', help='Toggle an image in your gallery')
    save_parser.add_argument('id', type=int, help='Image id')
    save_parser.add_argument('url', type=str, help='Image URL')
    save_parser.add_argument('--prompt', type=str, default='', help='Prompt for the image')
    save_parser.set_defaults(func=cmd_save)

    share_parser = subparsers.add_parser('share', help='Share an image to world favorites')
    share_parser.add_argument('id', type=int, help='Image id')
    share_parser.add_argument('url', type=str, help='Image URL')
    share_parser.add_argument('--prompt', type=str, default='', help='Prompt for the image')
    share_parser.add_argument('--username', type=str,
                              help='Display name (defaults to the last one used)')
    share_parser.set_defaults(func=cmd_share)

    upvote_parser = subparsers.add_parser('upvote', help='Upvote a shared image')
    upvote_parser.add_argument('id', type=int, help='Image id')
    upvote_parser.set_defaults(func=cmd_upvote)

    subparsers.add_parser('gallery', help='Show your saved images').set_defaults(func=cmd_gallery)
    subparsers.add_parser('favorites', help='Show world favorites').set_defaults(func=cmd_favorites)
    subparsers.add_parser('status', help='Show profile summary').set_defaults(func=cmd_status)

    download_parser = subparsers.add_parser('download', help='Download an image')
    download_parser.add_argument('url', type=str, help='Image URL')
    download_parser.add_argument('destination', type=str, help='File or directory')
    download_parser.set_defaults(func=cmd_download)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(debug=args.debug, log_file=args.log_file)

    try:
        args.func(args)
    except (CostumeStudioError, ValueError, OSError, yaml.YAMLError) as e:
        print(f'\n❌ Error: {e}\n', file=sys.stderr)
        if args.debug:
            raise
        sys.exit(1)


if __name__ == '__main__':
    main()
