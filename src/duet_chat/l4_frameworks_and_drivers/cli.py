"""CLI entry point for duet-chat."""

from __future__ import annotations

import sys

import click
from pydantic import ValidationError

from duet_chat import __version__


@click.command()
@click.option(
    '-c',
    '--config',
    'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Path to YAML config file.',
)
@click.option(
    '-s',
    '--speaker',
    default=None,
    help='Join the room as this identity (must be one of room.speakers).',
)
@click.option(
    '--memory',
    'use_memory',
    is_flag=True,
    default=False,
    help='Use a throwaway in-memory room instead of Firestore.',
)
@click.version_option(version=__version__)
def cli(config_path, speaker, use_memory):
    """duet-chat -- two-person chat room TUI with an on-demand AI participant."""
    from duet_chat.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from duet_chat.l4_frameworks_and_drivers.infra_config import (  # noqa: PLC0415 -- deferred: not needed for --help
        InfraConfig,
        build_app_config,
    )

    try:
        overrides = {'store_backend': 'memory'} if use_memory else None
        raw = YamlConfigLoader().load_raw(config_path, overrides=overrides)
        config = build_app_config(raw)
        infra = InfraConfig.model_validate(raw)
    except (FileNotFoundError, ValueError) as e:
        # pydantic's ValidationError is a ValueError subclass
        click.echo(f'Error: {_first_line(e)}', err=True)
        sys.exit(1)

    if speaker is not None and speaker not in config.room.speakers:
        click.echo(f'Error: unknown speaker {speaker!r}; choose one of {", ".join(config.room.speakers)}', err=True)
        sys.exit(1)

    from duet_chat.l3_interface_adapters.gateways.paths import (  # noqa: PLC0415 -- deferred: platformdirs not loaded on --help
        LOG_DIR,
    )
    from duet_chat.l4_frameworks_and_drivers.app import (  # noqa: PLC0415 -- deferred: Textual TUI not loaded for --help
        ChatApp,
    )
    from duet_chat.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: Textual TUI not loaded for --help
        DependencyContainer,
    )

    try:
        container = DependencyContainer(config, infra=infra, speaker=speaker)
    except ValueError as e:
        click.echo(f'Error: {e}', err=True)
        click.echo('Hint: pass --memory to try the room without Firestore.', err=True)
        sys.exit(1)

    _preflight_ai(container)
    _preflight_media(infra)

    app = ChatApp(config=config, controller=container.controller, log_dir=LOG_DIR)
    app.run()


def _first_line(error: Exception) -> str:
    if isinstance(error, ValidationError):
        return f'invalid config ({error.error_count()} problem(s)): {error.errors()[0]["msg"]}'
    return str(error)


def _preflight_ai(container) -> None:
    ok, err = container.ai_responder.check_connectivity()
    if not ok:
        click.echo(f'Warning: AI provider not reachable ({err}). AI replies will fall back.', err=True)


def _preflight_media(infra) -> None:
    media = infra.cloudinary
    if not media.cloud_name or not media.upload_preset:
        click.echo('Warning: Cloudinary is not configured. Image uploads will fail.', err=True)
