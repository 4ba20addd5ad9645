"""Command line tool for preparing and inspecting configuration documents.

- config-layers encrypt: encrypt a document before shipping it
- config-layers decrypt: recover the plain document
- config-layers show: print the effective configuration for an environment
"""

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click

from config_layers.codecs import codec_for_path
from config_layers.config import LayeredConfig
from config_layers.crypto import FernetTransform
from config_layers.exceptions import ConfigError
from config_layers.storage import FileStorage
from config_layers.utils import ENV_VAR_ENVIRONMENT, ENV_VAR_PASSWORD

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 1

password_option = click.option(
    "--password",
    envvar=ENV_VAR_PASSWORD,
    help=f"Document password (defaults to ${ENV_VAR_PASSWORD}).",
)


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(EXIT_CONFIG_ERROR)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """Manage layered configuration documents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command("encrypt")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("dest", type=click.Path(dir_okay=False, path_type=Path))
@password_option
def encrypt_cmd(source: Path, dest: Path, password: Optional[str]) -> None:
    """Encrypt SOURCE into DEST.

    SOURCE is decoded first so a malformed document is never shipped.

    Examples:

        config-layers encrypt Configuration.plist Configuration.enc.plist --password s3cret
    """
    if not password:
        _fail(f"a password is required (use --password or ${ENV_VAR_PASSWORD})")
    storage = FileStorage()
    try:
        data = storage.read(source)
        codec_for_path(source).decode(data)
        storage.write(dest, FernetTransform().encrypt(data, password))
    except ConfigError as exc:
        _fail(str(exc))
    click.echo(f"Encrypted {source} -> {dest}")


@main.command("decrypt")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("dest", type=click.Path(dir_okay=False, path_type=Path))
@password_option
def decrypt_cmd(source: Path, dest: Path, password: Optional[str]) -> None:
    """Decrypt SOURCE into DEST."""
    if not password:
        _fail(f"a password is required (use --password or ${ENV_VAR_PASSWORD})")
    storage = FileStorage()
    try:
        storage.write(dest, FernetTransform().decrypt(storage.read(source), password))
    except ConfigError as exc:
        _fail(str(exc))
    click.echo(f"Decrypted {source} -> {dest}")


@main.command("show")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--env", "environment", envvar=ENV_VAR_ENVIRONMENT, help="Active environment.")
@click.option(
    "--overrides",
    "overrides_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Persisted overrides document (defaults to <name>.overrides<suffix> next to PATH).",
)
@click.option("--key", help="Print only this key.")
@password_option
def show_cmd(
    path: Path,
    environment: Optional[str],
    overrides_path: Optional[Path],
    key: Optional[str],
    password: Optional[str],
) -> None:
    """Print the effective configuration of PATH as JSON."""
    try:
        config = LayeredConfig(
            path,
            overrides_path,
            environment=environment,
            password=password,
            persistent=False,
        )
        if key is not None:
            if key not in config:
                _fail(f"key {key!r} not found")
            payload = config.config_value_for_key(key)
        else:
            payload = dict(config.snapshot())
    except ConfigError as exc:
        _fail(str(exc))
    click.echo(json.dumps(payload, indent=2, sort_keys=True, default=str))


if __name__ == "__main__":
    main()
