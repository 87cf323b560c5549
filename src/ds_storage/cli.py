"""Command-line interface for ds-storage.

This module exposes every storage operation against a local directory or an
S3 bucket.

Commands:
    - get: Read an object to stdout or a file
    - put: Write a file (or stdin) to an object
    - list: List objects under a prefix
    - copy / move: Relocate an object
    - delete / delete-all: Remove one object or everything under a prefix

Storage is selected with options placed before the command, for example:

    ds-storage --storage-type local --root /data list reports
    ds-storage -t s3 --bucket my-bucket --aws-profile dev get reports/a.csv
"""

from typing import Annotated, NoReturn, Optional

import typer

from . import __version__
from .cli_params import (
    AccessKeyOption,
    AwsProfileOption,
    BucketOption,
    ContentTypeOption,
    EndpointUrlOption,
    MetadataOption,
    NameOption,
    OutputOption,
    RegionOption,
    RootDirOption,
    SecretKeyOption,
    SessionTokenOption,
    StorageType,
    StorageTypeOption,
    TimeoutOption,
)
from .base import PutOptions, Storage
from .core.context import Context
from .core.exceptions import InvalidArgumentError
from .storage_config import S3Options, StorageOptions
from .unified import create_storage

app = typer.Typer(
    name="ds-storage",
    help="Uniform object storage operations over a local directory or S3.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version information."""
    if value:
        typer.echo(f"ds-storage {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    typer_ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, help="Show version."),
    ] = None,
    storage_type: StorageTypeOption = StorageType.local,
    root_dir: RootDirOption = None,
    bucket: BucketOption = None,
    access_key_id: AccessKeyOption = None,
    secret_access_key: SecretKeyOption = None,
    session_token: SessionTokenOption = None,
    region_name: RegionOption = "us-east-1",
    endpoint_url: EndpointUrlOption = None,
    aws_profile: AwsProfileOption = None,
    name: NameOption = "ds-storage",
    timeout: TimeoutOption = 300,
) -> None:
    """
    DS-Storage: object storage operations for local directories and S3.

    Storage options must come before the command name.
    """
    typer_ctx.obj = StorageOptions(
        storage_type=storage_type.value,
        root_dir=root_dir,
        s3=S3Options(
            bucket=bucket,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token,
            region_name=region_name,
            endpoint_url=endpoint_url,
            aws_profile=aws_profile,
        ),
        name=name,
        timeout=timeout,
    )


def _open(typer_ctx: typer.Context) -> tuple[Storage, Context]:
    """Create the storage selected by the top-level options and a deadline context."""
    options: StorageOptions = typer_ctx.obj
    storage = create_storage(options.to_config(), name=options.name)
    return storage, Context.background().with_timeout(options.timeout)


def _parse_metadata(entries: Optional[list[str]]) -> dict[str, str]:
    metadata = {}
    for entry in entries or []:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            raise InvalidArgumentError(f"metadata must be KEY=VALUE, got: {entry!r}")
        metadata[key] = value
    return metadata


def _fail(e: Exception) -> NoReturn:
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(1)


@app.command("get")
def get_cmd(
    typer_ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Object name to read")],
    output: OutputOption = None,
) -> None:
    """
    Read an object and write its bytes to stdout or to --output.

    Examples:
        ds-storage --root /data get reports/a.csv -o a.csv
    """
    try:
        storage, ctx = _open(typer_ctx)
        with storage.get(ctx, name) as stream:
            if output:
                with open(output, "wb") as f:
                    for chunk in iter(lambda: stream.read(64 * 1024), b""):
                        f.write(chunk)
            else:
                stdout = typer.get_binary_stream("stdout")
                for chunk in iter(lambda: stream.read(64 * 1024), b""):
                    stdout.write(chunk)
                stdout.flush()
    except Exception as e:
        _fail(e)


@app.command("put")
def put_cmd(
    typer_ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Object name to write")],
    source: Annotated[str, typer.Argument(help="Local file to upload, or - for stdin")],
    content_type: ContentTypeOption = None,
    metadata: MetadataOption = None,
) -> None:
    """
    Create or overwrite an object with the contents of a file.

    Examples:
        ds-storage --root /data put reports/a.csv ./a.csv
        ds-storage -t s3 --bucket b put a.json - --content-type application/json
    """
    try:
        storage, ctx = _open(typer_ctx)
        opts = PutOptions(content_type=content_type, metadata=_parse_metadata(metadata))

        if source == "-":
            size = storage.put(ctx, name, typer.get_binary_stream("stdin"), opts)
        else:
            with open(source, "rb") as f:
                size = storage.put(ctx, name, f, opts)

        typer.echo(f"Wrote {size:,} bytes to {name}")
    except Exception as e:
        _fail(e)


@app.command("list")
def list_cmd(
    typer_ctx: typer.Context,
    prefix: Annotated[str, typer.Argument(help="Prefix to list objects under")],
) -> None:
    """
    List objects under a prefix.

    Local storage lists the files directly inside the prefix directory; S3
    lists every key starting with the prefix.
    """
    try:
        storage, ctx = _open(typer_ctx)
        objects = storage.list(ctx, prefix)
    except Exception as e:
        _fail(e)

    if objects:
        typer.echo(f"Found {len(objects)} objects:")
        for obj in objects:
            typer.echo(
                f"  {obj.name}  {obj.size:,} bytes  {obj.updated_at.isoformat()}"
            )
    else:
        typer.echo("No objects found.")


@app.command("copy")
def copy_cmd(
    typer_ctx: typer.Context,
    src: Annotated[str, typer.Argument(help="Source object name")],
    dst: Annotated[str, typer.Argument(help="Destination object name")],
) -> None:
    """Copy an object to a new name."""
    try:
        storage, ctx = _open(typer_ctx)
        storage.copy(ctx, src, dst)
        typer.echo(f"Copied {src} to {dst}")
    except Exception as e:
        _fail(e)


@app.command("move")
def move_cmd(
    typer_ctx: typer.Context,
    src: Annotated[str, typer.Argument(help="Source object name")],
    dst: Annotated[str, typer.Argument(help="Destination object name")],
) -> None:
    """Move (rename) an object."""
    try:
        storage, ctx = _open(typer_ctx)
        storage.move(ctx, src, dst)
        typer.echo(f"Moved {src} to {dst}")
    except Exception as e:
        _fail(e)


@app.command("delete")
def delete_cmd(
    typer_ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Object name to delete")],
) -> None:
    """Delete a single object."""
    try:
        storage, ctx = _open(typer_ctx)
        storage.delete(ctx, name)
        typer.echo(f"Deleted {name}")
    except Exception as e:
        _fail(e)


@app.command("delete-all")
def delete_all_cmd(
    typer_ctx: typer.Context,
    prefix: Annotated[str, typer.Argument(help="Prefix to delete everything under")],
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")
    ] = False,
) -> None:
    """Delete every object under a prefix."""
    if not yes:
        typer.confirm(f"Delete everything under {prefix!r}?", abort=True)

    try:
        storage, ctx = _open(typer_ctx)
        storage.delete_all(ctx, prefix)
        typer.echo(f"Deleted everything under {prefix}")
    except Exception as e:
        _fail(e)


if __name__ == "__main__":
    app()
