"""Command-line interface for restql."""

import asyncio
import importlib
import json
import logging
from pathlib import Path
from typing import Any

import click

from .core.engine import RestQL
from .core.errors import RestQLError
from .core.parser import SchemaParser
from .core.validator import SchemaValidator


def load_transformers(target: str | None) -> dict[str, Any]:
    """Load a transformer mapping from 'package.module:ATTRIBUTE'."""
    if not target:
        return {}
    module_name, _, attribute = target.partition(":")
    if not attribute:
        raise click.BadParameter("expected 'module:attribute'", param_hint="--transformers")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(str(e), param_hint="--transformers") from e
    transformers = getattr(module, attribute, None)
    if not isinstance(transformers, dict):
        raise click.BadParameter(f"{target} is not a dict", param_hint="--transformers")
    return transformers


def parse_base_urls(values: tuple[str, ...]) -> dict[str, str]:
    """Turn ('https://api', '/users=https://users') into a base URL map."""
    base_urls: dict[str, str] = {}
    for value in values:
        path, sep, url = value.partition("=")
        if sep and path.startswith("/"):
            base_urls[path] = url
        else:
            base_urls["default"] = value
    return base_urls


def parse_variables(values: tuple[str, ...]) -> dict[str, Any]:
    """Parse NAME=VALUE pairs; values are read as JSON when possible."""
    variables: dict[str, Any] = {}
    for value in values:
        name, sep, raw = value.partition("=")
        if not sep:
            raise click.BadParameter(f"expected NAME=VALUE, got {value!r}", param_hint="--var")
        try:
            variables[name] = json.loads(raw)
        except ValueError:
            variables[name] = raw
    return variables


def parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, sep, header_value = value.partition(":")
        if not sep:
            raise click.BadParameter(f"expected NAME:VALUE, got {value!r}", param_hint="--header")
        headers[name.strip()] = header_value.strip()
    return headers


def read_text_or_file(value: str) -> str:
    path = Path(value)
    if "{" not in value and path.is_file():
        return path.read_text(encoding="utf-8")
    return value


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """Query REST APIs with a GraphQL-like language.

    Describe REST resources with an SDL file, then run queries and
    mutations against them.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.option(
    "--schema",
    "-s",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the SDL file.",
)
@click.option(
    "--transformers",
    "-t",
    default=None,
    help="Transformer mapping to validate against, as 'module:ATTRIBUTE'.",
)
def validate(schema: str, transformers: str | None):
    """Parse and validate an SDL file.

    Examples:

        restql validate --schema ./schema.sdl

        restql validate -s ./schema.sdl -t myapp.transforms:TRANSFORMERS
    """
    try:
        parsed = SchemaParser.from_file(schema).parse_sdl()
        SchemaValidator(load_transformers(transformers)).validate_schema(parsed)
    except RestQLError as e:
        raise click.ClickException(e.message) from e

    click.echo(f"Schema OK: {Path(schema).name}")
    click.echo(f"  Resources: {len(parsed.resources)}")
    for name, resource in sorted(parsed.resources.items()):
        methods = ", ".join(sorted(resource.endpoints))
        click.echo(f"    {name} ({methods})")
    click.echo(f"  Value types: {len(parsed.types)}")


@main.command()
@click.option(
    "--schema",
    "-s",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the SDL file.",
)
@click.option(
    "--query",
    "-q",
    required=True,
    help="Operation string, or a path to a file containing one.",
)
@click.option(
    "--base-url",
    "-b",
    "base_urls",
    multiple=True,
    required=True,
    help="Default base URL, or PATH=URL for a specific endpoint path.",
)
@click.option("--var", "variables", multiple=True, help="Variable as NAME=VALUE (JSON values allowed).")
@click.option("--header", "-H", "headers", multiple=True, help="Request header as NAME:VALUE.")
@click.option("--transformers", "-t", default=None, help="Transformer mapping as 'module:ATTRIBUTE'.")
@click.option("--no-cache", is_flag=True, help="Bypass the result cache.")
def run(
    schema: str,
    query: str,
    base_urls: tuple[str, ...],
    variables: tuple[str, ...],
    headers: tuple[str, ...],
    transformers: str | None,
    no_cache: bool,
):
    """Run a query or mutation and print the result as JSON.

    Examples:

        restql run -s ./schema.sdl -b https://api.example.com -q 'query Q { user { id } }'

        restql run -s ./schema.sdl -b https://api.example.com -q ./get_user.rql --var id=42
    """
    sdl = Path(schema).read_text(encoding="utf-8")
    operation = read_text_or_file(query)
    options = {"headers": parse_headers(headers)}

    async def execute() -> Any:
        async with RestQL(
            sdl,
            parse_base_urls(base_urls),
            options,
            load_transformers(transformers),
        ) as restql:
            return await restql.execute(
                operation,
                parse_variables(variables),
                use_cache=not no_cache,
            )

    try:
        result = asyncio.run(execute())
    except RestQLError as e:
        raise click.ClickException(e.message) from e

    click.echo(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
