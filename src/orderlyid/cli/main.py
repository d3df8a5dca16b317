"""
OrderlyID CLI

Command-line interface for issuing and inspecting OrderlyIDs.

Usage:
    orderlyid generate --policy fail --tenant 42 --shard 7 --type order
    orderlyid generate --config generator.json --count 10
    orderlyid decode order_01h8n6qj3k9m2p4r6s8t0v2w4x6y8z0a
    orderlyid decode payment_01h8...-a1b2 --require-checksum --json
"""

import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from orderlyid.codec import decode as decode_text
from orderlyid.config import GeneratorConfig, load_config
from orderlyid.errors import OrderlyIdError
from orderlyid.generator import OrderlyIdGenerator
from orderlyid.logging import configure_logging, is_production

# Logs go to stderr; stdout carries only identifiers / decoded output
configure_logging(json_output=is_production(), log_level="WARNING")

app = typer.Typer(
    name="orderlyid",
    help="OrderlyID - structured, sortable, distributed identifiers",
    add_completion=False,
)


def build_config(
    config_path: Optional[Path],
    overrides: dict,
) -> GeneratorConfig:
    """Merge a JSON config file (if any) with explicit command-line options"""
    base: dict = {}
    if config_path is not None:
        base = load_config(config_path).model_dump()
    base.update({key: value for key, value in overrides.items() if value is not None})
    return GeneratorConfig.model_validate(base)


@app.command()
def generate(
    policy: Annotated[
        Optional[str],
        typer.Option("--policy", help="Clock regression policy (fail, clamp)"),
    ] = None,
    tenant: Annotated[
        Optional[int],
        typer.Option("--tenant", help="Tenant id (0-65535)"),
    ] = None,
    shard: Annotated[
        Optional[int],
        typer.Option("--shard", help="Shard hint (0-65535)"),
    ] = None,
    flags: Annotated[
        Optional[int],
        typer.Option("--flags", help="Flags byte (version bits + privacy bit)"),
    ] = None,
    type_tag: Annotated[
        Optional[str],
        typer.Option("--type", help="Type tag prefix, e.g. order"),
    ] = None,
    checksum: Annotated[
        Optional[bool],
        typer.Option("--checksum/--no-checksum", help="Append a checksum suffix"),
    ] = None,
    count: Annotated[
        int,
        typer.Option("--count", min=1, help="Number of identifiers to issue"),
    ] = 1,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", help="JSON generator config file"),
    ] = None,
) -> None:
    """Issue one or more identifiers, one per line"""
    try:
        generator_config = build_config(
            config,
            {
                "clock_regression_policy": policy,
                "tenant": tenant,
                "shard": shard,
                "flags": flags,
                "type_tag": type_tag,
                "checksum_enabled": checksum,
            },
        )
    except (ValidationError, OSError, ValueError) as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    generator = OrderlyIdGenerator(generator_config)
    try:
        for orderly_id in generator.generate_many(count):
            typer.echo(orderly_id.text)
    except OrderlyIdError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def decode(
    text: Annotated[str, typer.Argument(help="OrderlyID text")],
    expect_type: Annotated[
        Optional[str],
        typer.Option("--expect-type", help="Fail unless the type tag matches"),
    ] = None,
    require_checksum: Annotated[
        bool,
        typer.Option("--require-checksum", help="Fail if there is no checksum suffix"),
    ] = False,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Decode and validate an identifier"""
    try:
        decoded = decode_text(text, expected_type=expect_type, require_checksum=require_checksum)
    except OrderlyIdError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    fields = decoded.fields
    occurred_at = fields.occurred_at
    result = {
        "type_tag": decoded.type_tag,
        "timestamp": fields.timestamp,
        "occurred_at": occurred_at.isoformat() if occurred_at else None,
        "version": fields.version,
        "privacy": fields.privacy,
        "flags": fields.flags,
        "tenant": fields.tenant,
        "sequence": fields.sequence,
        "shard": fields.shard,
        "random": fields.random,
        "checksum": decoded.checksum,
        "hex": decoded.raw.hex(),
    }

    if as_json:
        typer.echo(json.dumps(result, indent=2))
        return

    for key, value in result.items():
        typer.echo(f"  {key}: {'null' if value is None else value}")


if __name__ == "__main__":
    app()
