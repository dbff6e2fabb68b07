"""Main CLI entry point."""

import click

from bankconv.logging_setup import configure_logging

# Import and register all commands at module level
from bankconv.cli.commands import convert, validate


@click.group()
@click.option(
    "--log-level",
    help="Log level, e.g. DEBUG or INFO (overrides BANKCONV_LOG_LEVEL environment variable)",
    envvar="BANKCONV_LOG_LEVEL",
)
@click.option(
    "--encoding",
    default="utf-8",
    show_default=True,
    help="Encoding of DATEV files read and written (BANKCONV_ENCODING)",
    envvar="BANKCONV_ENCODING",
)
@click.option(
    "--schema-dir",
    type=click.Path(file_okay=False),
    help="Directory with ISO 20022 XSD files (BANKCONV_SCHEMA_DIR)",
    envvar="BANKCONV_SCHEMA_DIR",
)
@click.pass_context
def cli(ctx, log_level: str | None, encoding: str, schema_dir: str | None):
    """bankconv - Bank statement conversion.

    Convert DATEV bank transaction files to camt.053 XML or MT940 and back,
    and validate ISO 20022 messages against their XML schemas.
    """
    ctx.ensure_object(dict)
    try:
        configure_logging(log_level)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level")
    ctx.obj["encoding"] = encoding
    ctx.obj["schema_dir"] = schema_dir


# Register all commands
convert.register_commands(cli)
validate.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
