"""Validation and inspection commands."""

from collections import Counter
from pathlib import Path

import click

from bankconv.cli.error_handling import handle_domain_error
from bankconv.domain.datev import DatevDocument
from bankconv.domain.errors import DocumentEmpty, DomainError, document_empty
from bankconv.domain.registry import detect_registry
from bankconv.iso20022 import SchemaValidator
from bankconv.utils.tokenizer import tokenize


@click.command("validate")
@click.argument("xml_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--type", "message_type", help="Message type, e.g. camt.053 (default: from namespace)")
@click.option("--version", help="Message version, e.g. 001.02 (default: from namespace)")
@click.pass_context
def validate_xml(ctx, xml_file: str, message_type: str | None, version: str | None):
    """Validate an ISO 20022 XML file against its schema.

    Exits with status 1 when the file is invalid.
    """
    schema_dir = ctx.obj["schema_dir"]
    if not schema_dir:
        handle_domain_error(
            ctx, DomainError("No schema directory given (use --schema-dir or BANKCONV_SCHEMA_DIR)")
        )

    try:
        xml_content = Path(xml_file).read_text(encoding="utf-8")
    except ValueError as e:
        handle_domain_error(ctx, e)

    result = SchemaValidator(schema_dir).validate(xml_content, message_type, version)
    label = " ".join(part for part in (result.type, result.version) if part) or "message"
    if result.valid:
        click.echo(f"Valid {label} ({result.schema_file.name})")
        return

    click.echo(f"Invalid {label}:")
    for error in result.errors:
        click.echo(f"  {error}")
    ctx.exit(1)


@click.command("inspect")
@click.argument("datev_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def inspect_datev(ctx, datev_file: str):
    """Show the detected layout and field violations of a DATEV file."""
    try:
        text = Path(datev_file).read_text(encoding=ctx.obj["encoding"])
    except ValueError as e:
        handle_domain_error(ctx, e)

    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        handle_domain_error(ctx, DocumentEmpty(document_empty()))

    layouts = Counter()
    for line in lines:
        registry = detect_registry(tokenize(line))
        layouts[registry.key if registry else "unknown"] += 1

    document = DatevDocument.from_lines(lines, source_name=datev_file)
    click.echo(f"File: {datev_file}")
    for key, count in layouts.most_common():
        click.echo(f"Layout: {key} ({count} lines)")
    click.echo(f"Rows: {len(document)}")
    if document.bank_code or document.account_number:
        click.echo(f"Account: {document.bank_code or ''}/{document.account_number or ''}")
    if document.statement_number:
        click.echo(f"Statement: {document.statement_number} ({document.statement_date or 'no date'})")

    errors = document.validate()
    if not errors:
        click.echo("No field violations")
        return
    click.echo(f"\n{len(errors)} field violations:")
    for error in errors:
        click.echo(f"  {error}")


def register_commands(cli):
    """Register validation commands with main CLI."""
    cli.add_command(validate_xml)
    cli.add_command(inspect_datev)
