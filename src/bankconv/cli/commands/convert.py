"""Statement conversion commands."""

from pathlib import Path

import click

from bankconv.cli.error_handling import SkipReport, handle_domain_error
from bankconv.domain import (
    CamtToDatevConverter,
    CamtToMt940Converter,
    DatevToCamtConverter,
    DatevToMt940Converter,
    Mt940ToCamtConverter,
    Mt940ToDatevConverter,
)
from bankconv.domain.datev import DatevDocument
from bankconv.domain.enums import CamtVersion
from bankconv.domain.mt940 import Mt940Statement, Mt941Report
from bankconv.domain.purpose import PurposeDialect
from bankconv.iso20022 import parse_camt053
from bankconv.utils.amount_parser import parse_amount

INPUT_FILE = click.Path(exists=True, dir_okay=False)

OPENING_BALANCE_OPTION = click.option(
    "--opening-balance",
    default="0",
    show_default=True,
    help="Opening balance of the first statement (e.g. 1000,50 or -20.00)",
)
CAMT_VERSION_OPTION = click.option(
    "--camt-version",
    type=click.Choice([v.value for v in CamtVersion]),
    default=CamtVersion.V02.value,
    show_default=True,
    help="camt.053.001 message version",
)
DIALECT_OPTION = click.option(
    "--dialect",
    type=click.Choice([d.value for d in PurposeDialect]),
    default=PurposeDialect.DATEV.value,
    show_default=True,
    help="Line layout of the :86: field",
)


def _read(ctx, path: str, encoding: str | None = None) -> str:
    return Path(path).read_text(encoding=encoding or ctx.obj["encoding"])


def _write(ctx, path: str, text: str, encoding: str | None = None) -> None:
    """Write text as is; DATEV and MT940 content already carries CRLF line ends."""
    with open(path, "w", encoding=encoding or ctx.obj["encoding"], newline="") as f:
        f.write(text)


def _read_datev(ctx, files) -> list[DatevDocument]:
    documents = []
    for path in files:
        try:
            documents.append(DatevDocument.from_text(_read(ctx, path), source_name=path))
        except ValueError as e:
            handle_domain_error(ctx, e, source=path)
    return documents


def _opening(ctx, opening_balance: str):
    try:
        return parse_amount(opening_balance)
    except ValueError as e:
        handle_domain_error(ctx, e)


def _read_camt(ctx, xml_file: str):
    try:
        return parse_camt053(_read(ctx, xml_file, encoding="utf-8"))
    except ValueError as e:
        handle_domain_error(ctx, e)


def _read_mt940(ctx, mt940_file: str) -> list[Mt940Statement]:
    try:
        return Mt940Statement.parse(_read(ctx, mt940_file))
    except ValueError as e:
        handle_domain_error(ctx, e)


def _write_xml_files(ctx, named_statements, output_dir: str, version: CamtVersion) -> None:
    Path(output_dir).mkdir(parents=True, exist_ok=True)
    for name, statement in named_statements:
        target = Path(output_dir) / (name + ".xml")
        _write(ctx, str(target), statement.to_xml(version), encoding="utf-8")
        click.echo(f"Wrote {target} ({len(statement.entries)} entries)")


def _emit(ctx, text: str, output: str | None, summary: str) -> None:
    if output is None:
        click.echo(text, nl=False)
        return
    _write(ctx, output, text)
    click.echo(f"Wrote {output} ({summary})")


@click.command("datev-to-camt")
@click.argument("files", nargs=-1, required=True, type=INPUT_FILE)
@OPENING_BALANCE_OPTION
@CAMT_VERSION_OPTION
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False),
    help="Directory for the XML files (required for several input files)",
)
@click.option("--owner", help="Account owner name")
@click.pass_context
def datev_to_camt(ctx, files, opening_balance: str, camt_version: str, output_dir: str | None, owner: str | None):
    """Convert DATEV bank transaction files to camt.053 XML.

    Files are converted in the given order and each statement opens with the
    closing balance of the previous one.
    """
    if len(files) > 1 and output_dir is None:
        handle_domain_error(ctx, ValueError("--output-dir is required for several input files"))

    opening = _opening(ctx, opening_balance)
    documents = _read_datev(ctx, files)
    report = SkipReport(files)
    statements = DatevToCamtConverter().convert_multiple(
        documents, opening, account_owner=owner, on_skip=report
    )
    report.check(ctx, statements)

    version = CamtVersion(camt_version)
    if output_dir is None:
        click.echo(statements[0].to_xml(version), nl=False)
        return
    named = [(Path(path).stem, statement) for path, statement in report.kept(statements)]
    _write_xml_files(ctx, named, output_dir, version)


@click.command("camt-to-datev")
@click.argument("xml_file", type=INPUT_FILE)
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output DATEV file")
@click.pass_context
def camt_to_datev(ctx, xml_file: str, output: str | None):
    """Convert a camt.053 XML file to DATEV bank transactions."""
    statements = _read_camt(ctx, xml_file)
    documents = CamtToDatevConverter().convert_multiple(statements)
    text = "".join(document.to_text() for document in documents)
    rows = sum(len(document) for document in documents)
    _emit(ctx, text, output, f"{rows} rows from {len(documents)} statements")


@click.command("datev-to-mt940")
@click.argument("files", nargs=-1, required=True, type=INPUT_FILE)
@OPENING_BALANCE_OPTION
@DIALECT_OPTION
@click.option("--mt941", is_flag=True, help="Write MT941 balance reports instead of statements")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output MT940 file")
@click.pass_context
def datev_to_mt940(ctx, files, opening_balance: str, dialect: str, mt941: bool, output: str | None):
    """Convert DATEV bank transaction files to MT940 statements."""
    opening = _opening(ctx, opening_balance)
    documents = _read_datev(ctx, files)
    report = SkipReport(files)
    statements = DatevToMt940Converter().convert_multiple(documents, opening, on_skip=report)
    report.check(ctx, statements)

    if mt941:
        text = "".join(Mt941Report.from_statement(s).to_text() for s in statements)
    else:
        text = "".join(s.to_text(PurposeDialect(dialect)) for s in statements)
    _emit(ctx, text, output, f"{len(statements)} statements")


@click.command("mt940-to-datev")
@click.argument("mt940_file", type=INPUT_FILE)
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output DATEV file")
@click.pass_context
def mt940_to_datev(ctx, mt940_file: str, output: str | None):
    """Convert an MT940 file to DATEV bank transactions."""
    statements = _read_mt940(ctx, mt940_file)
    documents = Mt940ToDatevConverter().convert_multiple(statements)
    text = "".join(document.to_text() for document in documents)
    rows = sum(len(document) for document in documents)
    _emit(ctx, text, output, f"{rows} rows from {len(documents)} statements")


@click.command("camt-to-mt940")
@click.argument("xml_file", type=INPUT_FILE)
@DIALECT_OPTION
@click.option("--mt941", is_flag=True, help="Write MT941 balance reports instead of statements")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output MT940 file")
@click.pass_context
def camt_to_mt940(ctx, xml_file: str, dialect: str, mt941: bool, output: str | None):
    """Convert a camt.053 XML file to MT940 statements."""
    statements = CamtToMt940Converter().convert_multiple(_read_camt(ctx, xml_file))
    if mt941:
        text = "".join(Mt941Report.from_statement(s).to_text() for s in statements)
    else:
        text = "".join(s.to_text(PurposeDialect(dialect)) for s in statements)
    _emit(ctx, text, output, f"{len(statements)} statements")


@click.command("mt940-to-camt")
@click.argument("mt940_file", type=INPUT_FILE)
@CAMT_VERSION_OPTION
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False),
    help="Directory for the XML files (required for files with several statements)",
)
@click.pass_context
def mt940_to_camt(ctx, mt940_file: str, camt_version: str, output_dir: str | None):
    """Convert an MT940 file to camt.053 XML, one message per statement."""
    documents = Mt940ToCamtConverter().convert_multiple(_read_mt940(ctx, mt940_file))
    if not documents:
        handle_domain_error(ctx, ValueError("No statement could be converted"), source=mt940_file)

    version = CamtVersion(camt_version)
    if output_dir is None:
        if len(documents) > 1:
            handle_domain_error(
                ctx, ValueError(f"--output-dir is required for {len(documents)} statements")
            )
        click.echo(documents[0].to_xml(version), nl=False)
        return
    stem = Path(mt940_file).stem
    named = [(f"{stem}_{number}", document) for number, document in enumerate(documents, start=1)]
    _write_xml_files(ctx, named, output_dir, version)


def register_commands(cli):
    """Register conversion commands with main CLI."""
    cli.add_command(datev_to_camt)
    cli.add_command(camt_to_datev)
    cli.add_command(datev_to_mt940)
    cli.add_command(mt940_to_datev)
    cli.add_command(camt_to_mt940)
    cli.add_command(mt940_to_camt)
