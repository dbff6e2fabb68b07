"""Error and skip reporting for bankconv commands."""

from typing import NoReturn, Optional, Sequence

import click


def describe_error(error: Exception, source: Optional[str] = None) -> str:
    """Format an error for the terminal, prefixed with its input file if known.

    Errors without a message are shown by their class name.
    """
    text = str(error) or type(error).__name__
    return f"{source}: {text}" if source else text


def handle_domain_error(ctx: click.Context, error: Exception, source: Optional[str] = None) -> NoReturn:
    """Print an error to stderr and exit with status 1."""
    click.echo(f"Error: {describe_error(error, source)}", err=True)
    ctx.exit(1)


class SkipReport:
    """Collects documents left out by a batch conversion.

    Used as the ``on_skip`` callback of ``convert_multiple``; with more than
    one input a warning naming the input is printed for each skip.
    """

    def __init__(self, sources: Sequence[str]):
        self.sources = list(sources)
        self.skipped: dict[int, Exception] = {}

    def __call__(self, index: int, error: Exception) -> None:
        self.skipped[index] = error
        if len(self.sources) > 1:
            click.echo(f"Warning: skipped {describe_error(error, self.sources[index])}", err=True)

    def kept(self, items: Sequence) -> list:
        """Return the sources of converted items, paired with the items."""
        sources = [s for i, s in enumerate(self.sources) if i not in self.skipped]
        return list(zip(sources, items))

    def check(self, ctx: click.Context, converted: Sequence) -> None:
        """Exit with an error when nothing could be converted.

        A single input reports its own error.
        """
        if converted:
            return
        if len(self.sources) == 1 and 0 in self.skipped:
            handle_domain_error(ctx, self.skipped[0])
        handle_domain_error(ctx, ValueError("None of the input files could be converted"))
