"""bankconv - DATEV, camt.053 and MT940 bank statement conversion."""

from bankconv.logging_setup import get_logger

# Library default: silent until an application configures logging
get_logger(__name__)


# Import main lazily to avoid circular dependencies
def __getattr__(name):
    if name == "main":
        from bankconv.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
