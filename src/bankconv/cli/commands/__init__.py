"""bankconv CLI commands."""
