import typer

from .commands import (
    bundle as bundle_cmd,
    log as log_cmd,
    sync as sync_cmd,
    validate as validate_cmd,
)

app = typer.Typer(help="Directus collection sync CLI")

app.add_typer(sync_cmd.app, name="sync")
app.add_typer(bundle_cmd.app, name="bundle")
app.add_typer(validate_cmd.app, name="validate")
app.add_typer(log_cmd.app, name="log")


if __name__ == "__main__":
    app()
