import typer

from .commands import (
    batch as batch_cmd,
    parse as parse_cmd,
    process as process_cmd,
    validate as validate_cmd,
)

app = typer.Typer(help="figmaflow CLI")

app.add_typer(process_cmd.app, name="process")
app.add_typer(batch_cmd.app, name="batch")
app.add_typer(parse_cmd.app, name="parse")
app.add_typer(validate_cmd.app, name="validate")


if __name__ == "__main__":
    app()
