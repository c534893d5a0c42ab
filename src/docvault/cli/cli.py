"""CLI entrypoint: Typer app definition and command registration"""

import typer

from docvault.cli.commands import (
    delete_cmd, export_cmd, export_project_cmd, init_cmd, list_cmd,
    new_cmd, purge_cmd, reindex_cmd, restore_cmd, show_cmd,
)


app = typer.Typer(name="docvault", no_args_is_help=True, help="Block-document vault with a SQL index")

app.command(name="init")(init_cmd)
app.command(name="new")(new_cmd)
app.command(name="show")(show_cmd)
app.command(name="list")(list_cmd)
app.command(name="delete")(delete_cmd)
app.command(name="restore")(restore_cmd)
app.command(name="purge")(purge_cmd)
app.command(name="reindex")(reindex_cmd)
app.command(name="export")(export_cmd)
app.command(name="export-project")(export_project_cmd)
