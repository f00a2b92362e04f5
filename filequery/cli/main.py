"""
FileQuery CLI - query a folder of data files with SQL

Usage:
    filequery files <dir>                      # list importable files
    filequery query <dir> <sql> [options]      # run one statement, print preview
    filequery export <dir> <sql> -o out.csv    # stream the full result to CSV
    filequery shell [dir]                      # launch interactive TUI
"""

import sys
import time
from typing import Optional

import anyio
import click

from filequery import __version__
from filequery.cli.formatters import get_formatter
from filequery.config import load_config
from filequery.core.collector import collect
from filequery.core.errors import FileQueryError
from filequery.core.results import CSVExportOptions
from filequery.core.types import format_size
from filequery.core.workbench import Workbench


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    ctx = click.get_current_context(silent=True)
    if ctx is not None and ctx.find_root().obj.get("debug"):
        raise e
    sys.exit(1)


def _read_sql(sql: Optional[str], sql_file: Optional[str]) -> str:
    if sql_file:
        with open(sql_file, encoding="utf-8") as f:
            return f.read()
    if sql is None:
        raise click.UsageError("Provide SQL as an argument or with --sql-file")
    return sql


@click.group()
@click.version_option(version=__version__, prog_name="filequery")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config file (default: ~/.filequery_config)",
)
@click.option("--debug", is_flag=True, help="Show tracebacks on errors")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], debug: bool):
    """
    FileQuery - Query local Parquet/CSV/JSON files with SQL

    Files are imported by path relative to the chosen directory and can be
    queried as 'sub/dir/file.csv'.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config_path)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
def files(directory: str):
    """
    List importable files below a directory

    Examples:

        \b
        $ filequery files ./data
    """
    try:
        collected = anyio.run(collect, directory)
    except (FileQueryError, OSError) as e:
        _fail(e)
        return

    for meta in collected.meta:
        click.echo(f"{meta.path}\t{format_size(meta.size)}")
    click.echo(f"{len(collected)} file{'s' if len(collected) != 1 else ''}", err=True)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.argument("sql", type=str, required=False)
@click.option(
    "--sql-file",
    "-q",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read SQL script from file",
)
@click.option(
    "--cursor",
    "-c",
    type=int,
    default=None,
    help="Cursor offset selecting the statement to run (default: end of script)",
)
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["table", "json", "csv", "markdown"], case_sensitive=False),
    default="table",
    help="Output format (default: table)",
)
@click.option("--limit", "-l", type=int, default=None, help="Maximum rows to show (default: 200)")
@click.option("--output", "-o", type=click.Path(), default=None, help="Write output to file instead of stdout")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--time", "-t", "show_time", is_flag=True, help="Show execution time")
@click.pass_context
def query(
    ctx: click.Context,
    directory: str,
    sql: Optional[str],
    sql_file: Optional[str],
    cursor: Optional[int],
    fmt: str,
    limit: Optional[int],
    output: Optional[str],
    no_color: bool,
    show_time: bool,
):
    """
    Import DIRECTORY and run one statement of a SQL script

    With a multi-statement script, --cursor picks the statement the same
    way the editor does.

    Examples:

        \b
        $ filequery query ./data "SELECT * FROM 'sales.csv' LIMIT 10"

        \b
        # Second statement of a script
        $ filequery query ./data "SELECT 1; SELECT 2;" --cursor 12

        \b
        # Save as markdown
        $ filequery query ./data -q report.sql -f markdown -o report.md
    """
    bench = Workbench(config=ctx.obj["config"])
    try:
        script = _read_sql(sql, sql_file)
        offset = len(script) if cursor is None else cursor

        async def run():
            await bench.import_files(directory)
            return await bench.run(script, offset, limit=limit)

        start_time = time.time()
        preview = anyio.run(run)
        elapsed = time.time() - start_time
    except (FileQueryError, OSError) as e:
        _fail(e)
        return
    finally:
        bench.close()

    formatter = get_formatter(fmt.lower())
    output_text = formatter.format(
        preview,
        no_color=no_color or output is not None or not sys.stdout.isatty(),
        show_footer=not output,
    )
    if show_time:
        output_text += f"\nProcessed {len(preview.rows)} of {preview.total_rows} rows in {elapsed:.3f}s"

    if output:
        with open(output, "w", encoding="utf-8", newline="") as f:
            f.write(output_text)
        click.echo(f"Results written to {output} ({fmt} format)", err=True)
    else:
        click.echo(output_text)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.argument("sql", type=str)
@click.option("--output", "-o", type=click.Path(dir_okay=False), required=True, help="CSV file to write")
@click.option("--no-header", is_flag=True, help="Omit the header line")
@click.option("--chunk-size", type=int, default=None, help="Characters buffered per write (default: 1,000,000)")
@click.pass_context
def export(
    ctx: click.Context,
    directory: str,
    sql: str,
    output: str,
    no_header: bool,
    chunk_size: Optional[int],
):
    """
    Import DIRECTORY and stream the full result of SQL to a CSV file

    Examples:

        \b
        $ filequery export ./data "SELECT * FROM 'events.ndjson'" -o events.csv
    """
    config = ctx.obj["config"]
    bench = Workbench(config=config)
    try:
        options = CSVExportOptions(
            include_header=config.csv_header and not no_header,
            chunk_size=chunk_size or config.csv_chunk_size,
        )

        async def run():
            await bench.import_files(directory)
            return await bench.export_csv_file(sql, output, options)

        result = anyio.run(run)
    except (FileQueryError, OSError) as e:
        _fail(e)
        return
    finally:
        bench.close()

    click.echo(f"Exported {result.row_count:,} rows x {result.column_count} columns to {output}", err=True)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False), required=False)
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to tab state file (default: ~/.filequery_state)",
)
@click.pass_context
def shell(ctx: click.Context, directory: Optional[str], state_file: Optional[str]):
    """
    Launch the interactive SQL workbench

    Examples:

        \b
        $ filequery shell ./data
    """
    from filequery.cli.shell import launch_shell

    launch_shell(initial_dir=directory, state_file=state_file, config=ctx.obj["config"])


if __name__ == "__main__":
    cli()
