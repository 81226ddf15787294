from __future__ import annotations

import logging
import sys

import click

from stacklang import __version__
from stacklang.engine import Engine, with_std
from stacklang.errors import StackError
from stacklang.interpreter import Program
from stacklang.reader.lexer import Source

REPL_COMMAND_PREFIX = ":"


def format_stack(stack) -> str:
    return "stack:" + "".join(f" {item:#}" for item in stack)


def _report(exc: StackError, program: Program) -> None:
    click.echo(f"error: {exc}", err=True)
    click.echo(format_stack(program.stack), err=True)


def run_source(program: Program, source: Source) -> bool:
    """Evaluate one unit and print the stack. Returns False on failure."""
    try:
        program.eval_source(source)
    except StackError as exc:
        _report(exc, program)
        return False
    click.echo(format_stack(program.stack))
    return True


@click.group(invoke_without_command=True)
@click.option('--journal', '-j', is_flag=True, help='Record a journal of stack snapshots.')
@click.option('--journal-length', type=click.IntRange(min=0), default=None,
              help='Snapshots kept in the journal (implies --journal, default 20).')
@click.option('--enable-scope', is_flag=True, help='Register the scope module without an import.')
@click.option('--verbose', '-v', default=0, count=True, help='Log to stderr (-vv for VM steps).')
@click.version_option(__version__, prog_name='stack')
@click.pass_context
def main(ctx: click.Context, journal: bool, journal_length: int | None, enable_scope: bool, verbose: int):
    """Run stack programs. Starts a REPL when no command is given."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG if verbose > 1 else logging.INFO, stream=sys.stderr)
    engine = Engine()
    if enable_scope:
        with_std(engine, 'scope')
    ctx.obj = Program(engine, journal=journal or journal_length is not None, journal_length=journal_length)
    if ctx.invoked_subcommand is None:
        ctx.invoke(repl)


@main.command()
@click.pass_obj
def repl(program: Program):
    """Interactive session; lines starting with ':' are commands (:exit, :clear, :reset)."""
    click.echo('stack - type :exit or Ctrl+D to leave.')
    while True:
        try:
            line = input('> ')
        except (KeyboardInterrupt, EOFError):
            click.echo('')
            break
        command = line.strip()
        if not command:
            continue
        if command.startswith(REPL_COMMAND_PREFIX):
            if command == ':exit':
                break
            elif command == ':clear':
                click.clear()
            elif command == ':reset':
                program.reset()
                click.echo(format_stack(program.stack))
            else:
                click.echo(f'error: unknown command {command}', err=True)
            continue
        run_source(program, Source('<repl>', line))


@main.command()
@click.pass_obj
def stdin(program: Program):
    """Evaluate standard input."""
    source = Source('<stdin>', click.get_text_stream('stdin').read())
    if not run_source(program, source):
        sys.exit(1)


main.add_command(stdin, name='-')


@main.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def run(program: Program, path: str):
    """Evaluate the file at PATH."""
    if not run_source(program, Source.from_path(path)):
        sys.exit(1)


if __name__ == "__main__":
    main()
