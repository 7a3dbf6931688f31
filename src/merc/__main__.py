#!/usr/bin/env python3
"""
CLI for the merc interpreter.

Usage:
    python -m merc                          # interactive REPL
    python -m merc -f FILE.merc             # run a file
    python -m merc -f FILE.merc --tokenize  # print the token stream
    python -m merc -f FILE.merc --parse     # print each statement's AST

Examples:
    # Show tokens with their positions
    python -m merc -f examples/fib.merc -t

    # Show S-expressions, stopping at the first syntax error
    python -m merc -f examples/fib.merc -p

    # Run with debug logging
    MERC_LOG_LEVEL=DEBUG python -m merc -f examples/fib.merc -i
"""

import argparse
import logging
import os
import sys
from pathlib import Path


def read_source(path: Path) -> str:
    """Read a source file, raising OSError with a readable message."""
    try:
        return path.read_text()
    except OSError as e:
        raise OSError(f"Failed to read file: {path} ({e.strerror})") from e


def cmd_tokenize(args):
    """Print every token of a file, one per line."""
    from .lexer import Lexer
    from .errors import LexerError

    try:
        source = read_source(Path(args.filename))
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        for token in Lexer(source, args.filename):
            print(token)
    except LexerError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def cmd_parse(args):
    """Print the S-expression of every statement, stopping at the first error."""
    from .parser import Parser
    from .errors import DiagnosticError

    try:
        source = read_source(Path(args.filename))
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        for statement in Parser(source, args.filename):
            print(statement)
    except DiagnosticError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def cmd_interpret(args):
    """Run a file, reporting each failed statement and carrying on."""
    from .repl import format_error
    from .runtime import execute

    try:
        source = read_source(Path(args.filename))
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    color = sys.stderr.isatty()
    result = execute(
        source,
        filename=args.filename,
        report=lambda e: print(format_error(e, color=color), file=sys.stderr),
    )
    return 0 if result.success else 1


def cmd_repl(args):
    """Start the interactive REPL."""
    from .repl import Repl

    Repl().run()
    return 0


def configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name}")
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m merc',
        description='merc interpreter',
    )
    parser.add_argument('-f', '--filename', metavar='FILE',
                        help='Source file to process')

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('-t', '--tokenize', action='store_true',
                      help='Print the tokens of FILE')
    mode.add_argument('-p', '--parse', action='store_true',
                      help='Print the AST of each statement in FILE')
    mode.add_argument('-i', '--interpret', action='store_true',
                      help='Run FILE (the default when a file is given)')

    parser.add_argument('--log-level',
                        default=os.environ.get('MERC_LOG_LEVEL', 'WARNING'),
                        help='Logging level (default: $MERC_LOG_LEVEL or WARNING)')

    args = parser.parse_args(argv)

    try:
        configure_logging(args.log_level)
    except ValueError as e:
        parser.error(str(e))

    if args.filename is None:
        if args.tokenize or args.parse or args.interpret:
            parser.error('a source file is required (-f FILE)')
        return cmd_repl(args)

    if args.tokenize:
        return cmd_tokenize(args)
    elif args.parse:
        return cmd_parse(args)
    else:
        return cmd_interpret(args)


if __name__ == '__main__':
    sys.exit(main())
