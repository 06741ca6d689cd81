#!/usr/bin/env python3
"""
CLI for the Choco interpreter.

Usage:
    python -m choco FILE [--diagnostics-json] [--recursion-limit N] [-v]
    python -m choco -c SOURCE
    python -m choco FILE --tokens
    python -m choco FILE --ast

Examples:
    # Run a script
    python -m choco examples/fizzbuzz.choco

    # Run a one-liner
    python -m choco -c 'for i in 0..3 { puts "i = #{i}" }'

    # Show what the lexer and parser see
    python -m choco examples/factorial.choco --tokens
    python -m choco examples/factorial.choco --ast

Exit status is 0 whenever the program was run, whatever happened at
runtime. It is 1 for a missing or unreadable file and for an unterminated
string literal.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .runtime.interpreter import DEFAULT_RECURSION_LIMIT


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='choco',
        description='Run a Choco script',
    )
    parser.add_argument('file', nargs='?', help='Choco source file')
    parser.add_argument('-c', '--command', metavar='SOURCE',
                        help='Run SOURCE instead of a file')
    parser.add_argument('--tokens', action='store_true',
                        help='Print the token stream and exit')
    parser.add_argument('--ast', action='store_true',
                        help='Print the parsed statement tree and exit')
    parser.add_argument('--diagnostics-json', action='store_true',
                        help='Print diagnostics as JSON on stderr after the run')
    parser.add_argument('--recursion-limit', type=int, metavar='N', default=DEFAULT_RECURSION_LIMIT,
                        help='Python recursion limit while the script runs (default: %(default)s)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def read_source(args, parser: argparse.ArgumentParser):
    """Return (source, filename), or None after reporting why there is none."""
    if args.command is not None:
        return args.command, '<command>'

    if args.file is None:
        parser.print_usage(sys.stderr)
        return None

    source_path = Path(args.file)
    try:
        return source_path.read_text(encoding='utf-8'), str(source_path)
    except (OSError, UnicodeDecodeError):
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None


def print_diagnostics_json(diagnostics) -> None:
    from .errors import DiagnosticCollector

    collector = DiagnosticCollector()
    for diagnostic in diagnostics:
        collector.add(diagnostic)
    print(json.dumps(collector.to_json(), indent=2), file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    from .lexer import Lexer
    from .parser import parse
    from .ast import format_tree
    from .errors import LexerError
    from .runtime import Interpreter

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format='%(name)s: %(levelname)s: %(message)s',
        )

    loaded = read_source(args, parser)
    if loaded is None:
        return 1
    source, filename = loaded

    lexer = Lexer(source, filename)
    try:
        tokens = lexer.tokenize()
    except LexerError as e:
        if e.diagnostic.source_line is None:
            e.diagnostic.source_line = lexer.get_source_line(e.diagnostic.span.start.line)
        if args.diagnostics_json:
            print_diagnostics_json([e.diagnostic])
        else:
            print(e.diagnostic.format(), file=sys.stderr)
        return 1

    if args.tokens:
        for token in tokens:
            print(f"{token.span.start}\t{token}")
        for diagnostic in lexer.diagnostics:
            print(diagnostic.format(), file=sys.stderr)
        return 0

    program = parse(tokens, filename, source)
    program.diagnostics[:0] = lexer.diagnostics.diagnostics

    if args.ast:
        print(format_tree(program))
        for diagnostic in program.diagnostics:
            print(diagnostic.format(), file=sys.stderr)
        return 0

    interpreter = Interpreter(
        output=sys.stdout,
        error_output=None if args.diagnostics_json else sys.stderr,
        recursion_limit=args.recursion_limit,
    )
    result = interpreter.run(program, source)

    if args.diagnostics_json:
        print_diagnostics_json(result.diagnostics)

    return 0


if __name__ == '__main__':
    sys.exit(main())
