#!/usr/bin/env python3
"""
CLI for the buddy interpreter.

Usage:
    python -m buddy run FILE.bud
    python -m buddy check FILE.bud
    python -m buddy debug FILE.bud
    python -m buddy cyclo FILE.bud
    python -m buddy repl

Examples:
    # Run a script with extra module search paths from a config file
    python -m buddy --config buddy.yaml run scripts/report.bud

    # Parse and run the analysis passes, printing every diagnostic
    python -m buddy check scripts/report.bud

    # Dump the AST
    python -m buddy debug scripts/report.bud

    # Cyclomatic complexity of the script body and each function
    python -m buddy cyclo scripts/report.bud
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

from .config import ConfigError, InterpreterConfig, load_config
from .errors import BuddyError

logger = logging.getLogger("buddy")


def _read_source(path_str: str) -> Tuple[Optional[Path], Optional[str]]:
    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None, None
    try:
        return source_path, source_path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None, None


def cmd_run(args, config: InterpreterConfig):
    """Run a buddy script."""
    from .runtime import Interpreter

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    result = Interpreter(config).run(source, str(source_path))
    if result.error is not None:
        print(result.error_message, file=sys.stderr)
        return 1
    if args.print_result and result.value is not None:
        print(result.value.display())
    return result.exit_code


def cmd_check(args, config: InterpreterConfig):
    """Parse a script and run the analysis passes."""
    from .analysis import analyze
    from .parser import parse

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        script = parse(source, str(source_path))
    except BuddyError as e:
        print(str(e), file=sys.stderr)
        return 1

    result = analyze(script, source=source)
    for diag in result.diagnostics:
        print(diag.format())

    if result.has_errors:
        print(f"Check failed with {len(result.errors)} error(s)")
        return 1

    print(f"OK: {source_path.name} - {len(script.functions)} function(s), "
          f"{len(script.statements)} statement(s)")
    if result.warnings:
        print(f"  {len(result.warnings)} warning(s)")
    return 0


def cmd_debug(args, config: InterpreterConfig):
    """Print the AST of a script."""
    from .ast import format_ast
    from .parser import parse

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        script = parse(source, str(source_path))
    except BuddyError as e:
        print(str(e), file=sys.stderr)
        return 1

    print(format_ast(script))
    return 0


def cmd_cyclo(args, config: InterpreterConfig):
    """Print the cyclomatic complexity of the script and each function."""
    from .analysis import complexity_table
    from .parser import parse

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        script = parse(source, str(source_path))
    except BuddyError as e:
        print(str(e), file=sys.stderr)
        return 1

    for name, value in complexity_table(script).items():
        print(f"{value:>4}  {name}")
    return 0


def cmd_repl(args, config: InterpreterConfig):
    """Start an interactive session."""
    from .repl import Repl
    from .runtime import Interpreter

    return Repl(Interpreter(config)).loop()


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m buddy',
        description='buddy scripting language interpreter',
    )
    parser.add_argument('-c', '--config', metavar='FILE',
                        help='YAML configuration file (default: $BUDDY_CONFIG or ./buddy.yaml)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # run command
    run_parser = subparsers.add_parser('run', help='Run a script')
    run_parser.add_argument('file', help='buddy source file')
    run_parser.add_argument('-p', '--print-result', action='store_true',
                            help='Print the value of the last statement')

    # check command
    check_parser = subparsers.add_parser('check', help='Check a script for errors')
    check_parser.add_argument('file', help='buddy source file')

    # debug command
    debug_parser = subparsers.add_parser('debug', help='Print the AST of a script')
    debug_parser.add_argument('file', help='buddy source file')

    # cyclo command
    cyclo_parser = subparsers.add_parser('cyclo', help='Print cyclomatic complexity')
    cyclo_parser.add_argument('file', help='buddy source file')

    # repl command
    subparsers.add_parser('repl', help='Start an interactive session')

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logger.debug("configuration: %s", config.to_dict())

    if args.action == 'run':
        return cmd_run(args, config)
    elif args.action == 'check':
        return cmd_check(args, config)
    elif args.action == 'debug':
        return cmd_debug(args, config)
    elif args.action == 'cyclo':
        return cmd_cyclo(args, config)
    elif args.action == 'repl':
        return cmd_repl(args, config)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
