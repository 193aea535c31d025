"""
Wander - Main Entry Point
Runs Wander scripts, single expressions and test documents from the command line
"""

import sys
import argparse
import logging
from typing import List, Optional

from error_handling import WanderError, describe_error
from harness import format_test_report, run_test_blocks
from interpreter import DEFAULT_MAX_DEPTH, create_interpreter
from parsing import create_debug_parser, create_parser, describe_token, pretty_print_ast
from values import render_value
from wander import __version__


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='wander',
      description='Wander - a small embeddable expression language',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.wander              # Evaluate a script and print its value
  %(prog)s -e 'Bool.not true'         # Evaluate an expression
  %(prog)s --test tests.wander        # Run a test document
  %(prog)s --parse script.wander      # Parse and show the AST
  %(prog)s --tokens script.wander     # Show the token stream
  %(prog)s --debug script.wander      # Run with debug logging
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Wander script file to evaluate'
  )

  parser.add_argument(
      '-e', '--eval',
      metavar='EXPR',
      help='Evaluate an expression given on the command line'
  )

  mode = parser.add_mutually_exclusive_group()

  mode.add_argument(
      '--test',
      action='store_true',
      help='Treat the script as a test document and report PASS/FAIL per block'
  )

  mode.add_argument(
      '--parse',
      action='store_true',
      help='Parse and show the AST (for debugging)'
  )

  mode.add_argument(
      '--tokens',
      action='store_true',
      help='Show the token stream (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug logging for all stages'
  )

  parser.add_argument(
      '--max-depth',
      type=int,
      default=DEFAULT_MAX_DEPTH,
      metavar='N',
      help='Maximum evaluation depth (default: limited only by the host call stack)'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=f'Wander v{__version__}'
  )

  return parser


def read_source(script_path: str) -> str:
  with open(script_path, 'r', encoding='utf-8') as f:
    return f.read()


def report_error(error: WanderError, source: Optional[str], where: str) -> None:
  print(f"Error in {where}:", file=sys.stderr)
  print(describe_error(error, source), file=sys.stderr)


# ============================================================================
# COMMANDS
# ============================================================================

def show_tokens(source: str, filename: str, debug: bool = False) -> int:
  """Print one token per line"""
  parser = create_debug_parser() if debug else create_parser()
  for token in parser.tokenize(source, filename):
    print(f"{token.span.start_line}:{token.span.start_col}\t{token.type}\t{describe_token(token)}")
  return 0


def show_ast(source: str, filename: str, debug: bool = False) -> int:
  """Print the parsed AST"""
  parser = create_debug_parser() if debug else create_parser()
  print(pretty_print_ast(parser.parse_string(source, filename)), end='')
  return 0


def run_source(source: str, filename: str, max_depth: Optional[int], debug: bool = False) -> int:
  """Evaluate an expression and print its rendered value"""
  interpreter = create_interpreter(max_depth=max_depth, debug=debug)
  value = interpreter.run(source, filename)
  print(render_value(value))
  return 0


def run_tests(source: str, filename: str, max_depth: Optional[int], debug: bool = False) -> int:
  """Run a test document; exit status 1 when any block fails"""
  interpreter = create_interpreter(max_depth=max_depth, debug=debug)
  document = interpreter.parser.parse_test_document(source, filename)
  results = run_test_blocks(document, interpreter.registry, max_depth)
  print(format_test_report(results, document.doc))
  return 0 if all(result.passed for result in results) else 1


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point for Wander"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if args.debug:
    logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

  if args.eval is not None:
    if args.script:
      arg_parser.error("give either a script or -e/--eval, not both")
    source, filename = args.eval, "<eval>"
  elif args.script:
    try:
      source, filename = read_source(args.script), args.script
    except FileNotFoundError:
      print(f"Error: Script file '{args.script}' not found", file=sys.stderr)
      return 1
    except PermissionError:
      print(f"Error: Permission denied reading '{args.script}'", file=sys.stderr)
      return 1
    except UnicodeDecodeError as e:
      print(f"Error: Cannot decode file '{args.script}': {e}", file=sys.stderr)
      print("  Hint: Make sure the file is a text file with UTF-8 encoding", file=sys.stderr)
      return 1
  else:
    arg_parser.print_help()
    return 2

  try:
    if args.tokens:
      return show_tokens(source, filename, args.debug)
    elif args.parse:
      return show_ast(source, filename, args.debug)
    elif args.test:
      return run_tests(source, filename, args.max_depth, args.debug)
    return run_source(source, filename, args.max_depth, args.debug)
  except WanderError as e:
    report_error(e, source, filename)
    return 1


if __name__ == "__main__":
  sys.exit(main())
