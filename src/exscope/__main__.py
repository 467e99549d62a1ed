"""CLI entry point: run `exscope file.ex` or `python -m exscope file.ex`."""

import sys
from pathlib import Path


def main(argv=None) -> int:
    import argparse
    import json
    import logging
    from .analysis.context_query import ContextQueryService, StaticDocIndex
    from .analysis.driver import AnalysisDriver
    from .shared.ast_visitor import to_quoted_string
    from .shared.errors import ErrorReporter
    from .utils.config import MAX_RECOVERY_ATTEMPTS
    from .utils.io_utils import read_source_file

    parser = argparse.ArgumentParser(
        prog="exscope",
        description="Print the lexical scope metadata of an Elixir (.ex/.exs) file as JSON.",
    )
    parser.add_argument("file", type=Path, help="Path to Elixir source file")
    parser.add_argument("--line", type=int, help="Print the context in effect on this line")
    parser.add_argument("--definition", nargs=2, metavar=("MODULE", "FUNCTION"),
                        help="Print the definition line of MODULE.FUNCTION")
    parser.add_argument("--fix", action="store_true",
                        help="Retry a failed parse with the broken line replaced by a marker")
    parser.add_argument("--max-fix-attempts", type=int, default=MAX_RECOVERY_ATTEMPTS,
                        help=f"Lines to replace before giving up (default: {MAX_RECOVERY_ATTEMPTS})")
    parser.add_argument("--doc-index", type=Path,
                        help="JSON file {module: [[function, arity, line], ...]} used for definitions missing from the file")
    parser.add_argument("--ast", action="store_true", help="Print the quoted form instead of metadata")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log analysis steps to stderr")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    driver = AnalysisDriver(max_recovery_attempts=args.max_fix_attempts)
    result = driver.parse_file(args.file, try_to_fix_parse_errors=args.fix)

    if not result.success:
        reporter = ErrorReporter({})
        reporter.report_exception(result.error)
        reporter.print_errors()
        return 1

    if args.ast:
        sys.stdout.write(to_quoted_string(result.ast) + "\n")
        return 0

    if args.line is None and args.definition is None:
        output = result.metadata.to_dict()
        output["recovered_lines"] = list(result.recovered_lines)
    else:
        doc_index = None
        if args.doc_index is not None:
            try:
                doc_index = StaticDocIndex.from_json(args.doc_index)
            except (OSError, ValueError) as e:
                sys.stderr.write(f"exscope: error: could not load doc index: {e}\n")
                return 1
        service = ContextQueryService(driver=driver, doc_index=doc_index)
        output = {}
        if args.line is not None:
            source = read_source_file(args.file)
            context = service.context_at(source, result.metadata, args.line)
            output["line"] = args.line
            output["context"] = context.to_dict()
        if args.definition is not None:
            module, function = args.definition
            output["definition"] = {
                "module": module,
                "function": function,
                "line": service.get_function_line(result.metadata, module, function),
            }

    sys.stdout.write(json.dumps(output, indent=2) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
