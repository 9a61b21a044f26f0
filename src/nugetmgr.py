"""nugetmgr - NuGet package version discovery and bulk unlist/deprecate tool.

    Returns:
        int: Exit code
"""
import logging
import sys

from constants import ExitCodes
from common.logging_utils import extra_context, is_debug_enabled
from args import parse_args
from cli_common import load_config, setup_logging


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)
    load_config(args)

    logger = logging.getLogger(__name__)
    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(
                event="function_entry",
                component="cli",
                action=args.action,
                target=args.PACKAGE,
            )
        )

    try:
        if args.action == "query":
            from cli_query import run_query  # pylint: disable=import-outside-toplevel
            run_query(args)
            sys.exit(ExitCodes.SUCCESS.value)

        from cli_mutate import exit_code_for, run_mutation  # pylint: disable=import-outside-toplevel
        outcome = run_mutation(args)
        sys.exit(exit_code_for(outcome))
    except ValueError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


if __name__ == "__main__":
    main()
