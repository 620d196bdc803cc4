"""Main module entrypoint for local runtime execution.

This module validates startup configuration and either launches the FastAPI
service or runs one aggregate recompute command.
"""

import argparse
import logging

import uvicorn

from stock_ledger.bootstrap import bootstrap_create_application, bootstrap_create_services
from stock_ledger.config import config_load_settings

logger = logging.getLogger(__name__)


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Returns:
        None: This function does not return a runtime value.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with code 1 when a recompute command fails.
    """

    argument_parser = argparse.ArgumentParser(description="Stock position ledger runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", "recompute", "recompute-all"),
        help="Runtime command: `api` starts server, `recompute` replays one instrument, "
        "`recompute-all` replays every instrument",
        type=str,
    )
    argument_parser.add_argument(
        "--instrument-id",
        dest="instrument_id",
        type=int,
        help="Instrument identifier for `recompute`",
    )
    parsed_arguments = argument_parser.parse_args()

    if parsed_arguments.command == "recompute":
        if parsed_arguments.instrument_id is None:
            argument_parser.error("--instrument-id is required for `recompute`")
        services = bootstrap_create_services()
        try:
            aggregate = services.recompute_service.ledger_recompute_instrument(parsed_arguments.instrument_id)
        except (LookupError, ValueError, RuntimeError) as error:
            logger.error("Recompute failed instrument_id=%s: %s", parsed_arguments.instrument_id, error)
            raise SystemExit(1) from error
        print(
            f"instrument_id={aggregate.instrument_id} total_shares={aggregate.total_shares} "
            f"total_invested={aggregate.total_invested} average_cost={aggregate.average_cost} "
            f"realized_profit={aggregate.realized_profit}"
        )
        return

    if parsed_arguments.command == "recompute-all":
        services = bootstrap_create_services()
        recompute_result = services.recompute_service.ledger_recompute_all()
        print(f"succeeded={recompute_result.succeeded} failed={len(recompute_result.errors)}")
        for error in recompute_result.errors:
            print(f"RECOMPUTE_FAILED: instrument_id={error.instrument_id} {error.message}")
        if recompute_result.errors:
            raise SystemExit(1)
        return

    settings = config_load_settings()
    application = bootstrap_create_application(settings)
    uvicorn.run(
        application,
        host=settings.application_host,
        port=settings.application_port,
    )


if __name__ == "__main__":
    main()
