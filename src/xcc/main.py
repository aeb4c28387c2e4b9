"""Start an Xcode Cloud build from the command line."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence

from rich.console import Console

from .asc_client import AppStoreConnectClient
from .cli import parse_args
from .config import Config, load_config
from .errors import ApiError, AuthenticationError, ConfigurationError, NotFoundError, XccError
from .models import SourceType
from .prompt import TerminalChooser
from .selection import (
    Chooser,
    choose_source_type,
    reconcile_bundle_ids,
    select_git_reference,
    select_product,
    select_pull_request,
    select_workflow,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4
EXIT_NOT_FOUND = 5
EXIT_INTERRUPTED = 130


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG when ``verbose`` else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def start_build(
    config: Config,
    client: AppStoreConnectClient,
    chooser: Chooser,
    console: Console,
) -> str:
    """Run the selection pipeline and submit the build.

    Stages run strictly in order: product, workflow, repository and source
    type, git reference or pull request, submission. Spinners are only shown
    while waiting on the network, never while a prompt is open.

    Returns:
        Human-readable success message.
    """
    with console.status("Fetching products..."):
        bundle_ids = client.list_bundle_ids()
        products = reconcile_bundle_ids(client.list_products(), bundle_ids)
    product = select_product(products, chooser, config.product)
    logger.info("Selected product", extra={"product_id": product.id, "product_name": product.name})

    with console.status(f"Fetching workflows for {product.name}..."):
        workflows = client.list_workflows(product.id)
    workflow = select_workflow(workflows, chooser, config.workflow)
    logger.info("Selected workflow", extra={"workflow_id": workflow.id, "workflow_name": workflow.name})

    with console.status(f"Fetching repository for {workflow.name}..."):
        repository = client.get_repository(workflow.id)
        pull_requests = [] if config.reference is not None else client.list_pull_requests(repository.id)

    source_type = choose_source_type(
        chooser,
        pull_requests,
        reference=config.reference,
        pull_request=config.pull_request,
    )

    if source_type is SourceType.GIT_REFERENCE:
        with console.status(f"Fetching branches and tags of {repository.display_name}..."):
            references = client.list_git_references(repository.id)
        reference = select_git_reference(references, chooser, config.reference)
        source_description = reference.display_name
        with console.status("Starting build..."):
            build_run = client.create_build_run(workflow.id, git_reference_id=reference.id)
    else:
        pull_request = select_pull_request(pull_requests, chooser, config.pull_request)
        source_description = f"pull request {pull_request.display_name}"
        with console.status("Starting build..."):
            build_run = client.create_build_run(workflow.id, pull_request_id=pull_request.id)

    message = f"Started '{workflow.name}' for {product.name} on {source_description}."
    if build_run is not None and build_run.number is not None:
        message += f" Build number: {build_run.number}."
    return message


def orchestrate_build(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, start a build and map failures to exit codes."""
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)

        config = load_config(
            issuer_id=args.issuer_id,
            private_key_id=args.private_key_id,
            private_key=args.private_key,
            product=args.product,
            workflow=args.workflow,
            reference=args.reference,
            pull_request=args.pull_request,
        )
        client = AppStoreConnectClient(credentials=config.credentials)
        console = Console(stderr=True)
        message = start_build(config, client, TerminalChooser(console), console)
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except AuthenticationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION
    except ApiError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_API
    except NotFoundError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except XccError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except Exception as exc:
        logger.exception("Unexpected failure while starting build")
        print(f"ERROR: Unexpected failure: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED

    print(message)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    return orchestrate_build(argv)


if __name__ == "__main__":
    raise SystemExit(main())
