"""Selection logic for narrowing API results down to one build source.

Each stage either matches an explicit value from the command line or asks the
user through a :class:`Chooser`. Nothing here performs network I/O.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Protocol, Sequence, TypeVar

from .errors import NotFoundError
from .models import BundleId, GitReference, Product, PullRequest, SourceType, Workflow

logger = logging.getLogger(__name__)

T = TypeVar("T")
V = TypeVar("V")


class Chooser(Protocol):
    """Anything that can ask the user to pick one of several options."""

    def choose(self, title: str, options: Sequence[str]) -> Optional[int]:
        """Return the index of the picked option, or ``None`` when nothing was picked."""
        ...


def reconcile_bundle_ids(products: List[Product], bundle_ids: List[BundleId]) -> List[Product]:
    """Replace internal bundle-id record ids on products with public identifiers.

    The product's bundle-id relationship sometimes carries the id of the
    bundle-id record rather than ``com.example.app``. Products whose value does
    not match a record id are returned unchanged, in the original order, which
    makes this safe to apply more than once.
    """
    identifiers: Dict[str, str] = {bundle_id.id: bundle_id.identifier for bundle_id in bundle_ids}

    reconciled: List[Product] = []
    for product in products:
        identifier = identifiers.get(product.bundle_id) if product.bundle_id else None
        if identifier is not None and identifier != product.bundle_id:
            logger.debug(
                "Resolved product bundle id",
                extra={"product_id": product.id, "record_id": product.bundle_id, "identifier": identifier},
            )
            product = replace(product, bundle_id=identifier)
        reconciled.append(product)

    return reconciled


def _not_found_message(kind: str, value: Optional[object], displays: List[str]) -> str:
    if value is None:
        head = f"No {kind} was selected."
    else:
        head = f"Could not find {kind} '{value}'."

    if not displays:
        return f"{head} No {kind}s are available."
    return f"{head} Available {kind}s:\n" + "\n".join(f"  - {display}" for display in displays)


def select(
    kind: str,
    candidates: Sequence[T],
    chooser: Chooser,
    describe: Callable[[T], str],
    matches: Callable[[T, V], bool],
    value: Optional[V] = None,
) -> T:
    """Pick one candidate by explicit value or interactively.

    With ``value`` the first candidate for which ``matches`` holds wins.
    Without it every candidate is offered through ``chooser``.

    Raises:
        NotFoundError: If no candidate matches ``value``, the list is empty,
            or the chooser returned nothing. The message lists every candidate.
    """
    displays = [describe(candidate) for candidate in candidates]

    if value is not None:
        for candidate in candidates:
            if matches(candidate, value):
                return candidate
        raise NotFoundError(_not_found_message(kind, value, displays))

    index = chooser.choose(f"Select a {kind}", displays) if candidates else None
    if index is None or not 0 <= index < len(candidates):
        raise NotFoundError(_not_found_message(kind, None, displays))
    return candidates[index]


def select_product(products: Sequence[Product], chooser: Chooser, name: Optional[str] = None) -> Product:
    return select(
        "product",
        products,
        chooser,
        describe=lambda product: product.display_name,
        matches=lambda product, wanted: product.name == wanted,
        value=name,
    )


def select_workflow(workflows: Sequence[Workflow], chooser: Chooser, name: Optional[str] = None) -> Workflow:
    return select(
        "workflow",
        workflows,
        chooser,
        describe=lambda workflow: workflow.display_name,
        matches=lambda workflow, wanted: workflow.name == wanted,
        value=name,
    )


def select_git_reference(
    references: Sequence[GitReference],
    chooser: Chooser,
    name: Optional[str] = None,
) -> GitReference:
    return select(
        "git reference",
        references,
        chooser,
        describe=lambda reference: reference.display_name,
        matches=lambda reference, wanted: reference.name == wanted,
        value=name,
    )


def select_pull_request(
    pull_requests: Sequence[PullRequest],
    chooser: Chooser,
    number: Optional[int] = None,
) -> PullRequest:
    return select(
        "pull request",
        pull_requests,
        chooser,
        describe=lambda pull_request: pull_request.display_name,
        matches=lambda pull_request, wanted: pull_request.number == wanted,
        value=number,
    )


def choose_source_type(
    chooser: Chooser,
    pull_requests: Sequence[PullRequest],
    reference: Optional[str] = None,
    pull_request: Optional[int] = None,
) -> SourceType:
    """Decide whether to build a git reference or a pull request.

    Explicit values win, a repository without pull requests always builds a
    reference, and only otherwise is the user asked.

    Raises:
        NotFoundError: If the user was asked and picked nothing.
    """
    if reference is not None:
        return SourceType.GIT_REFERENCE
    if pull_request is not None:
        return SourceType.PULL_REQUEST
    if not pull_requests:
        return SourceType.GIT_REFERENCE

    options = [SourceType.GIT_REFERENCE, SourceType.PULL_REQUEST]
    index = chooser.choose("Select a source type", [option.value for option in options])
    if index is None or not 0 <= index < len(options):
        raise NotFoundError(_not_found_message("source type", None, [option.value for option in options]))
    return options[index]
