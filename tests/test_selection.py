"""Tests for product/workflow/source selection logic."""

import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from xcc.errors import NotFoundError
from xcc.models import BundleId, GitReference, Product, PullRequest, ReferenceKind, SourceType, Workflow
from xcc.selection import (
    choose_source_type,
    reconcile_bundle_ids,
    select_git_reference,
    select_product,
    select_pull_request,
    select_workflow,
)


def _chooser(index=None):
    chooser = Mock()
    chooser.choose.return_value = index
    return chooser


def _products():
    return [
        Product(id="p1", name="MyApp", bundle_id="B1"),
        Product(id="p2", name="Widget", bundle_id="com.example.widget"),
        Product(id="p3", name="Tools", bundle_id=None),
    ]


def _bundle_ids():
    return [
        BundleId(id="B1", identifier="com.example.myapp"),
        BundleId(id="B9", identifier="com.example.unused"),
    ]


def test_reconcile_bundle_ids_replaces_record_ids_and_keeps_order():
    """Verify record ids are patched with identifiers while others are untouched."""
    reconciled = reconcile_bundle_ids(_products(), _bundle_ids())

    assert [product.id for product in reconciled] == ["p1", "p2", "p3"]
    assert [product.bundle_id for product in reconciled] == [
        "com.example.myapp",
        "com.example.widget",
        None,
    ]


def test_reconcile_bundle_ids_is_idempotent():
    """Verify re-running reconciliation produces no further changes."""
    once = reconcile_bundle_ids(_products(), _bundle_ids())
    twice = reconcile_bundle_ids(once, _bundle_ids())

    assert twice == once


def test_reconcile_bundle_ids_does_not_mutate_input():
    """Verify the input product list is left as fetched."""
    products = _products()

    reconcile_bundle_ids(products, _bundle_ids())

    assert products[0].bundle_id == "B1"


def test_select_product_by_name_skips_prompt():
    """Verify an explicit product name is matched exactly without asking."""
    chooser = _chooser()

    product = select_product(_products(), chooser, "Widget")

    assert product.id == "p2"
    chooser.choose.assert_not_called()


def test_select_product_returns_first_exact_match():
    """Verify duplicates resolve to the first candidate in server order."""
    products = [Product(id="a", name="Dup"), Product(id="b", name="Dup")]

    assert select_product(products, _chooser(), "Dup").id == "a"


def test_select_product_not_found_lists_every_candidate():
    """Verify the not-found error enumerates every product."""
    with pytest.raises(NotFoundError) as exc_info:
        select_product(_products(), _chooser(), "Missing")

    message = str(exc_info.value)
    assert "Could not find product 'Missing'" in message
    for name in ("MyApp", "Widget", "Tools"):
        assert name in message


def test_select_product_match_is_case_sensitive():
    """Verify matching is exact."""
    with pytest.raises(NotFoundError):
        select_product(_products(), _chooser(), "myapp")


def test_select_workflow_prompts_with_display_names():
    """Verify the chooser receives every workflow and its pick is returned."""
    workflows = [Workflow(id="w1", name="Release"), Workflow(id="w2", name="Nightly")]
    chooser = _chooser(1)

    workflow = select_workflow(workflows, chooser)

    chooser.choose.assert_called_once_with("Select a workflow", ["Release", "Nightly"])
    assert workflow.id == "w2"


def test_select_workflow_without_candidates_fails_without_prompt():
    """Verify an empty candidate list fails and does not open the chooser."""
    chooser = _chooser(0)

    with pytest.raises(NotFoundError) as exc_info:
        select_workflow([], chooser)

    chooser.choose.assert_not_called()
    assert "No workflows are available" in str(exc_info.value)


def test_select_workflow_when_chooser_returns_nothing_fails():
    """Verify an aborted prompt is reported as nothing selected."""
    workflows = [Workflow(id="w1", name="Release")]

    with pytest.raises(NotFoundError) as exc_info:
        select_workflow(workflows, _chooser(None))

    assert "No workflow was selected" in str(exc_info.value)
    assert "Release" in str(exc_info.value)


def test_select_git_reference_matches_name_and_describes_kind():
    """Verify references match by name and show their kind in prompts."""
    references = [
        GitReference(id="g1", name="main", kind=ReferenceKind.BRANCH),
        GitReference(id="g2", name="v1.0", kind=ReferenceKind.TAG),
    ]
    chooser = _chooser(1)

    assert select_git_reference(references, chooser, "main").id == "g1"
    assert select_git_reference(references, chooser).id == "g2"
    chooser.choose.assert_called_once_with("Select a git reference", ["main (branch)", "v1.0 (tag)"])


def test_select_pull_request_matches_number():
    """Verify pull requests are matched by number rather than title."""
    pull_requests = [
        PullRequest(id="pr1", number=7, title="Seven"),
        PullRequest(id="pr2", number=8, title="Eight"),
    ]

    assert select_pull_request(pull_requests, _chooser(), 8).id == "pr2"
    with pytest.raises(NotFoundError) as exc_info:
        select_pull_request(pull_requests, _chooser(), 9)
    assert "#7 Seven" in str(exc_info.value)
    assert "#8 Eight" in str(exc_info.value)


def test_choose_source_type_explicit_reference():
    chooser = _chooser()

    assert choose_source_type(chooser, [Mock()], reference="main") is SourceType.GIT_REFERENCE
    chooser.choose.assert_not_called()


def test_choose_source_type_explicit_pull_request():
    chooser = _chooser()

    assert choose_source_type(chooser, [], pull_request=4) is SourceType.PULL_REQUEST
    chooser.choose.assert_not_called()


def test_choose_source_type_without_pull_requests_defaults_to_reference():
    """Verify a repository without pull requests never prompts."""
    chooser = _chooser(1)

    assert choose_source_type(chooser, []) is SourceType.GIT_REFERENCE
    chooser.choose.assert_not_called()


def test_choose_source_type_prompts_when_pull_requests_exist():
    """Verify the user is asked when both kinds of source are possible."""
    chooser = _chooser(1)

    result = choose_source_type(chooser, [PullRequest(id="pr1", number=1, title="One")])

    assert result is SourceType.PULL_REQUEST
    chooser.choose.assert_called_once_with("Select a source type", ["Git Reference", "Pull Request"])


def test_choose_source_type_aborted_prompt_fails():
    with pytest.raises(NotFoundError):
        choose_source_type(_chooser(None), [PullRequest(id="pr1", number=1, title="One")])


def test_select_workflow_marks_disabled_workflows_but_matches_by_name():
    """Verify disabled workflows are labelled in prompts and still selectable by name."""
    workflows = [Workflow(id="w1", name="Release", is_enabled=False), Workflow(id="w2", name="Nightly")]
    chooser = _chooser(0)

    assert select_workflow(workflows, chooser, "Release").id == "w1"
    assert select_workflow(workflows, chooser).id == "w1"
    chooser.choose.assert_called_once_with("Select a workflow", ["Release (disabled)", "Nightly"])
