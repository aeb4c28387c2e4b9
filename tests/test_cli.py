"""Tests for command-line argument parsing."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from xcc.cli import parse_args


def test_parse_args_with_all_arguments():
    """Verify CLI parsing keeps every credential and filter option."""
    args = parse_args(
        [
            "--issuer-id",
            "issuer",
            "--private-key-id",
            "KEY123",
            "--private-key",
            "pem-body",
            "--product",
            "MyApp",
            "--workflow",
            "Release",
            "--reference",
            "main",
            "--verbose",
        ]
    )

    assert args.issuer_id == "issuer"
    assert args.private_key_id == "KEY123"
    assert args.private_key == "pem-body"
    assert args.product == "MyApp"
    assert args.workflow == "Release"
    assert args.reference == "main"
    assert args.pull_request is None
    assert args.verbose is True


def test_parse_args_defaults_to_none_so_environment_can_fill_in():
    """Verify omitted options are None rather than empty strings."""
    args = parse_args([])

    assert args.issuer_id is None
    assert args.private_key_id is None
    assert args.private_key is None
    assert args.product is None
    assert args.workflow is None
    assert args.reference is None
    assert args.pull_request is None
    assert args.verbose is False


def test_parse_args_pull_request_number_is_parsed_as_int():
    """Verify --pull-request is converted to an integer."""
    args = parse_args(["--pull-request", "42"])

    assert args.pull_request == 42


def test_parse_args_with_reference_and_pull_request_fails():
    """Verify a reference and a pull request cannot be combined."""
    with pytest.raises(SystemExit):
        parse_args(["--reference", "main", "--pull-request", "3"])


@pytest.mark.parametrize("value", ["0", "-1", "abc"])
def test_parse_args_with_invalid_pull_request_fails_validation(value):
    """Verify CLI parsing exits with an error when --pull-request is not a positive integer."""
    with pytest.raises(SystemExit):
        parse_args(["--pull-request", value])


def test_parse_args_uses_sys_argv_when_no_argv_given(monkeypatch):
    """Verify CLI parsing falls back to sys.argv."""
    monkeypatch.setattr(sys, "argv", ["xcc", "--workflow", "Nightly"])

    args = parse_args()

    assert args.workflow == "Nightly"
