"""Assertion helper tests."""

from __future__ import annotations

import socket

import pytest

from node_harness.assertions import (
    assert_ends_with,
    assert_matches,
    find_free_port,
    to_millis,
)


def test_assert_ends_with():
    assert_ends_with("SubstratumNode.log", ".log")

    with pytest.raises(AssertionError, match="'node.db' did not end with '.log'"):
        assert_ends_with("node.db", ".log")


def test_assert_matches():
    assert_matches("listening on 127.0.0.1:80", r"\d+\.\d+\.\d+\.\d+:\d+")

    with pytest.raises(AssertionError, match="was not matched by"):
        assert_matches("no address here", r"\d+:\d+")


def test_to_millis():
    assert to_millis(1.2345) == 1234
    assert to_millis(0) == 0


def test_find_free_port_is_bindable():
    port = find_free_port()

    assert 0 < port < 65536
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", port))
