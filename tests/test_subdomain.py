"""Tests for subdomain validation"""

import pytest

from app.core.subdomain import validate_subdomain


@pytest.mark.parametrize("subdomain", [
    "my-shop-1",
    "acme-jewelry",
    "abc",
    "a1b",
    "x" * 63,
    "123",
])
def test_valid_subdomains(subdomain):
    assert validate_subdomain(subdomain) is True


@pytest.mark.parametrize("subdomain", [
    "ab",             # too short
    "x" * 64,         # too long
    "-abc",           # leading hyphen
    "abc-",           # trailing hyphen
    "My-Shop",        # uppercase
    "my_shop",        # underscore
    "my.shop",        # dot
    "my shop",        # space
    "abc\n",          # trailing newline
    "",
])
def test_invalid_subdomains(subdomain):
    assert validate_subdomain(subdomain) is False


@pytest.mark.parametrize("subdomain", [
    "www", "api", "admin", "app", "mail", "ftp", "localhost", "staging", "test",
])
def test_reserved_subdomains_rejected(subdomain):
    assert validate_subdomain(subdomain) is False


def test_custom_reserved_list():
    assert validate_subdomain("shop", reserved=["shop"]) is False
    assert validate_subdomain("www", reserved=[]) is True


def test_non_string_rejected():
    assert validate_subdomain(None) is False
