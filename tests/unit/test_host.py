"""
Unit tests for Host header parsing.
"""

import pytest

from hostgate.routing.host import (
    EmptyHost,
    HostError,
    InvalidHeaderEncoding,
    MissingHost,
    decode_host,
    extract_subdomain,
)

from conftest import make_request


class TestExtractSubdomain:
    """Tests for extract_subdomain()."""

    @pytest.mark.parametrize("host,expected", [
        ("example.com", None),
        ("www.example.com", "www"),
        ("api.example.com", "api"),
        ("blog.example.com", "blog"),
        ("example", None),
        ("a.b.c.example.com", "a"),
    ])
    def test_leftmost_label(self, host, expected):
        assert extract_subdomain(make_request(host), "example") == expected

    def test_port_is_part_of_label(self):
        # "example:8080" is one label and does not equal "example"
        assert extract_subdomain(make_request("example:8080"), "example") == "example:8080"
        assert extract_subdomain(make_request("api.example.com:8080"), "example") == "api"

    def test_case_sensitive(self):
        assert extract_subdomain(make_request("Example.com"), "example") == "Example"
        assert extract_subdomain(make_request("API.example.com"), "example") == "API"

    def test_leading_dot_gives_empty_label(self):
        assert extract_subdomain(make_request(".example.com"), "example") == ""

    def test_ip_literal(self):
        assert extract_subdomain(make_request("127.0.0.1"), "example") == "127"

    def test_base_label_is_configurable(self):
        assert extract_subdomain(make_request("localhost:3000"), "localhost:3000") is None
        assert extract_subdomain(make_request("api.localhost"), "localhost") == "api"

    @pytest.mark.parametrize("host", ["example.com", "api.example.com", "x", "a.b"])
    def test_repeatable(self, host):
        request = make_request(host)
        assert extract_subdomain(request, "example") == extract_subdomain(request, "example")

    def test_missing_host(self):
        with pytest.raises(MissingHost):
            extract_subdomain(make_request(None), "example")

    def test_empty_host(self):
        with pytest.raises(EmptyHost):
            extract_subdomain(make_request(""), "example")

    @pytest.mark.parametrize("host", [
        "café.example.com",             # Latin-1 byte 0xE9
        "Ã©.example.com",          # UTF-8 bytes seen as ISO-8859-1
        "api\x00.example.com",
        "api\x7f.example.com",
    ])
    def test_non_ascii_host(self, host):
        with pytest.raises(InvalidHeaderEncoding) as exc_info:
            extract_subdomain(make_request(host), "example")
        assert exc_info.value.value == host

    def test_errors_are_bad_requests(self):
        for error in (MissingHost(), EmptyHost(), InvalidHeaderEncoding("\xff")):
            assert isinstance(error, HostError)
            assert error.status_code == 400


class TestDecodeHost:
    """Tests for decode_host()."""

    def test_visible_ascii_and_tab_pass(self):
        assert decode_host(make_request("a b\tc.example")) == "a b\tc.example"

    def test_missing(self):
        with pytest.raises(MissingHost):
            decode_host(make_request(None))
