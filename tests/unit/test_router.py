"""
Unit tests for the subdomain router.
"""

import logging

import pytest

from hostgate.handlers import API_BODY, DEFAULT_BODY
from hostgate.http import HTTPStatus, ok
from hostgate.routing import (
    NOT_FOUND_BODY,
    EmptyHost,
    InvalidHeaderEncoding,
    MissingHost,
    SubdomainRouter,
)

from conftest import make_request


@pytest.fixture
def router() -> SubdomainRouter:
    return SubdomainRouter("example")


class TestHandle:
    """End-to-end routing decisions through handle()."""

    def test_bare_domain_gets_default(self, router):
        response = router.handle(make_request("example.com"))

        assert response.status == HTTPStatus.OK
        assert response.text == DEFAULT_BODY == "Default router\n"

    def test_www_gets_default(self, router):
        response = router.handle(make_request("www.example.com"))

        assert response.status == 200
        assert response.text == "Default router\n"

    def test_api_gets_api(self, router):
        response = router.handle(make_request("api.example.com"))

        assert response.status == 200
        assert response.text == API_BODY == "API router\n"

    def test_unknown_subdomain_is_404(self, router):
        response = router.handle(make_request("blog.example.com"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == NOT_FOUND_BODY == "Page not found | Invalid subdomain.\n"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"

    def test_missing_host_is_400(self, router):
        response = router.handle(make_request(None))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text.startswith("Bad Request | ")

    @pytest.mark.parametrize("host", ["", "bad\xff.example.com"])
    def test_unusable_host_is_400(self, router, host):
        assert router.handle(make_request(host)).status == 400

    @pytest.mark.parametrize("host,reason", [
        (None, "Missing Host header"),
        ("", "Host header is empty"),
        ("caf\xe9.example.com<script>", "Host header is not visible ASCII"),
    ])
    def test_400_body_is_a_fixed_reason(self, router, host, reason):
        response = router.handle(make_request(host))

        assert response.text == f"Bad Request | {reason}\n"

    def test_rejected_host_is_logged_not_echoed(self, router, caplog):
        host = "caf\xe9.example.com<script>"

        with caplog.at_level(logging.INFO, logger="hostgate.routing"):
            response = router.handle(make_request(host))

        assert "<script>" not in response.text
        assert "caf" not in response.text
        assert any("<script>" in r.getMessage() for r in caplog.records)

    @pytest.mark.parametrize("host", [
        "Api.example.com",      # case-sensitive
        "WWW.example.com",
        ".example.com",         # empty leftmost label
        "example:8080",         # port not stripped
        "localhost",
    ])
    def test_near_misses_are_404(self, router, host):
        assert router.handle(make_request(host)).status == 404

    def test_path_and_method_do_not_matter(self, router):
        for method, path in [("POST", "/x"), ("DELETE", "/a/b?c=d"), ("BREW", "*")]:
            response = router.handle(make_request("api.example.com", method=method, path=path))
            assert response.text == API_BODY


class TestDispatch:
    """dispatch() leaves Host errors to the caller."""

    def test_missing_host_raises(self, router):
        with pytest.raises(MissingHost):
            router.dispatch(make_request(None))

    def test_empty_host_raises(self, router):
        with pytest.raises(EmptyHost):
            router.dispatch(make_request(""))

    def test_bad_encoding_raises(self, router):
        with pytest.raises(InvalidHeaderEncoding):
            router.dispatch(make_request("\xe9.example.com"))

    def test_not_found_is_a_response(self, router):
        assert router.dispatch(make_request("x.example.com")).status == 404


class TestResolve:
    """Tests for the decision -> handler table."""

    def test_every_decision_is_covered(self, router):
        assert router.resolve(None) is router.default_handler
        assert router.resolve("www") is router.default_handler
        assert router.resolve("api") is router.api_handler
        for other in ("", "blog", "WWW", "Api", "api2", "www.api"):
            assert router.resolve(other) is None

    def test_custom_handlers(self):
        router = SubdomainRouter(
            "example",
            default_handler=lambda request: ok("home\n"),
            api_handler=lambda request: ok(f"upstream {request.path}\n"),
        )

        assert router.handle(make_request("example.com")).text == "home\n"
        assert router.handle(make_request("api.example.com", path="/v1")).text == "upstream /v1\n"
        assert router.handle(make_request("blog.example.com")).status == 404

    def test_repr(self, router):
        assert repr(router) == "<SubdomainRouter base_label='example'>"
