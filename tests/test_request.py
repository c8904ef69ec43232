"""Tests for request construction and validation."""

import pytest

from sails_client.errors import SailsError, SailsValidationError
from sails_client.request import build_request, normalize_url
from sails_client.types import RequestMethod


class TestNormalizeUrl:
    def test_trailing_slash_and_spaces(self):
        assert normalize_url("/foo/  ") == "/foo"

    def test_already_clean(self):
        assert normalize_url("/foo") == "/foo"

    def test_multiple_slashes(self):
        assert normalize_url("/foo///") == "/foo"

    def test_mixed_run(self):
        assert normalize_url("/foo/ / \t\n") == "/foo"

    def test_root_kept(self):
        assert normalize_url("/") == "/"

    def test_inner_slashes_kept(self):
        assert normalize_url("/user/3/pets/") == "/user/3/pets"

    def test_empty(self):
        assert normalize_url("") == ""


class TestBuildRequest:
    def test_defaults(self):
        req = build_request("get", "/items")
        assert req.method is RequestMethod.GET
        assert req.url == "/items"
        assert req.data == {}
        assert req.headers == {}
        assert req.callback is None

    def test_callback_in_data_position(self):
        def cb(*args):
            pass

        req = build_request("get", "/items", cb)
        assert req.callback is cb
        assert req.data == {}

    def test_data_and_callback(self):
        def cb(*args):
            pass

        req = build_request("post", "/items", {"name": "a"}, cb)
        assert req.data == {"name": "a"}
        assert req.callback is cb

    def test_headers(self):
        req = build_request("put", "/items/1", headers={"x-csrf": "t"})
        assert req.headers == {"x-csrf": "t"}

    def test_enum_method(self):
        req = build_request(RequestMethod.DELETE, "/items/1")
        assert req.method is RequestMethod.DELETE

    def test_method_case_insensitive(self):
        assert build_request("GET", "/a").method is RequestMethod.GET

    def test_url_normalized(self):
        assert build_request("get", "/foo/  ").url == "/foo"

    @pytest.mark.parametrize("url", [None, 42, {"url": "/a"}, b"/a"])
    def test_non_string_url_rejected(self, url):
        with pytest.raises(SailsValidationError, match="Invalid or missing URL"):
            build_request("get", url)

    def test_usage_in_message(self):
        with pytest.raises(SailsValidationError) as info:
            build_request("post", None)
        assert "socket.post(" in str(info.value)

    def test_unknown_method_rejected(self):
        with pytest.raises(SailsValidationError, match="Unknown request method"):
            build_request("patch", "/a")

    def test_validation_error_hierarchy(self):
        with pytest.raises(SailsError):
            build_request("get", None)
        with pytest.raises(ValueError):
            build_request("get", None)
