"""Tests for the handshake query augmentation."""

from sails_client.constants import SDK_LANGUAGE, SDK_PLATFORM, SDK_VERSION
from sails_client.transport import ConnectionHandle, Transport, with_sdk_metadata

from .conftest import FakeConnection, FakeTransport

METADATA = (
    f"__sails_io_sdk_version={SDK_VERSION}"
    f"&__sails_io_sdk_platform={SDK_PLATFORM}"
    f"&__sails_io_sdk_language={SDK_LANGUAGE}"
)


class TestSdkMetadata:
    def test_no_query(self):
        assert with_sdk_metadata()["query"] == METADATA

    def test_appended_to_caller_query(self):
        opts = with_sdk_metadata({"query": "token=abc"})
        assert opts["query"] == f"token=abc&{METADATA}"

    def test_non_string_query_replaced(self):
        opts = with_sdk_metadata({"query": None})
        assert opts["query"] == METADATA

    def test_input_not_mutated(self):
        original = {"query": "a=1", "headers": {"h": "v"}}
        opts = with_sdk_metadata(original)
        assert original["query"] == "a=1"
        assert opts["headers"] == {"h": "v"}

    def test_language_is_python(self):
        assert "__sails_io_sdk_language=python" in with_sdk_metadata()["query"]


class TestProtocols:
    def test_fakes_satisfy_protocols(self):
        assert isinstance(FakeTransport(), Transport)
        assert isinstance(FakeConnection("ws://x", {}), ConnectionHandle)
