"""Tests for Content-Type classification."""

import pytest

from robyn_essentials.forms.content_type import (
    classify_content_type,
    is_json_content_type,
    media_type,
    media_type_options,
)
from robyn_essentials.models.core import ContentKind


class TestClassifyContentType:
    """Tests for classify_content_type."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("application/x-www-form-urlencoded", ContentKind.URL_ENCODED),
            ("application/x-www-form-urlencoded; charset=utf-8", ContentKind.URL_ENCODED),
            ("multipart/form-data; boundary=abc", ContentKind.MULTIPART),
            ("Multipart/Form-Data; boundary=abc", ContentKind.MULTIPART),
            ("application/json", ContentKind.JSON),
            ("application/json; charset=utf-8", ContentKind.JSON),
            ("text/plain", ContentKind.UNSUPPORTED),
            ("multipart/mixed; boundary=abc", ContentKind.UNSUPPORTED),
        ],
    )
    def test_classifies_on_mime_type_only(self, value, expected) -> None:
        """Verify parameters are ignored and only the MIME type decides."""
        assert classify_content_type(value) is expected

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_header_is_unsupported(self, value) -> None:
        """Verify an absent header never classifies as a form or JSON."""
        assert classify_content_type(value) is ContentKind.UNSUPPORTED


class TestJsonGate:
    """Tests for is_json_content_type."""

    def test_substring_match(self) -> None:
        assert is_json_content_type("application/json")
        assert is_json_content_type("application/json; charset=utf-8")

    def test_rejects_other_types(self) -> None:
        assert not is_json_content_type("text/plain")
        assert not is_json_content_type(None)


class TestMediaTypeHelpers:
    """Tests for media_type and media_type_options."""

    def test_media_type_strips_parameters(self) -> None:
        assert media_type("Text/HTML; charset=latin-1") == "text/html"

    def test_options_expose_boundary_and_charset(self) -> None:
        options = media_type_options('multipart/form-data; boundary="xyz"; charset=utf-8')
        assert options == {"boundary": "xyz", "charset": "utf-8"}

    def test_options_empty_without_parameters(self) -> None:
        assert media_type_options("application/json") == {}
        assert media_type_options(None) == {}
