"""Tests for text/binary classification and checksums."""

import base64
import hashlib
from pathlib import Path

import pytest

from pyspwig.dev.classifier import (
    ChangeClassifier,
    calculate_checksum,
    is_binary_path,
    normalize_path,
)
from pyspwig.models import Encoding


@pytest.fixture
def classifier():
    return ChangeClassifier()


class TestEncodingSelection:
    """Encoding depends on the extension only."""

    @pytest.mark.parametrize(
        "path",
        ["logo.png", "img/hero.JPG", "fonts/inter.woff2", "favicon.ico", "a.gif"],
    )
    def test_binary_extensions(self, classifier, path):
        assert classifier.encoding_for(path) is Encoding.BASE64
        assert is_binary_path(path)

    @pytest.mark.parametrize(
        "path", ["manifest.json", "assets/theme.css", "templates/home.html", "README"]
    )
    def test_text_extensions(self, classifier, path):
        assert classifier.encoding_for(path) is Encoding.UTF8
        assert not is_binary_path(path)

    def test_png_with_text_content_is_still_base64(self, classifier):
        """Test that content is never sniffed."""
        change = classifier.classify("notes.png", b"plain ascii text")
        assert change.encoding is Encoding.BASE64
        assert change.content == base64.b64encode(b"plain ascii text").decode()

    def test_text_file_with_binary_content_is_still_utf8(self, classifier):
        change = classifier.classify("data.txt", b"\xff\xfe\x00")
        assert change.encoding is Encoding.UTF8
        assert change.checksum == hashlib.sha256(b"\xff\xfe\x00").hexdigest()


class TestChecksum:
    """Checksums cover the raw bytes."""

    def test_checksum_is_sha256_of_raw_bytes(self):
        assert calculate_checksum(b"abc") == hashlib.sha256(b"abc").hexdigest()

    def test_checksum_independent_of_encoding(self, classifier):
        """Test that the same bytes give the same checksum as text or binary."""
        raw = b"body { color: red; }"
        as_text = classifier.classify("theme.css", raw)
        as_binary = classifier.classify("theme.png", raw)
        assert as_text.checksum == as_binary.checksum == calculate_checksum(raw)

    def test_checksum_stable_across_calls(self, classifier):
        raw = "héllo".encode("utf-8")
        first = classifier.classify("a.html", raw)
        second = classifier.classify("a.html", raw)
        assert first.checksum == second.checksum
        assert first.content == "héllo"


class TestNormalizePath:
    def test_forward_slashes(self, tmp_path):
        nested = tmp_path / "assets" / "css" / "theme.css"
        assert normalize_path(nested, tmp_path) == "assets/css/theme.css"

    def test_string_arguments(self):
        assert normalize_path("/theme/a/b.js", "/theme") == "a/b.js"

    def test_path_outside_root(self):
        with pytest.raises(ValueError):
            normalize_path(Path("/elsewhere/x"), Path("/theme"))
