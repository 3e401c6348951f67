"""Tests for import-root normalization."""

import os
import string

import pytest
from hypothesis import given
from hypothesis import strategies as st

from component_preview.core.exceptions import PathResolutionError
from component_preview.execution.classpath import ClasspathResolver, resolve_classpath

segment_strategy = st.text(
    alphabet=string.ascii_letters + string.digits + "_-",
    min_size=1,
    max_size=12,
).filter(lambda s: s not in {".", ".."})
segments_strategy = st.lists(segment_strategy, min_size=1, max_size=5)
entry_strategy = st.lists(segment_strategy, min_size=0, max_size=3)


class TestNormalizeProperties:
    """Property-based tests for descriptor normalization."""

    @given(segments=segments_strategy, entry=entry_strategy)
    def test_prefixed_and_bare_posix_forms_match(self, segments, entry):
        bare = "/" + "/".join(segments) + ".whl"
        prefixed = "jar://" + bare + "!/" + "/".join(entry)
        resolver = ClasspathResolver(windows=False)

        assert resolver.normalize(prefixed) == resolver.normalize(bare)

    @given(segments=segments_strategy, entry=entry_strategy, drive=st.sampled_from("CDz"))
    def test_prefixed_and_bare_windows_forms_match(self, segments, entry, drive):
        bare = f"{drive}:\\" + "\\".join(segments) + ".zip"
        prefixed = f"jar:///{drive}:/" + "/".join(segments) + ".zip!/" + "/".join(entry)
        resolver = ClasspathResolver(windows=True)

        assert resolver.normalize(prefixed) == resolver.normalize(bare)

    @given(descriptors=st.lists(segments_strategy, min_size=1, max_size=6))
    def test_resolution_is_idempotent(self, descriptors):
        paths = ["jar:///" + "/".join(segments) + "!/pkg/mod.py" for segments in descriptors]
        resolver = ClasspathResolver(windows=False)

        first = resolver.resolve(paths)
        second = resolver.resolve(first.entries)

        assert second.entries == first.entries
        assert second.classpath == first.classpath


def test_truncates_at_separator_with_entry_path():
    resolver = ClasspathResolver(windows=False)
    assert resolver.normalize("jar:///opt/libs/lib.whl!/markup/x.py") == "/opt/libs/lib.whl"


def test_truncates_at_separator_without_entry_path():
    resolver = ClasspathResolver(windows=False)
    assert resolver.normalize("jrt:///opt/toolchain!module.name") == "/opt/toolchain"


def test_truncates_at_first_separator_only():
    resolver = ClasspathResolver(windows=False)
    assert resolver.normalize("/opt/a.zip!/inner.zip!/x") == "/opt/a.zip"


def test_file_protocol_is_stripped():
    resolver = ClasspathResolver(windows=False)
    assert resolver.normalize("file:///home/me/project/src") == "/home/me/project/src"


def test_windows_drive_with_leading_slash_becomes_native():
    resolver = ClasspathResolver(windows=True)
    assert resolver.normalize("/C:/Users/me/project/src") == "C:\\Users\\me\\project\\src"


def test_single_letter_drive_is_not_taken_for_protocol():
    resolver = ClasspathResolver(windows=True)
    assert resolver.normalize("C://Users/me") == "C:\\Users\\me"


def test_relative_descriptor_becomes_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    resolver = ClasspathResolver(windows=False)
    assert resolver.normalize("libs/a.zip") == os.path.join(str(tmp_path), "libs", "a.zip")


def test_resolve_deduplicates_preserving_first_seen_order():
    result = resolve_classpath(
        [
            "/b/out",
            "jar:///a/lib.whl!/x/y.py",
            "/b/out/",
            "/a/lib.whl",
            "jar:///c/other.zip!/",
        ],
        windows=False,
    )

    assert result.entries == ("/b/out", "/a/lib.whl", "/c/other.zip")
    assert result.classpath == "/b/out:/a/lib.whl:/c/other.zip"


def test_resolve_joins_with_windows_separator():
    result = resolve_classpath(["/C:/a", "/D:/b.zip!/x"], windows=True)
    assert result.classpath == "C:\\a;D:\\b.zip"


def test_missing_entries_are_passed_through(tmp_path):
    existing = tmp_path / "exists"
    existing.mkdir()
    missing = tmp_path / "missing.zip"

    result = ClasspathResolver().resolve([str(existing), str(missing)])

    assert result.entries == (str(existing), str(missing))
    assert result.missing == (str(missing),)


@pytest.mark.parametrize("descriptor", ["", "   ", "jar://", "!/x.py"])
def test_empty_descriptor_is_rejected(descriptor):
    with pytest.raises(PathResolutionError):
        ClasspathResolver(windows=False).normalize(descriptor)
