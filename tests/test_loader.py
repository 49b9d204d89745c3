"""
Fragment reader tests.

Covers extension filtering, merge ordering, concatenation and read failures.
"""

import pytest

from mailway_config.config.loader import (
    Fragment,
    FragmentReader,
    by_name,
    concatenate,
    is_fragment_name,
)
from mailway_config.errors import ConfigIOError, ErrorCode


class TestFragmentSelection:
    """Only .yml/.yaml regular files directly in conf.d are fragments."""

    def test_filters_by_extension(self, config_dir, write_yaml):
        """Other extensions and temp files are ignored."""
        write_yaml("a.yml", "port_auth: 1\n")
        write_yaml("b.yaml", "port_maildb: 2\n")
        write_yaml("notes.txt", "port_auth: 3\n")
        write_yaml(".instance.yml-x1.tmp", "port_auth: 4\n")
        write_yaml("c.yml.bak", "port_auth: 5\n")

        names = [f.name for f in FragmentReader(config_dir).read_fragments()]

        assert names == ["a.yml", "b.yaml"]

    def test_ignores_subdirectories(self, config_dir, write_yaml):
        """Directories, even with a fragment extension, are not recursed into."""
        write_yaml("a.yml", "port_auth: 1\n")
        nested = config_dir / "nested.yml"
        nested.mkdir()
        (nested / "inner.yml").write_text("port_auth: 2\n")

        fragments = FragmentReader(config_dir).read_fragments()

        assert [f.name for f in fragments] == ["a.yml"]

    def test_extension_match_is_case_sensitive(self):
        """Only lowercase extensions are recognized."""
        assert is_fragment_name("x.yml")
        assert is_fragment_name("x.yaml")
        assert not is_fragment_name("x.YML")
        assert not is_fragment_name("yml")

    def test_empty_directory(self, config_dir):
        """An empty conf.d yields no fragments and an empty stream."""
        reader = FragmentReader(config_dir)

        assert reader.read_fragments() == []
        assert reader.read_all() == b""


class TestFragmentOrdering:
    """Fragments are read in a deterministic order."""

    def test_default_order_is_by_name(self, config_dir, write_yaml):
        """Files are sorted by name regardless of creation order."""
        write_yaml("b.yml", "port_auth: 2\n")
        write_yaml("a.yml", "port_auth: 1\n")
        write_yaml("c.yml", "port_auth: 3\n")

        names = [f.name for f in FragmentReader(config_dir).read_fragments()]

        assert names == ["a.yml", "b.yml", "c.yml"]

    def test_custom_ordering(self, config_dir, write_yaml):
        """A custom ordering callable decides the merge order."""
        write_yaml("a.yml", "port_auth: 1\n")
        write_yaml("b.yml", "port_auth: 2\n")

        reader = FragmentReader(config_dir, ordering=lambda entries: list(reversed(by_name(entries))))

        assert [f.name for f in reader.read_fragments()] == ["b.yml", "a.yml"]


class TestConcatenation:
    """Fragments are joined into one decodable stream."""

    def test_raw_bytes_joined_in_order(self, config_dir, write_yaml):
        """Bytes are concatenated without separators when lines are aligned."""
        write_yaml("a.yml", "port_auth: 1\n")
        write_yaml("b.yml", "port_maildb: 2\n")

        assert FragmentReader(config_dir).read_all() == b"port_auth: 1\nport_maildb: 2\n"

    def test_missing_trailing_newline_is_aligned(self, tmp_path):
        """A fragment without a trailing newline does not swallow the next key."""
        fragments = [
            Fragment(name="a.yml", path=tmp_path / "a.yml", content=b"port_auth: 1"),
            Fragment(name="b.yml", path=tmp_path / "b.yml", content=b"port_maildb: 2\n"),
        ]

        assert concatenate(fragments) == b"port_auth: 1\nport_maildb: 2\n"

    def test_empty_fragment_adds_nothing(self, tmp_path):
        """Empty files contribute no bytes."""
        fragments = [
            Fragment(name="a.yml", path=tmp_path / "a.yml", content=b""),
            Fragment(name="b.yml", path=tmp_path / "b.yml", content=b"port_maildb: 2\n"),
        ]

        assert concatenate(fragments) == b"port_maildb: 2\n"

    def test_byte_order_marks_are_dropped(self, tmp_path):
        """Each fragment's leading UTF-8 BOM is removed before joining."""
        fragments = [
            Fragment(name="a.yml", path=tmp_path / "a.yml", content=b"\xef\xbb\xbfport_auth: 1\n"),
            Fragment(name="b.yml", path=tmp_path / "b.yml", content=b"\xef\xbb\xbfport_maildb: 2"),
        ]

        assert concatenate(fragments) == b"port_auth: 1\nport_maildb: 2\n"

    def test_fragment_extension(self, tmp_path):
        """Fragment exposes its extension."""
        fragment = Fragment(name="dkim.yaml", path=tmp_path / "dkim.yaml", content=b"")

        assert fragment.extension == ".yaml"


class TestReadFailures:
    """Unreadable directories surface as ConfigIOError."""

    def test_missing_directory(self, temp_root):
        """A missing conf.d is DIRECTORY_NOT_FOUND."""
        reader = FragmentReader(temp_root / "does-not-exist")

        with pytest.raises(ConfigIOError) as exc_info:
            reader.read_fragments()

        assert exc_info.value.code == ErrorCode.DIRECTORY_NOT_FOUND
        assert "does-not-exist" in exc_info.value.context["path"]

    def test_path_is_a_file(self, config_dir, write_yaml):
        """Listing a regular file fails with FILE_READ_ERROR."""
        path = write_yaml("a.yml", "port_auth: 1\n")

        with pytest.raises(ConfigIOError) as exc_info:
            FragmentReader(path).read_fragments()

        assert exc_info.value.code == ErrorCode.FILE_READ_ERROR
