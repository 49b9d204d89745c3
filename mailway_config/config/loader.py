"""
Fragment reader for the conf.d directory.

Lists the directory, keeps regular files with a .yml/.yaml extension, reads
them in a stable order and concatenates their bytes into one stream that the
merger decodes as a single YAML document.
"""

import codecs
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import ConfigIOError, ErrorCode

FRAGMENT_EXTENSIONS = (".yml", ".yaml")


@dataclass(frozen=True)
class Fragment:
    """One configuration file read from conf.d."""

    name: str
    path: Path
    content: bytes

    @property
    def extension(self) -> str:
        return self.path.suffix


def by_name(entries: List[os.DirEntry]) -> List[os.DirEntry]:
    """Order fragments by file name; later names override earlier ones."""
    return sorted(entries, key=lambda entry: entry.name)


def listing_order(entries: List[os.DirEntry]) -> List[os.DirEntry]:
    """Keep the order reported by the filesystem (platform dependent)."""
    return list(entries)


def is_fragment_name(name: str) -> bool:
    """Check if a file name has a recognized fragment extension."""
    return os.path.splitext(name)[1] in FRAGMENT_EXTENSIONS


def concatenate(fragments: List[Fragment]) -> bytes:
    """
    Join fragment bytes into one decodable stream.

    A leading UTF-8 byte order mark is dropped from each fragment, and a
    newline is inserted after a fragment that lacks a trailing one, so the
    next fragment's first key still starts a line.
    """
    parts = []
    for fragment in fragments:
        content = fragment.content
        if content.startswith(codecs.BOM_UTF8):
            content = content[len(codecs.BOM_UTF8):]
        parts.append(content)
        if content and not content.endswith(b"\n"):
            parts.append(b"\n")
    return b"".join(parts)


class FragmentReader:
    """Reads configuration fragments from a directory."""

    def __init__(
        self,
        config_dir: Path,
        ordering: Optional[Callable[[List[os.DirEntry]], List[os.DirEntry]]] = None
    ):
        """
        Initialize fragment reader.

        Args:
            config_dir: Directory holding the fragments (<root>/conf.d)
            ordering: Callable ordering matched directory entries, defaults to by_name
        """
        self.config_dir = Path(config_dir)
        self.ordering = ordering or by_name

    def read_fragments(self) -> List[Fragment]:
        """
        Read every fragment in merge order.

        Returns:
            List of Fragment objects, earliest first

        Raises:
            ConfigIOError: If the directory cannot be listed or a fragment cannot be read
        """
        try:
            with os.scandir(self.config_dir) as it:
                entries = [
                    entry for entry in it
                    if is_fragment_name(entry.name) and entry.is_file()
                ]
        except FileNotFoundError as e:
            raise ConfigIOError(
                str(self.config_dir), e.strerror or str(e), code=ErrorCode.DIRECTORY_NOT_FOUND
            ) from e
        except OSError as e:
            raise ConfigIOError(str(self.config_dir), e.strerror or str(e)) from e

        fragments = []
        for entry in self.ordering(entries):
            path = Path(entry.path)
            try:
                content = path.read_bytes()
            except OSError as e:
                raise ConfigIOError(str(path), e.strerror or str(e)) from e
            fragments.append(Fragment(name=entry.name, path=path, content=content))

        return fragments

    def read_all(self) -> bytes:
        """
        Read and concatenate every fragment.

        Raises:
            ConfigIOError: If the directory or a fragment cannot be read
        """
        return concatenate(self.read_fragments())
