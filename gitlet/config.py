# config.py -- Reading and writing gitlet config files
# Copyright (C) 2026 The Gitlet Authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# Gitlet is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Reading and writing gitlet configuration files.

The file format is the git-config one::

    [remote "origin"]
        url = /srv/repos/project

Section and variable names are case-insensitive; subsection names are
case-sensitive. Keys and values are bytes.
"""

__all__ = [
    "Config",
    "ConfigDict",
    "ConfigFile",
    "Section",
]

import os
from collections.abc import Iterator
from typing import IO

from .file import open_locked

Section = tuple[bytes, ...]
SectionLike = Section | bytes | str
NameLike = bytes | str
ValueLike = bytes | str


def _to_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def _normalize_section(section: SectionLike) -> Section:
    if not isinstance(section, tuple):
        section = (section,)
    if len(section) == 2:
        return (_to_bytes(section[0]).lower(), _to_bytes(section[1]))
    return (_to_bytes(section[0]).lower(),)


class Config:
    """A gitlet configuration."""

    def get(self, section: SectionLike, name: NameLike) -> bytes:
        """Retrieve the contents of a configuration setting.

        Args:
          section: Tuple with section name and optional subsection name
          name: Variable name
        Returns:
          Contents of the setting
        Raises:
          KeyError: if the value is not set
        """
        raise NotImplementedError(self.get)

    def get_boolean(
        self, section: SectionLike, name: NameLike, default: bool | None = None
    ) -> bool | None:
        """Retrieve a configuration setting as boolean.

        Returns:
          Contents of the setting, or default if it is not set
        Raises:
          ValueError: if the setting is not a boolean
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        if value.lower() in (b"true", b"yes", b"on", b"1"):
            return True
        elif value.lower() in (b"false", b"no", b"off", b"0"):
            return False
        raise ValueError(f"not a valid boolean string: {value!r}")

    def set(self, section: SectionLike, name: NameLike, value: ValueLike | bool) -> None:
        """Set a configuration value."""
        raise NotImplementedError(self.set)

    def sections(self) -> Iterator[Section]:
        """Iterate over the sections."""
        raise NotImplementedError(self.sections)

    def has_section(self, name: SectionLike) -> bool:
        """Check if a specified section exists."""
        return _normalize_section(name) in list(self.sections())


class ConfigDict(Config):
    """Gitlet configuration stored in a dictionary."""

    def __init__(self) -> None:
        # section -> lowercased name -> (name as written, value)
        self._values: dict[Section, dict[bytes, tuple[bytes, bytes]]] = {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._values!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ConfigDict) and other._values == self._values

    def get(self, section: SectionLike, name: NameLike) -> bytes:
        try:
            return self._values[_normalize_section(section)][_to_bytes(name).lower()][1]
        except KeyError:
            raise KeyError(name) from None

    def set(self, section: SectionLike, name: NameLike, value: ValueLike | bool) -> None:
        name = _to_bytes(name)
        if isinstance(value, bool):
            value = b"true" if value else b"false"
        self._values.setdefault(_normalize_section(section), {})[name.lower()] = (
            name,
            _to_bytes(value),
        )

    def items(self, section: SectionLike) -> Iterator[tuple[bytes, bytes]]:
        """Iterate over the (name, value) pairs of a section."""
        return iter(self._values.get(_normalize_section(section), {}).values())

    def sections(self) -> Iterator[Section]:
        return iter(self._values)

    def subsections(self, section: NameLike) -> list[bytes]:
        """Return the subsection names of a section, e.g. all remote names."""
        section = _to_bytes(section).lower()
        return [s[1] for s in self._values if len(s) == 2 and s[0] == section]


def _format_string(value: bytes) -> bytes:
    if (
        value.startswith((b" ", b"\t"))
        or value.endswith((b" ", b"\t"))
        or b"#" in value
        or b";" in value
    ):
        return b'"' + _escape_value(value) + b'"'
    return _escape_value(value)


_ESCAPE_TABLE = {
    ord(b"\\"): ord(b"\\"),
    ord(b'"'): ord(b'"'),
    ord(b"n"): ord(b"\n"),
    ord(b"t"): ord(b"\t"),
    ord(b"b"): ord(b"\b"),
}
_COMMENT_CHARS = [ord(b"#"), ord(b";")]
_WHITESPACE_CHARS = [ord(b"\t"), ord(b" ")]


def _parse_string(value: bytes) -> bytes:
    value_array = bytearray(value.strip())
    ret = bytearray()
    whitespace = bytearray()
    in_quotes = False
    i = 0
    while i < len(value_array):
        c = value_array[i]
        if c == ord(b"\\"):
            i += 1
            if i >= len(value_array):
                raise ValueError("escape character at end of value")
            try:
                v = _ESCAPE_TABLE[value_array[i]]
            except KeyError as exc:
                raise ValueError(
                    f"escape character followed by unknown character "
                    f"{value_array[i]!r} at {i!r} in {value!r}"
                ) from exc
            if whitespace:
                ret.extend(whitespace)
                whitespace = bytearray()
            ret.append(v)
        elif c == ord(b'"'):
            in_quotes = not in_quotes
        elif c in _COMMENT_CHARS and not in_quotes:
            # the rest of the line is a comment
            break
        elif c in _WHITESPACE_CHARS and not in_quotes:
            whitespace.append(c)
        else:
            if whitespace:
                ret.extend(whitespace)
                whitespace = bytearray()
            ret.append(c)
        i += 1

    if in_quotes:
        raise ValueError("missing end quote")

    return bytes(ret)


def _escape_value(value: bytes) -> bytes:
    """Escape a value."""
    value = value.replace(b"\\", b"\\\\")
    value = value.replace(b"\n", b"\\n")
    value = value.replace(b"\t", b"\\t")
    value = value.replace(b'"', b'\\"')
    return value


def _check_variable_name(name: bytes) -> bool:
    for i in range(len(name)):
        c = name[i : i + 1]
        if not c.isalnum() and c != b"-":
            return False
    return bool(name)


def _check_section_name(name: bytes) -> bool:
    for i in range(len(name)):
        c = name[i : i + 1]
        if not c.isalnum() and c not in (b"-", b"."):
            return False
    return bool(name)


def _strip_comments(line: bytes) -> bytes:
    string_open = False
    for i, character in enumerate(bytearray(line)):
        # Comment characters outside balanced quotes denote comment start
        if character == ord(b'"'):
            string_open = not string_open
        elif not string_open and character in _COMMENT_CHARS:
            return line[:i]
    return line


def _parse_section_header_line(line: bytes) -> tuple[Section, bytes]:
    # Parse section header ("[bla]")
    line = _strip_comments(line).rstrip()
    in_quotes = False
    escaped = False
    for i, c in enumerate(line):
        if escaped:
            escaped = False
            continue
        if c == ord(b'"'):
            in_quotes = not in_quotes
        if c == ord(b"\\"):
            escaped = True
        if c == ord(b"]") and not in_quotes:
            last = i
            break
    else:
        raise ValueError("expected trailing ]")
    pts = line[1:last].split(b" ", 1)
    line = line[last + 1 :]
    section: Section
    if len(pts) == 2:
        if pts[1][:1] != b'"' or pts[1][-1:] != b'"' or len(pts[1]) < 2:
            raise ValueError(f"Invalid subsection {pts[1]!r}")
        if not _check_section_name(pts[0]):
            raise ValueError(f"invalid section name {pts[0]!r}")
        section = (pts[0], pts[1][1:-1].replace(b'\\"', b'"').replace(b"\\\\", b"\\"))
    else:
        if not _check_section_name(pts[0]):
            raise ValueError(f"invalid section name {pts[0]!r}")
        pts = pts[0].split(b".", 1)
        if len(pts) == 2:
            section = (pts[0], pts[1])
        else:
            section = (pts[0],)
    return section, line


class ConfigFile(ConfigDict):
    """A gitlet configuration file, like .gitlet/config."""

    def __init__(self) -> None:
        super().__init__()
        self.path: str | None = None

    @classmethod
    def from_file(cls, f: IO[bytes]) -> "ConfigFile":
        """Read configuration from a file-like object.

        Raises:
          ValueError: if the file is not valid configuration syntax
        """
        ret = cls()
        section: Section | None = None
        for lineno, line in enumerate(f.readlines()):
            if lineno == 0 and line.startswith(b"\xef\xbb\xbf"):
                line = line[3:]
            line = line.lstrip()
            if line[:1] == b"[":
                section, line = _parse_section_header_line(line)
                ret._values.setdefault(_normalize_section(section), {})
            if _strip_comments(line).strip() == b"":
                continue
            if section is None:
                raise ValueError(f"setting {line!r} without section")
            try:
                setting, value = line.split(b"=", 1)
            except ValueError:
                setting = line
                value = b"true"
            setting = setting.strip()
            if not _check_variable_name(setting):
                raise ValueError(f"invalid variable name {setting!r}")
            ret.set(section, setting, _parse_string(value))
        return ret

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> "ConfigFile":
        """Read configuration from a file on disk."""
        with open_locked(path, "rb") as f:
            ret = cls.from_file(f)
        ret.path = os.fspath(path)
        return ret

    def write_to_path(self, path: str | os.PathLike[str] | None = None) -> None:
        """Write configuration to a file on disk."""
        if path is None:
            if self.path is None:
                raise ValueError("No path specified and no default path available")
            path = self.path
        with open_locked(path, "wb") as f:
            self.write_to_file(f)

    def write_to_file(self, f: IO[bytes]) -> None:
        """Write configuration to a file-like object."""
        for section, values in self._values.items():
            if len(section) == 2:
                subsection = section[1].replace(b"\\", b"\\\\").replace(b'"', b'\\"')
                f.write(b"[" + section[0] + b' "' + subsection + b'"]\n')
            else:
                f.write(b"[" + section[0] + b"]\n")
            for key, value in values.values():
                f.write(b"\t" + key + b" = " + _format_string(value) + b"\n")
