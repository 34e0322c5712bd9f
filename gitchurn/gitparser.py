# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import re
from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple

from gitchurn import ir
from gitchurn.errors import MalformedPatchText

ENCODING = "UTF-8"

STR_DIFF = "diff --git "
STR_NEW_FILE = "new file mode"
STR_DEL_FILE = "deleted file mode"
STR_FROM = "--- "
STR_TO = "+++ "
STR_SRC_PREFIX = "a/"
STR_DST_PREFIX = "b/"
STR_DEV_NULL = "/dev/null"
STR_HUNK = "@@ -"
STR_NO_NEWLINE = "\\"

RE_HUNK = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
RE_IDENT = re.compile(r"^(.*?) ?<([^>]*)> (\d+)(?: ([+-]\d{4}))?$")
RE_BLAME = re.compile(r"^([0-9a-f]{40,64}) (\d+) (\d+)(?: (\d+))?$")

# Wide enough that git emits each file as a single hunk spanning the whole file.
FULL_CONTEXT = 1 << 24

GIT_DIFF_ARGS = [
    "--no-color",
    "--no-ext-diff",
    "--no-textconv",
    # Added and deleted files are reported as such, never as renames.
    "--no-renames",
    "--ignore-submodules",
    # Pin the prefixes so user configuration cannot change them.
    "--src-prefix=" + STR_SRC_PREFIX,
    "--dst-prefix=" + STR_DST_PREFIX,
    # Show every unchanged line so the chunks cover the whole file.
    "--unified={}".format(FULL_CONTEXT),
]

_LINE_KINDS = {
    " ": ir.ChunkKind.EQUAL,
    "+": ir.ChunkKind.INSERT,
    "-": ir.ChunkKind.DELETE,
}


def unquote(path: str) -> str:
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    raw = path[1:-1].encode(ENCODING).decode("unicode_escape")
    return raw.encode("latin-1").decode(ENCODING, errors="replace")


def strip_prefix(path: str, prefix: str) -> Optional[str]:
    path = unquote(path.rstrip("\t"))
    if path == STR_DEV_NULL:
        return None
    if not path.startswith(prefix):
        raise MalformedPatchText("Path `{}` lacks prefix `{}`.".format(path, prefix))
    return path[len(prefix) :]


def parse_diff_header(line: str) -> Tuple[Optional[str], Optional[str]]:
    rest = line[len(STR_DIFF) :]
    # The header is only unambiguous when both sides name the same file.
    if rest.startswith('"'):
        end = rest.find('" ', 1)
        if end < 0:
            return None, None
        a, b = rest[: end + 1], rest[end + 2 :]
        return strip_prefix(a, STR_SRC_PREFIX), strip_prefix(b, STR_DST_PREFIX)
    middle = (len(rest) - 1) // 2
    a, b = rest[:middle], rest[middle + 1 :]
    if rest[middle] != " " or a[len(STR_SRC_PREFIX) :] != b[len(STR_DST_PREFIX) :]:
        return None, None
    return strip_prefix(a, STR_SRC_PREFIX), strip_prefix(b, STR_DST_PREFIX)


class HunkHeader(NamedTuple):
    old_start: int
    old_count: int
    new_start: int
    new_count: int

    def lines_before(self) -> int:
        # An empty side reports the line *after* which the hunk applies.
        return self.old_start if self.old_count == 0 else self.old_start - 1


def parse_hunk(text: str) -> HunkHeader:
    match = RE_HUNK.match(text)
    if match is None:
        raise MalformedPatchText("Invalid hunk header: {}".format(text))
    a, b, c, d = match.groups()
    old_count = int(b) if b is not None else 1
    new_count = int(d) if d is not None else 1
    return HunkHeader(int(a), old_count, int(c), new_count)


class PatchBuilder:
    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._started = False
        self._from_path: Optional[str] = None
        self._to_path: Optional[str] = None
        self._chunks: List[ir.Chunk] = []
        self._kind: Optional[ir.ChunkKind] = None
        self._lines: List[str] = []
        self._old_cursor = 0

    def start(self, from_path: Optional[str], to_path: Optional[str]) -> None:
        self._started = True
        self._from_path = from_path
        self._to_path = to_path

    def set_from_path(self, path: Optional[str]) -> None:
        self._from_path = path

    def set_to_path(self, path: Optional[str]) -> None:
        self._to_path = path

    def begin_hunk(self, header: HunkHeader) -> None:
        gap = header.lines_before() - self._old_cursor
        if gap < 0:
            raise MalformedPatchText(
                "Hunks overlap at line {}.".format(header.old_start)
            )
        # Lines between hunks are unchanged; their text is not needed.
        for _ in range(gap):
            self.add_line(ir.ChunkKind.EQUAL, "")

    def add_line(self, kind: ir.ChunkKind, text: str) -> None:
        if kind != self._kind:
            self._flush()
            self._kind = kind
        self._lines.append(text + "\n")
        if kind != ir.ChunkKind.INSERT:
            self._old_cursor += 1

    def end_without_newline(self) -> None:
        if not self._lines:
            raise MalformedPatchText("No-newline marker without a preceding line.")
        self._lines[-1] = self._lines[-1][:-1]

    def is_valid(self) -> bool:
        return self._started and (
            self._from_path is not None or self._to_path is not None
        )

    def _flush(self) -> None:
        if self._kind is not None and self._lines:
            self._chunks.append(ir.Chunk(self._kind, "".join(self._lines)))
        self._kind = None
        self._lines = []

    def finalize(self) -> ir.FilePatch:
        if not self.is_valid():
            raise MalformedPatchText("Cannot finalize a patch without a file name.")
        self._flush()
        patch = ir.FilePatch(self._from_path, self._to_path, self._chunks)
        self.reset()
        return patch


def parse(lines: Iterable[str]) -> Iterator[ir.FilePatch]:
    builder = PatchBuilder()
    # Lines still expected on each side of the current hunk.
    old_left = new_left = 0

    for line in lines:
        if old_left > 0 or new_left > 0:
            # Some configurations print blank context lines without the space.
            kind = _LINE_KINDS.get(line[:1], None) if line else ir.ChunkKind.EQUAL
            if kind is None:
                if line.startswith(STR_NO_NEWLINE):
                    builder.end_without_newline()
                    continue
                raise MalformedPatchText("Unexpected line in hunk: {}".format(line))
            builder.add_line(kind, line[1:])
            if kind != ir.ChunkKind.INSERT:
                old_left -= 1
            if kind != ir.ChunkKind.DELETE:
                new_left -= 1
            if old_left < 0 or new_left < 0:
                raise MalformedPatchText("Hunk is longer than its header says.")
        elif line.startswith(STR_DIFF):
            if builder.is_valid():
                yield builder.finalize()
            builder.reset()
            builder.start(*parse_diff_header(line))
        elif line.startswith(STR_NO_NEWLINE):
            builder.end_without_newline()
        elif line.startswith(STR_HUNK):
            header = parse_hunk(line)
            builder.begin_hunk(header)
            old_left, new_left = header.old_count, header.new_count
        elif line.startswith(STR_NEW_FILE):
            builder.set_from_path(None)
        elif line.startswith(STR_DEL_FILE):
            builder.set_to_path(None)
        elif line.startswith(STR_FROM):
            builder.set_from_path(strip_prefix(line[len(STR_FROM) :], STR_SRC_PREFIX))
        elif line.startswith(STR_TO):
            builder.set_to_path(strip_prefix(line[len(STR_TO) :], STR_DST_PREFIX))

    if old_left > 0 or new_left > 0:
        raise MalformedPatchText("Diff ended in the middle of a hunk.")
    if builder.is_valid():
        yield builder.finalize()


def parse_diff(text: str) -> List[ir.FilePatch]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return list(parse(lines))


def parse_numstat(text: str) -> List[ir.FileStat]:
    stats = []
    for record in text.split("\0"):
        record = record.strip("\n")
        if not record:
            continue
        parts = record.split("\t", 2)
        if len(parts) != 3:
            raise RuntimeError("Invalid numstat record: {}".format(record))
        added, deleted, path = parts
        # Binary files report `-` for both counts.
        stats.append(
            ir.FileStat(
                path,
                int(added) if added != "-" else 0,
                int(deleted) if deleted != "-" else 0,
            )
        )
    return stats


def parse_ls_tree(text: str) -> List[ir.TreeEntry]:
    entries = []
    for record in text.split("\0"):
        if not record:
            continue
        meta, sep, path = record.partition("\t")
        fields = meta.split()
        if not sep or len(fields) != 3:
            raise RuntimeError("Invalid ls-tree record: {}".format(record))
        entries.append(ir.TreeEntry(fields[0], fields[1], fields[2], path))
    return entries


def parse_batch_header(header: str) -> Tuple[str, Optional[int]]:
    if header.endswith(" missing") or header.endswith(" ambiguous"):
        return header.rsplit(" ", 1)[1], None
    fields = header.rsplit(" ", 2)
    if len(fields) != 3 or not fields[2].isdigit():
        raise RuntimeError("Invalid cat-file header: {}".format(header))
    return fields[1], int(fields[2])


def parse_batch(
    data: bytes, names: List[str], with_content: bool = True
) -> Iterator[ir.BatchObject]:
    pos = 0
    for name in names:
        eol = data.find(b"\n", pos)
        if eol < 0:
            raise RuntimeError("Truncated cat-file output for `{}`.".format(name))
        header = data[pos:eol].decode(ENCODING, errors="replace")
        pos = eol + 1
        kind, size = parse_batch_header(header)
        if size is None or not with_content:
            yield ir.BatchObject(name, kind, None)
            continue
        content = data[pos : pos + size]
        if len(content) != size:
            raise RuntimeError("Truncated cat-file output for `{}`.".format(name))
        # Each object is followed by a newline.
        pos += size + 1
        yield ir.BatchObject(name, kind, content)


def parse_ident(text: str) -> Tuple[str, str, int]:
    match = RE_IDENT.match(text)
    if match is None:
        raise RuntimeError("Invalid identity line: {}".format(text))
    name, email, when, _ = match.groups()
    return name, email, int(when)


def parse_commit(hash: str, content: bytes) -> ir.Commit:
    tree: Optional[str] = None
    parents: List[str] = []
    author = ("", "", 0)
    committer = ("", "", 0)
    text = content.decode(ENCODING, errors="replace")
    header, _, message = text.partition("\n\n")
    for line in header.split("\n"):
        # Continuation of a multi-line header such as `gpgsig`.
        if line.startswith(" "):
            continue
        key, _, value = line.partition(" ")
        if key == "tree":
            tree = value
        elif key == "parent":
            parents.append(value)
        elif key == "author":
            author = parse_ident(value)
        elif key == "committer":
            committer = parse_ident(value)
    if tree is None:
        raise RuntimeError("Commit {} has no tree.".format(hash))
    return ir.Commit(
        hash,
        tree,
        tuple(parents),
        author[0],
        author[1],
        committer[2],
        message.rstrip("\n"),
    )


def parse_blame(text: str) -> List[ir.BlameLine]:
    result = []
    commit = ""
    lineno = 0
    email = ""
    for line in text.split("\n"):
        if line.startswith("\t"):
            result.append(ir.BlameLine(commit, email, lineno, line[1:]))
            continue
        match = RE_BLAME.match(line)
        if match is not None:
            commit = match.group(1)
            lineno = int(match.group(3))
        elif line.startswith("author-mail "):
            email = line[len("author-mail ") :].strip("<>")
    return result
