# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import enum
from typing import List, NamedTuple, Optional, Tuple


class ChunkKind(enum.Enum):
    EQUAL = 0
    INSERT = 1
    DELETE = 2


class Chunk(NamedTuple):
    kind: ChunkKind
    content: str


class FilePatch(NamedTuple):
    from_path: Optional[str]
    to_path: Optional[str]
    chunks: List[Chunk]

    @property
    def path(self) -> str:
        path = self.from_path if self.from_path is not None else self.to_path
        if path is None:
            raise RuntimeError("File patch has neither a source nor a target.")
        return path


class FileStat(NamedTuple):
    path: str
    insertions: int
    deletions: int


class Commit(NamedTuple):
    hash: str
    tree: str
    parents: Tuple[str, ...]
    author_name: str
    author_email: str
    committer_time: int
    message: str = ""


class TreeEntry(NamedTuple):
    mode: str
    kind: str
    hash: str
    path: str


class BatchObject(NamedTuple):
    name: str
    kind: str
    content: Optional[bytes]


class BlameLine(NamedTuple):
    commit: str
    author_email: str
    lineno: int
    text: str


class RevisionRange(NamedTuple):
    begin: str
    end: str


class DiffMetrics(NamedTuple):
    insertions: int
    deletions: int
    lines_before: int
    lines_after: int


class FileDiffMetrics(NamedTuple):
    file: str
    insertions: int
    deletions: int
    lines_before: int
    lines_after: int
    new_file: bool
    delete_file: bool


class AggrDiffMetrics(NamedTuple):
    insertions: int
    deletions: int
    lines_before: int
    lines_after: int
    files_count: int
    new_files: int
    deleted_files: int


def is_new_file(lines_before: int, lines_after: int) -> bool:
    return lines_before == 0 and lines_after > 0


def is_deleted_file(lines_before: int, lines_after: int) -> bool:
    return lines_before > 0 and lines_after == 0


def file_diff_metrics(file: str, metrics: DiffMetrics) -> FileDiffMetrics:
    return FileDiffMetrics(
        file,
        metrics.insertions,
        metrics.deletions,
        metrics.lines_before,
        metrics.lines_after,
        is_new_file(metrics.lines_before, metrics.lines_after),
        is_deleted_file(metrics.lines_before, metrics.lines_after),
    )
