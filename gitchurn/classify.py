# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

from typing import Iterable, List, NamedTuple

from gitchurn import ir


class Classification(NamedTuple):
    # 1-based line numbers in the file before the change.
    deleted_lines: List[int]
    insertions: int
    deletions: int


def split_lines(content: str) -> List[str]:
    if not content:
        return []
    lines = content.split("\n")
    if content.endswith("\n"):
        lines.pop()
    return lines


def is_blank(line: str) -> bool:
    return line.strip() == ""


def count_lines(content: str, include_whitespace: bool = True) -> int:
    lines = split_lines(content)
    if include_whitespace:
        return len(lines)
    return sum(1 for line in lines if not is_blank(line))


def classify(
    chunks: Iterable[ir.Chunk], include_whitespace: bool = True
) -> Classification:
    # Deleted lines are numbered against the old file. Blank lines that are
    # not counted still take up a line number.
    counter = 0
    deleted_lines: List[int] = []
    insertions = 0
    for chunk in chunks:
        lines = split_lines(chunk.content)
        if chunk.kind == ir.ChunkKind.EQUAL:
            counter += len(lines)
        elif chunk.kind == ir.ChunkKind.DELETE:
            for i, line in enumerate(lines, start=1):
                if include_whitespace or not is_blank(line):
                    deleted_lines.append(counter + i)
            counter += len(lines)
        elif chunk.kind == ir.ChunkKind.INSERT:
            insertions += count_lines(chunk.content, include_whitespace)
    return Classification(deleted_lines, insertions, len(deleted_lines))
