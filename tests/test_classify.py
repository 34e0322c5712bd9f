# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import pytest

from gitchurn import classify
from gitchurn.ir import Chunk, ChunkKind

EQ, INS, DEL = ChunkKind.EQUAL, ChunkKind.INSERT, ChunkKind.DELETE


@pytest.mark.parametrize(
    "content, expected",
    [
        ("", []),
        ("\n", [""]),
        ("a\nb\n", ["a", "b"]),
        ("a\nb", ["a", "b"]),
        ("a\n\n", ["a", ""]),
    ],
)
def test_split_lines(content, expected):
    assert classify.split_lines(content) == expected


def test_count_lines_excludes_blank_lines():
    content = "a\n\n   \n\tb\n"
    assert classify.count_lines(content) == 4
    assert classify.count_lines(content, include_whitespace=False) == 2


MIXED = [
    Chunk(EQ, "a\nb\n"),
    Chunk(DEL, "c\n\nd\n"),
    Chunk(INS, "x\n"),
    Chunk(EQ, "e\n"),
    Chunk(DEL, "f"),
]


def test_classify_with_whitespace():
    result = classify.classify(MIXED)
    assert result.deleted_lines == [3, 4, 5, 7]
    assert result.insertions == 1
    assert result.deletions == 4


def test_classify_without_whitespace():
    result = classify.classify(MIXED, include_whitespace=False)
    # The blank line at 4 is skipped but still occupies its number.
    assert result.deleted_lines == [3, 5, 7]
    assert result.insertions == 1
    assert result.deletions == 3


def test_blank_insertions_are_excluded():
    chunks = [Chunk(INS, "\n  \nx\n\t\n")]
    assert classify.classify(chunks).insertions == 4
    assert classify.classify(chunks, include_whitespace=False).insertions == 1


def test_insertions_do_not_move_the_counter():
    chunks = [Chunk(INS, "x\ny\nz\n"), Chunk(DEL, "a\n"), Chunk(INS, "w\n")]
    assert classify.classify(chunks).deleted_lines == [1]


def test_equal_chunk_without_trailing_newline():
    chunks = [Chunk(EQ, "a\nb"), Chunk(DEL, "c\n")]
    assert classify.classify(chunks).deleted_lines == [3]


def test_empty_chunk_has_no_lines():
    chunks = [Chunk(EQ, ""), Chunk(DEL, ""), Chunk(DEL, "x\n")]
    result = classify.classify(chunks)
    assert result.deleted_lines == [1]
    assert result.deletions == 1


def test_no_chunks():
    assert classify.classify([]) == classify.Classification([], 0, 0)


@pytest.mark.parametrize(
    "chunks",
    [
        MIXED,
        [Chunk(DEL, "\n\n\n")],
        [Chunk(EQ, "x\n" * 5), Chunk(DEL, "a\n \nb\n"), Chunk(INS, " \n")],
    ],
)
def test_exclusive_counts_never_exceed_inclusive(chunks):
    inclusive = classify.classify(chunks)
    exclusive = classify.classify(chunks, include_whitespace=False)
    assert exclusive.insertions <= inclusive.insertions
    assert exclusive.deletions <= inclusive.deletions
    assert set(exclusive.deleted_lines) <= set(inclusive.deleted_lines)


def test_deleted_lines_increase_within_a_chunk():
    chunks = [Chunk(EQ, "a\n"), Chunk(DEL, "b\nc\nd\ne\n")]
    lines = classify.classify(chunks).deleted_lines
    assert lines == sorted(set(lines))
    assert lines == [2, 3, 4, 5]
