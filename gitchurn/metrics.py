# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from gitchurn import classify, gitparser, ir, revlist
from gitchurn.errors import FileNotInDiff
from gitchurn.gitchurn import GitDriver

logger = logging.getLogger(__name__)


class CommitDiff(NamedTuple):
    commit: ir.Commit
    parent_tree: str
    patches: List[ir.FilePatch]


def decode(content: Optional[bytes]) -> str:
    if content is None:
        return ""
    return content.decode(gitparser.ENCODING, errors="replace")


def count_new_files(before: Iterable[str], after: Iterable[str]) -> int:
    before_set = set(before)
    return sum(1 for f in after if f not in before_set)


def count_deleted_files(before: Iterable[str], after: Iterable[str]) -> int:
    after_set = set(after)
    return sum(1 for f in before if f not in after_set)


def patch_churn(
    patches: Iterable[ir.FilePatch], include_whitespace: bool = True
) -> Tuple[int, int]:
    insertions = deletions = 0
    for patch in patches:
        result = classify.classify(patch.chunks, include_whitespace)
        insertions += result.insertions
        deletions += result.deletions
    return insertions, deletions


class ChurnCalculator:
    def __init__(self, git: GitDriver, max_workers: Optional[int] = None) -> None:
        self._git = git
        self._graph = revlist.CommitGraph(git)
        self._max_workers = max_workers

    def _commit_and_parent_tree(self, revision: str) -> Tuple[ir.Commit, str]:
        (commit,) = self._graph.load([revlist.resolve(self._git, revision)])
        if not commit.parents:
            # A root commit adds every file it contains.
            return commit, self._git.empty_tree()
        (parent,) = self._graph.load(commit.parents[:1])
        return commit, parent.tree

    def commit_diff(
        self, revision: str = "HEAD", paths: Sequence[str] = ()
    ) -> CommitDiff:
        commit, parent_tree = self._commit_and_parent_tree(revision)
        patches = self._git.diff(parent_tree, commit.tree, paths)
        return CommitDiff(commit, parent_tree, patches)

    def file_lines(self, tree: str, path: str, include_whitespace: bool = True) -> int:
        (obj,) = self._git.cat_file(["{}:{}".format(tree, path)])
        if obj.kind != "blob":
            return 0
        return classify.count_lines(decode(obj.content), include_whitespace)

    def tree_lines(
        self, tree: str, include_whitespace: bool = True
    ) -> Tuple[int, List[str]]:
        # Submodules appear as `commit` entries and hold no lines here.
        entries = [e for e in self._git.ls_tree(tree) if e.kind == "blob"]
        objs = self._git.stream_objects(e.hash for e in entries)
        loc = sum(
            classify.count_lines(decode(obj.content), include_whitespace)
            for obj in objs
        )
        return loc, [e.path for e in entries]

    def _stat_churn(
        self, parent_tree: str, tree: str, path: str, revision: str
    ) -> Tuple[int, int]:
        for stat in self._git.numstat(parent_tree, tree):
            if stat.path == path:
                return stat.insertions, stat.deletions
        raise FileNotInDiff(path, revision)

    def file_metrics(
        self,
        path: str,
        revision: str = "HEAD",
        include_whitespace: bool = True,
        from_stats: bool = False,
    ) -> ir.FileDiffMetrics:
        if from_stats and not include_whitespace:
            raise ValueError("Diff stats always count whitespace-only lines.")
        commit, parent_tree = self._commit_and_parent_tree(revision)
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            before = executor.submit(
                self.file_lines, parent_tree, path, include_whitespace
            )
            after = executor.submit(
                self.file_lines, commit.tree, path, include_whitespace
            )
            if from_stats:
                insertions, deletions = self._stat_churn(
                    parent_tree, commit.tree, path, revision
                )
            else:
                patches = self._git.diff(parent_tree, commit.tree, [path])
                insertions, deletions = patch_churn(
                    (p for p in patches if path in (p.from_path, p.to_path)),
                    include_whitespace,
                )
            metrics = ir.DiffMetrics(
                insertions, deletions, before.result(), after.result()
            )
        logger.debug("%s@%s: %s", path, commit.hash, metrics)
        return ir.file_diff_metrics(path, metrics)

    def deleted_line_numbers(
        self, revision: str = "HEAD", include_whitespace: bool = True
    ) -> Tuple[Dict[str, List[int]], str]:
        diff = self.commit_diff(revision)
        deleted: Dict[str, List[int]] = {}
        # A type change shows up as a deletion and an addition of one path.
        for p in diff.patches:
            lines = classify.classify(p.chunks, include_whitespace).deleted_lines
            deleted.setdefault(p.path, []).extend(lines)
        for lines in deleted.values():
            lines.sort()
        return deleted, diff.parent_tree

    def aggr_metrics(
        self, revision: str = "HEAD", include_whitespace: bool = True
    ) -> ir.AggrDiffMetrics:
        commit, parent_tree = self._commit_and_parent_tree(revision)
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            before = executor.submit(self.tree_lines, parent_tree, include_whitespace)
            after = executor.submit(self.tree_lines, commit.tree, include_whitespace)
            churn = executor.submit(
                self._tree_churn, parent_tree, commit.tree, include_whitespace
            )

            lines_before, before_files = before.result()
            lines_after, after_files = after.result()
            new_files = executor.submit(count_new_files, before_files, after_files)
            deleted_files = executor.submit(
                count_deleted_files, before_files, after_files
            )
            insertions, deletions = churn.result()
            result = ir.AggrDiffMetrics(
                insertions,
                deletions,
                lines_before,
                lines_after,
                len(after_files),
                new_files.result(),
                deleted_files.result(),
            )
        logger.info(
            "%s: %d files, +%d -%d",
            commit.hash,
            len(after_files),
            insertions,
            deletions,
        )
        return result

    def _tree_churn(
        self, parent_tree: str, tree: str, include_whitespace: bool
    ) -> Tuple[int, int]:
        return patch_churn(self._git.diff(parent_tree, tree), include_whitespace)
