# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import logging
from typing import AbstractSet, Dict, Iterable, List, Optional, Set

from gitchurn import gitparser, ir
from gitchurn.errors import AmbiguousHash, TraversalError
from gitchurn.gitchurn import GitDriver

logger = logging.getLogger(__name__)


def resolve(git: GitDriver, revision: str) -> str:
    return git.rev_parse(revision)


def resolve_range(git: GitDriver, begin: str, end: str) -> ir.RevisionRange:
    return ir.RevisionRange(resolve(git, begin), resolve(git, end))


def unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


# Commits are read one breadth-first level per cat-file call.
class CommitGraph:

    def __init__(self, git: GitDriver) -> None:
        self._git = git
        self._commits: Dict[str, ir.Commit] = {}

    def load(self, hashes: Iterable[str]) -> List[ir.Commit]:
        hashes = list(hashes)
        wanted = [h for h in unique(hashes) if h not in self._commits]
        if not wanted:
            return [self._commits[h] for h in hashes]
        for obj in self._git.cat_file(wanted):
            if obj.kind == "ambiguous":
                raise AmbiguousHash(obj.name)
            if obj.kind == "missing" or obj.content is None:
                raise TraversalError(
                    "Commit {} is not in the object store.".format(obj.name)
                )
            if obj.kind != "commit":
                raise TraversalError(
                    "Object {} is a {}, not a commit.".format(obj.name, obj.kind)
                )
            self._commits[obj.name] = gitparser.parse_commit(obj.name, obj.content)
        return [self._commits[h] for h in hashes]

    def reachable(
        self, starts: Iterable[str], stop: AbstractSet[str] = frozenset()
    ) -> Set[str]:
        seen: Set[str] = set()
        frontier = unique(h for h in starts if h not in stop)
        while frontier:
            seen.update(frontier)
            parents = []
            for commit in self.load(frontier):
                parents.extend(
                    p for p in commit.parents if p not in seen and p not in stop
                )
            frontier = unique(parents)
        return seen


def rev_list(
    git: GitDriver, begin: str, end: str, graph: Optional[CommitGraph] = None
) -> List[ir.Commit]:
    rng = resolve_range(git, begin, end)
    if graph is None:
        graph = CommitGraph(git)
    hidden = graph.reachable([rng.begin])
    # Commits reachable from `end` but not from `begin`.
    found = graph.reachable([rng.end], stop=hidden)
    logger.debug(
        "%s..%s: %d commits (%d hidden)", rng.begin, rng.end, len(found), len(hidden)
    )
    commits = graph.load(found)
    # Same-second commits are ordered by hash so results are reproducible.
    return sorted(commits, key=lambda c: (-c.committer_time, c.hash))


def last_commit(git: GitDriver, revision: str = "HEAD") -> ir.Commit:
    (commit,) = CommitGraph(git).load([resolve(git, revision)])
    return commit


def distinct_author_emails(
    git: GitDriver, begin: str, end: str, path: str
) -> List[str]:
    commits = rev_list(git, begin, end)
    checks = git.batch_check(["{}:{}".format(c.hash, path) for c in commits])
    authors = []
    for commit, obj in zip(commits, checks):
        # The file may not exist yet, or any more, at this commit.
        if obj.kind != "blob":
            continue
        authors.append(commit.author_email)
    return unique(authors)
