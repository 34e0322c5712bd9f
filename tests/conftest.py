# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import os
import shutil
import subprocess as sp
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from gitchurn.gitchurn import GitDriver

START_TIME = 1600000000


class RepoBuilder:
    """Builds a throw-away repository with predictable authors and dates."""

    def __init__(self, path: Path, *init_args: str) -> None:
        self.path = path
        self.clock = START_TIME
        self.path.mkdir(parents=True)
        self.git("init", "--quiet", *init_args)

    def git(self, *args: str, env: Optional[Dict[str, str]] = None) -> str:
        proc = sp.run(
            ["git", "-C", str(self.path)] + list(args),
            capture_output=True,
            check=True,
            env=env,
        )
        return proc.stdout.decode("UTF-8").strip()

    def write(self, name: str, text: str) -> None:
        path = self.path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(text.encode("UTF-8"))

    def write_lines(self, name: str, lines: List[str]) -> None:
        self.write(name, "".join(line + "\n" for line in lines))

    def remove(self, name: str) -> None:
        self.git("rm", "--quiet", name)

    def _env(self, author: str, when: Optional[int]) -> Dict[str, str]:
        if when is None:
            self.clock += 60
            when = self.clock
        date = "{} +0000".format(when)
        return dict(
            os.environ,
            GIT_AUTHOR_NAME=author,
            GIT_AUTHOR_EMAIL="{}@example.com".format(author),
            GIT_AUTHOR_DATE=date,
            GIT_COMMITTER_NAME=author,
            GIT_COMMITTER_EMAIL="{}@example.com".format(author),
            GIT_COMMITTER_DATE=date,
        )

    def commit(
        self, message: str, author: str = "alice", when: Optional[int] = None
    ) -> str:
        self.git("add", "--all")
        self.git(
            "-c",
            "commit.gpgsign=false",
            "commit",
            "--quiet",
            "--allow-empty",
            "-m",
            message,
            env=self._env(author, when),
        )
        return self.head()

    def merge(self, branch: str, author: str = "alice") -> str:
        self.git(
            "-c",
            "commit.gpgsign=false",
            "merge",
            "--quiet",
            "--no-ff",
            "-m",
            "merge {}".format(branch),
            branch,
            env=self._env(author, None),
        )
        return self.head()

    def head(self) -> str:
        return self.git("rev-parse", "HEAD")

    def current_branch(self) -> str:
        return self.git("symbolic-ref", "--short", "HEAD")


@pytest.fixture
def repo(tmp_path: Path) -> RepoBuilder:
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    return RepoBuilder(tmp_path / "repo")


@pytest.fixture
def git(repo: RepoBuilder) -> GitDriver:
    return GitDriver(git_repo=str(repo.path))


TEN_LINES = ["l1", "l2", "", "l4", "l5", "l6", "l7", "l8", "l9", "l10"]


@pytest.fixture
def churn_repo(repo: RepoBuilder) -> RepoBuilder:
    """C1 adds a.txt with ten lines, C2 deletes two (one blank) and adds three."""
    repo.write_lines("a.txt", TEN_LINES)
    repo.write_lines("b.txt", ["keep", "", "me"])
    repo.commit("add a.txt")
    after = [TEN_LINES[0]] + TEN_LINES[3:] + ["n1", "n2", "n3"]
    repo.write_lines("a.txt", after)
    repo.commit("edit a.txt", author="bob")
    return repo


@pytest.fixture
def sha256_repo(tmp_path: Path) -> RepoBuilder:
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    try:
        return RepoBuilder(tmp_path / "sha256", "--object-format=sha256")
    except sp.CalledProcessError:
        pytest.skip("git does not support SHA-256 repositories")
