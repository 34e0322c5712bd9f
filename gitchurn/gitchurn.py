# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import contextlib
import logging
import subprocess as sp
from typing import Iterable, Iterator, List, Optional, Sequence

from gitchurn import gitparser, ir
from gitchurn.errors import (
    AmbiguousHash,
    BackendTimeout,
    CloneError,
    GitCommandError,
    NetworkError,
    UnresolvableRevision,
)

ENCODING = gitparser.ENCODING

NETWORK_ERRORS = [
    "Could not resolve host",
    "Connection refused",
    "Connection timed out",
    "unable to access",
]

logger = logging.getLogger(__name__)


def run(
    args: List[str], input: Optional[bytes] = None, timeout: Optional[float] = None
) -> bytes:
    logger.debug("running %s", " ".join(args))
    try:
        proc = sp.run(args, input=input, capture_output=True, timeout=timeout)
    except sp.TimeoutExpired as e:
        raise BackendTimeout(args, timeout) from e
    if proc.returncode != 0:
        stderr = proc.stderr.decode(ENCODING, errors="replace")
        if any(s in stderr for s in NETWORK_ERRORS):
            raise NetworkError(args, proc.returncode, stderr)
        raise GitCommandError(args, proc.returncode, stderr)
    return proc.stdout


class GitDriver:
    def __init__(
        self,
        git_bin: str = "git",
        git_repo: str = ".",
        timeout: Optional[float] = None,
    ) -> None:
        self.git_bin = git_bin
        self.git_repo = git_repo
        self.timeout = timeout
        self._init_args = [git_bin, "-C", git_repo, "-c", "core.quotePath=false"]
        self._empty_tree: Optional[str] = None

    @classmethod
    def clone(cls, url: str, dest: str, **kwargs) -> "GitDriver":
        git_bin = kwargs.get("git_bin", "git")
        logger.info("git clone %s", url)
        try:
            run(
                [git_bin, "clone", "--quiet", "--", url, dest],
                timeout=kwargs.get("timeout"),
            )
        except GitCommandError as e:
            raise CloneError(e.command, e.returncode, e.stderr) from e
        return cls(git_repo=dest, **kwargs)

    def _run(self, args: List[str], input: Optional[bytes] = None) -> bytes:
        return run(self._init_args + args, input=input, timeout=self.timeout)

    def _run_text(self, args: List[str]) -> str:
        return self._run(args).decode(ENCODING, errors="replace")

    def rev_parse(self, revision: str) -> str:
        args = ["rev-parse", "--verify", "{}^{{commit}}".format(revision)]
        try:
            return self._run_text(args).strip()
        except GitCommandError as e:
            if "ambiguous" in e.stderr:
                raise AmbiguousHash(revision) from e
            raise UnresolvableRevision(revision) from e

    def empty_tree(self) -> str:
        # Depends on the object format, SHA-1 or SHA-256.
        if self._empty_tree is None:
            args = ["hash-object", "-t", "tree", "--stdin"]
            self._empty_tree = self._run(args, input=b"").decode(ENCODING).strip()
        return self._empty_tree

    def cat_file(self, names: Sequence[str]) -> List[ir.BatchObject]:
        if not names:
            return []
        data = self._run(["cat-file", "--batch"], input=self._batch_input(names))
        return list(gitparser.parse_batch(data, list(names)))

    def batch_check(self, names: Sequence[str]) -> List[ir.BatchObject]:
        if not names:
            return []
        data = self._run(["cat-file", "--batch-check"], input=self._batch_input(names))
        return list(gitparser.parse_batch(data, list(names), with_content=False))

    def stream_objects(self, names: Iterable[str]) -> Iterator[ir.BatchObject]:
        # One object at a time; cat-file flushes after each one it prints.
        args = self._init_args + ["cat-file", "--batch"]
        logger.debug("streaming %s", " ".join(args))
        proc = sp.Popen(args, stdin=sp.PIPE, stdout=sp.PIPE, stderr=sp.PIPE)
        assert proc.stdin is not None and proc.stdout is not None
        assert proc.stderr is not None
        try:
            for name in names:
                try:
                    proc.stdin.write(name.encode(ENCODING) + b"\n")
                    proc.stdin.flush()
                except BrokenPipeError:
                    break
                header = proc.stdout.readline()
                if not header:
                    break
                kind, size = gitparser.parse_batch_header(
                    header.decode(ENCODING, errors="replace").rstrip("\n")
                )
                if size is None:
                    yield ir.BatchObject(name, kind, None)
                    continue
                # Each object is followed by a newline.
                content = proc.stdout.read(size + 1)[:size]
                yield ir.BatchObject(name, kind, content)
        finally:
            # git may have exited and left the pipe closed.
            with contextlib.suppress(BrokenPipeError):
                proc.stdin.close()
            proc.stdout.close()
            try:
                returncode = proc.wait(timeout=self.timeout)
            except sp.TimeoutExpired as e:
                proc.kill()
                proc.wait()
                raise BackendTimeout(args, self.timeout) from e
            stderr = proc.stderr.read().decode(ENCODING, errors="replace")
            proc.stderr.close()
        if returncode != 0:
            raise GitCommandError(args, returncode, stderr)

    def _batch_input(self, names: Iterable[str]) -> bytes:
        return "".join(n + "\n" for n in names).encode(ENCODING)

    def ls_tree(self, ref: str) -> List[ir.TreeEntry]:
        return gitparser.parse_ls_tree(self._run_text(["ls-tree", "-r", "-z", ref]))

    def diff(self, old: str, new: str, paths: Sequence[str] = ()) -> List[ir.FilePatch]:
        args = ["diff"] + gitparser.GIT_DIFF_ARGS + [old, new, "--"]
        args += [":(literal)" + p for p in paths]
        return gitparser.parse_diff(self._run_text(args))

    def numstat(self, old: str, new: str) -> List[ir.FileStat]:
        args = ["diff", "--numstat", "-z", "--no-renames", "--ignore-submodules"]
        args += [old, new]
        return gitparser.parse_numstat(self._run_text(args))

    def branches(self) -> List[str]:
        return self._refs("refs/heads")

    def tags(self) -> List[str]:
        return self._refs("refs/tags")

    def _refs(self, prefix: str) -> List[str]:
        args = ["for-each-ref", "--format=%(refname)", prefix]
        return self._run_text(args).splitlines()

    def blame(self, revision: str, path: str) -> List[ir.BlameLine]:
        args = ["blame", "--line-porcelain", revision, "--", path]
        return gitparser.parse_blame(self._run_text(args))
