# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

from typing import List, Optional


class GitChurnError(RuntimeError):
    pass


class UnresolvableRevision(GitChurnError):
    def __init__(self, revision: str) -> None:
        super().__init__("Revision `{}` does not name a commit.".format(revision))
        self.revision = revision


class AmbiguousHash(GitChurnError):
    def __init__(self, prefix: str) -> None:
        super().__init__("Object name `{}` is ambiguous.".format(prefix))
        self.prefix = prefix


class TraversalError(GitChurnError):
    pass


class FileNotInDiff(GitChurnError):
    def __init__(self, path: str, revision: str) -> None:
        super().__init__(
            "File `{}` is not changed by revision `{}`.".format(path, revision)
        )
        self.path = path
        self.revision = revision


class MalformedPatchText(GitChurnError):
    pass


class BackendTimeout(GitChurnError):
    def __init__(self, args: List[str], timeout: Optional[float]) -> None:
        super().__init__("`{}` timed out after {}s.".format(" ".join(args), timeout))
        self.command = args
        self.timeout = timeout


class GitCommandError(GitChurnError):
    def __init__(self, args: List[str], returncode: int, stderr: str) -> None:
        message = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        super().__init__(
            "`{}` exited with status {}: {}".format(" ".join(args), returncode, message)
        )
        self.command = args
        self.returncode = returncode
        self.stderr = stderr


class CloneError(GitCommandError):
    pass


class NetworkError(GitCommandError):
    pass
