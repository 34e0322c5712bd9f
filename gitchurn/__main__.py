# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import argparse
import logging
import sys
import tempfile
from typing import Any, Iterable, List, Optional

from gitchurn import formatters, revlist
from gitchurn.errors import GitChurnError
from gitchurn.gitchurn import GitDriver
from gitchurn.metrics import ChurnCalculator

logger = logging.getLogger("gitchurn")


def build_parser(
    formatter_factory: formatters.FormatterFactory,
) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitchurn",
        description="calculate code churn metrics for commits and revision ranges",
    )
    parser.add_argument(
        "--git-repo",
        dest="git_repo",
        default=".",
        help="path to the git repository (default: current directory)",
    )
    parser.add_argument(
        "--git-path",
        dest="git_bin",
        default="git",
        help="path to git binary (default: git)",
    )
    parser.add_argument(
        "--clone",
        dest="clone_url",
        help="clone this repository into a temporary directory and analyse it",
    )
    parser.add_argument(
        "--timeout",
        dest="timeout",
        type=float,
        help="seconds to allow each git call (optional)",
    )
    parser.add_argument(
        "--format",
        choices=formatter_factory.kinds(),
        default="human",
        dest="format",
        help="how to display the results (default: human)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="log every git command to stderr",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    def with_rev(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--rev", default="HEAD", help="commit to inspect (default: HEAD)"
        )

    def with_whitespace(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--exclude-whitespace",
            dest="include_whitespace",
            action="store_false",
            help="do not count lines that are blank after trimming",
        )

    p = commands.add_parser("file", help="churn of one file in a commit")
    p.add_argument("path")
    with_rev(p)
    with_whitespace(p)
    p.add_argument(
        "--from-stats",
        dest="from_stats",
        action="store_true",
        help="take insertions and deletions from git's own diff stats",
    )

    p = commands.add_parser("aggr", help="churn of every file in a commit")
    with_rev(p)
    with_whitespace(p)

    p = commands.add_parser("deleted-lines", help="line numbers a commit deletes")
    with_rev(p)
    with_whitespace(p)

    p = commands.add_parser("revlist", help="commits in BEGIN..END, newest first")
    p.add_argument("begin")
    p.add_argument("end")

    p = commands.add_parser("authors", help="distinct authors of a file in BEGIN..END")
    p.add_argument("begin")
    p.add_argument("end")
    p.add_argument("path")

    p = commands.add_parser("last-commit", help="hash and message of a commit")
    with_rev(p)

    p = commands.add_parser("resolve", help="commit hash named by a revision")
    p.add_argument("revision")

    commands.add_parser("branches", help="list branches")
    commands.add_parser("tags", help="list tags")

    p = commands.add_parser("blame", help="author of every line of a file")
    p.add_argument("path")
    with_rev(p)

    return parser


def fetch(args: argparse.Namespace, git: GitDriver) -> Iterable[Any]:
    if args.command == "file":
        calculator = ChurnCalculator(git)
        yield calculator.file_metrics(
            args.path, args.rev, args.include_whitespace, args.from_stats
        )
    elif args.command == "aggr":
        yield ChurnCalculator(git).aggr_metrics(args.rev, args.include_whitespace)
    elif args.command == "deleted-lines":
        calculator = ChurnCalculator(git)
        deleted, _ = calculator.deleted_line_numbers(args.rev, args.include_whitespace)
        for path in sorted(deleted):
            yield formatters.DeletedLines(path, deleted[path])
    elif args.command == "revlist":
        yield from revlist.rev_list(git, args.begin, args.end)
    elif args.command == "authors":
        emails = revlist.distinct_author_emails(git, args.begin, args.end, args.path)
        yield from (formatters.Name(e) for e in emails)
    elif args.command == "last-commit":
        commit = revlist.last_commit(git, args.rev)
        yield formatters.Message(commit.hash, commit.message)
    elif args.command == "resolve":
        yield formatters.Name(revlist.resolve(git, args.revision))
    elif args.command == "branches":
        yield from (formatters.Name(b) for b in git.branches())
    elif args.command == "tags":
        yield from (formatters.Name(t) for t in git.tags())
    elif args.command == "blame":
        yield from git.blame(args.rev, args.path)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    formatter_factory = formatters.FormatterFactory()
    parser = build_parser(formatter_factory)
    args = parser.parse_args(argv)
    if getattr(args, "from_stats", False) and not args.include_whitespace:
        parser.error("--from-stats cannot be combined with --exclude-whitespace")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )
    formatter = formatter_factory.create(args.format)

    try:
        with tempfile.TemporaryDirectory(prefix="gitchurn-") as workdir:
            if args.clone_url:
                git = GitDriver.clone(
                    args.clone_url, workdir, git_bin=args.git_bin, timeout=args.timeout
                )
            else:
                git = GitDriver(
                    git_bin=args.git_bin, git_repo=args.git_repo, timeout=args.timeout
                )
            for record in fetch(args, git):
                print(formatter.format(record))
    except GitChurnError as e:
        logger.debug("query failed", exc_info=True)
        print("gitchurn: {}".format(e), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
