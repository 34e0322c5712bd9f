# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import json

import pytest

from gitchurn import formatters, ir


def test_human_formatter():
    human = formatters.HumanFormatter()
    record = ir.FileDiffMetrics("a.txt", 3, 2, 10, 11, False, True)
    assert human.format(record) == "a.txt\t3\t2\t10\t11\tno\tyes"
    assert human.format(formatters.DeletedLines("a.txt", [2, 3])) == "a.txt\t2,3"
    assert human.format(formatters.Name("main")) == "main"


def test_json_formatter():
    record = ir.AggrDiffMetrics(3, 2, 13, 14, 2, 0, 0)
    text = formatters.JsonFormatter().format(record)
    assert json.loads(text)["files_count"] == 2
    lines = formatters.DeletedLines("a.txt", [2, 3])
    expected = '{"file": "a.txt", "lines": [2, 3]}'
    assert formatters.JsonFormatter().format(lines) == expected


def test_formatter_factory():
    factory = formatters.FormatterFactory()
    assert factory.kinds() == ["human", "json"]
    assert isinstance(factory.create("human"), formatters.HumanFormatter)
    assert isinstance(factory.create("json"), formatters.JsonFormatter)
    with pytest.raises(ValueError):
        factory.create("xml")
