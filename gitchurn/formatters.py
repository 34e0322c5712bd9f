# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import abc
import json
from typing import Any, List, NamedTuple


class DeletedLines(NamedTuple):
    file: str
    lines: List[int]


class Name(NamedTuple):
    name: str


class Message(NamedTuple):
    hash: str
    message: str


class RecordFormatter(abc.ABC):
    @abc.abstractmethod
    def format(self, record: Any) -> str:
        pass


class HumanFormatter(RecordFormatter):
    def format(self, record: Any) -> str:
        return "\t".join(self._value(v) for v in record)

    def _value(self, value: Any) -> str:
        if isinstance(value, (list, tuple)):
            return ",".join(str(v) for v in value)
        if isinstance(value, bool):
            return "yes" if value else "no"
        return str(value)


class JsonFormatter(RecordFormatter):
    def format(self, record: Any) -> str:
        return json.dumps(record._asdict(), sort_keys=True)


class FormatterFactory:
    def __init__(self) -> None:
        self._kinds = ["human", "json"]

    def kinds(self) -> List[str]:
        return self._kinds

    def create(self, kind: str) -> RecordFormatter:
        if kind not in self.kinds():
            raise ValueError("Invalid `kind`.")
        if kind == "human":
            return HumanFormatter()
        return JsonFormatter()
