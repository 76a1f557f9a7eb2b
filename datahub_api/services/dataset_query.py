"""
Search string parser for dataset data tables.

A query is a sequence of terms, each either `attribute:value` or a bare `value`.
Attributes and values are unquoted runs, "double quoted" runs (a literal quote
is written as "") or 'single quoted' runs. Fragments that match no term are skipped.

    City:Rome "New York" 'x y'   ->  (contains, "City", "Rome"),
                                      (contains, ANY, "New York"),
                                      (contains, ANY, "x y")
"""
import re
from enum import Enum
from typing import List, NamedTuple, Union


class Operator(str, Enum):
    CONTAINS = "contains"


class AttributeSentinel(Enum):
    ANY = "any"

    def __repr__(self) -> str:
        return "ANY"


# Attribute of a bare term: match against every string column
ANY = AttributeSentinel.ANY


class Condition(NamedTuple):
    operator: Operator
    attribute: Union[str, AttributeSentinel]
    value: str


PART_REGEXP = re.compile(
    r"""
    (                   # attribute, or the value when no attribute is present
        [^\s"':]+       # attribute without spaces, quotes or colon
    |
        "(?:[^"]|"")+"  # double quoted, inner quotes doubled
    |
        '[^']+'         # single quoted
    )
    (?:
        (:)             # separator between attribute and value
        (
            [^\s"']+        # value without spaces or quotes
        |
            "(?:[^"]|"")+"  # double quoted, inner quotes doubled
        |
            '[^']+'         # single quoted
        )
    )?
    """,
    re.VERBOSE,
)
QUOTED_VALUE_REGEXP = re.compile(r"""\A(["'])(.*)\1\Z""", re.DOTALL)


def unquote(token: str) -> str:
    match = QUOTED_VALUE_REGEXP.match(token)
    if match is None:
        return token
    quote, inner = match.group(1), match.group(2)
    return inner.replace(quote * 2, quote)


class DatasetQuery:
    def __init__(self, query: str):
        self.query = query or ""
        self.parts: List[Condition] = []
        self._parse_query()

    def __iter__(self):
        return iter(self.parts)

    def __len__(self) -> int:
        return len(self.parts)

    def _parse_query(self) -> None:
        for match in PART_REGEXP.finditer(self.query):
            attribute, operator, value = match.groups()
            attribute = unquote(attribute)
            if operator == ":":
                self.parts.append(Condition(Operator.CONTAINS, attribute, unquote(value)))
            else:
                self.parts.append(Condition(Operator.CONTAINS, ANY, attribute))


def parse_query(query: str) -> List[Condition]:
    return DatasetQuery(query).parts
