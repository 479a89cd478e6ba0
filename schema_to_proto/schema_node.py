"""
This module holds a narrowing view over a parsed JSON Schema value. Parsed JSON
is an untyped tree of dicts, lists, strings, numbers, bools and None; every
accessor here checks the runtime type of the keyword it reads and reports the
keyword as absent when it has the wrong shape, so the converter never has to
guard against malformed input itself.
"""

# Standard
from typing import Any, Dict, List, Optional, Tuple

# First Party
import alog

log = alog.use_channel("S2PND")


def _is_string_key_dict(value: Any) -> bool:
    return isinstance(value, dict) and all(isinstance(key, str) for key in value)


class SchemaNode:
    """Read-only view over one JSON value inside a schema document"""

    def __init__(self, raw: Any):
        self.raw = raw

    def __repr__(self) -> str:
        return f"SchemaNode({self.raw!r})"

    @property
    def is_mapping(self) -> bool:
        """Whether this node is a JSON object (the only shape that can carry
        schema keywords)
        """
        return _is_string_key_dict(self.raw)

    def has(self, keyword: str) -> bool:
        """Whether the keyword is present at all, regardless of its shape"""
        return self.is_mapping and keyword in self.raw

    ## Scalar keywords #########################################################

    @property
    def type(self) -> Optional[str]:
        return self._get_str("type")

    @property
    def format(self) -> Optional[str]:
        return self._get_str("format")

    @property
    def description(self) -> Optional[str]:
        return self._get_str("description")

    @property
    def ref(self) -> Optional[str]:
        return self._get_str("$ref")

    @property
    def enum(self) -> Optional[List[str]]:
        """The enum values if this node declares a non-empty list of strings"""
        values = self._get("enum")
        if (
            isinstance(values, list)
            and values
            and all(isinstance(value, str) for value in values)
        ):
            return values
        return None

    ## Nested schemas ##########################################################

    @property
    def items(self) -> Optional["SchemaNode"]:
        """The array item schema, only when it is a JSON object"""
        items = self._get("items")
        if _is_string_key_dict(items):
            return SchemaNode(items)
        return None

    @property
    def properties(self) -> Optional[Dict[str, Any]]:
        return self._get_dict("properties")

    @property
    def definitions(self) -> Optional[Dict[str, Any]]:
        return self._get_dict("definitions")

    def sorted_properties(self) -> List[Tuple[str, "SchemaNode"]]:
        """The (name, node) pairs of `properties` in ascending name order. A
        `properties` keyword that is not an object reads as no properties.
        """
        return self._sorted_entries("properties")

    def sorted_definitions(self) -> List[Tuple[str, "SchemaNode"]]:
        """The (name, node) pairs of `definitions` in ascending name order"""
        return self._sorted_entries("definitions")

    ## Implementation Details ##################################################

    def _get(self, keyword: str) -> Any:
        if not self.is_mapping:
            return None
        return self.raw.get(keyword)

    def _get_str(self, keyword: str) -> Optional[str]:
        value = self._get(keyword)
        return value if isinstance(value, str) else None

    def _get_dict(self, keyword: str) -> Optional[Dict[str, Any]]:
        value = self._get(keyword)
        return value if _is_string_key_dict(value) else None

    def _sorted_entries(self, keyword: str) -> List[Tuple[str, "SchemaNode"]]:
        entries = self._get_dict(keyword)
        if entries is None:
            if self.has(keyword):
                log.warning(
                    "Ignoring '%s' that is not an object: <%s>",
                    keyword,
                    self.raw[keyword],
                )
            return []
        return [(name, SchemaNode(entries[name])) for name in sorted(entries)]
