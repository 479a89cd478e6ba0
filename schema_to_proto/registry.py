"""
The in-memory collection of proto definitions discovered during a single
conversion. The registry is write-once per name: the first definition inserted
under a name is kept and later inserts under that name are ignored.
"""

# Standard
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

# First Party
import alog

log = alog.use_channel("S2PREG")

## Globals #####################################################################

# Reserved name of the message holding the top-level schema properties
ROOT_MESSAGE_NAME = "Root"

REPEATED_PREFIX = "repeated "


## Definitions #################################################################


@dataclass
class FieldDefinition:
    """One numbered field of a message"""

    name: str
    type: str
    number: int
    description: Optional[str] = None

    @property
    def is_repeated(self) -> bool:
        return self.type.startswith(REPEATED_PREFIX)

    @property
    def element_type(self) -> str:
        """The field's type with any `repeated` qualifier removed"""
        if self.is_repeated:
            return self.type[len(REPEATED_PREFIX) :]
        return self.type


@dataclass
class MessageDefinition:
    name: str
    fields: List[FieldDefinition] = field(default_factory=list)
    description: Optional[str] = None


@dataclass
class EnumDefinition:
    name: str
    # Ordered (value name, value number) pairs, numbered from 0
    values: List[Tuple[str, int]] = field(default_factory=list)
    description: Optional[str] = None


Definition = Union[MessageDefinition, EnumDefinition]


## Registry ####################################################################


class MessageRegistry:
    """Mapping from definition name to definition for one conversion call"""

    def __init__(self):
        self._definitions: Dict[str, Definition] = {}

    def __contains__(self, name: str) -> bool:
        return self.exists(name)

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[Definition]:
        for name in self.names():
            yield self._definitions[name]

    def exists(self, name: str) -> bool:
        return name in self._definitions

    def insert(self, definition: Definition) -> bool:
        """Add the definition unless its name is already taken

        Returns:
            inserted:  bool
                True if the definition was added, False if an earlier
                definition with the same name was kept instead
        """
        if definition.name in self._definitions:
            log.debug2("Keeping existing definition for %s", definition.name)
            return False
        log.debug3("Registering definition %s", definition.name)
        self._definitions[definition.name] = definition
        return True

    def get(self, name: str) -> Optional[Definition]:
        return self._definitions.get(name)

    def names(self) -> List[str]:
        """All registered names in lexicographic order"""
        return sorted(self._definitions)
