"""
This module implements serialization of a MessageRegistry to the content of a
portable .proto file
"""

# Standard
from typing import List, Optional

# First Party
import alog

# Local
from .registry import (
    ROOT_MESSAGE_NAME,
    EnumDefinition,
    FieldDefinition,
    MessageDefinition,
    MessageRegistry,
)

log = alog.use_channel("S2PFL")

## Globals #####################################################################

PROTO_FILE_SYNTAX = "proto3"

PROTO_FILE_INDENT = "  "

PROTO_FILE_COMMENT = "//"


## Interface ###################################################################


def registry_to_file(registry: MessageRegistry, package: str) -> str:
    """Serialize the content of a .proto file from a MessageRegistry

    The file starts with the syntax and package lines. Definitions follow in
    lexicographic name order, except that the Root message always comes first,
    and are separated by a single blank line.

    Args:
        registry:  MessageRegistry
            The collected message and enum definitions
        package:  str
            The proto package name for the file

    Returns:
        proto_file_content:  str
            The serialized file content for the .proto file
    """
    proto_file_lines = [f'syntax = "{PROTO_FILE_SYNTAX}";', "", f"package {package};"]
    for name in ordered_definition_names(registry):
        definition = registry.get(name)
        proto_file_lines.append("")
        if isinstance(definition, EnumDefinition):
            proto_file_lines.extend(_enum_definition_to_file(definition))
        else:
            proto_file_lines.extend(_message_definition_to_file(definition))
    log.debug2("Serialized %d definitions", len(registry))
    return "\n".join(proto_file_lines) + "\n"


def ordered_definition_names(registry: MessageRegistry) -> List[str]:
    """The emission order: sorted names with Root moved to the front"""
    names = registry.names()
    if ROOT_MESSAGE_NAME in names:
        names.remove(ROOT_MESSAGE_NAME)
        names.insert(0, ROOT_MESSAGE_NAME)
    return names


## Impl ########################################################################


def _indent_lines(indent: int, lines: List[str]) -> List[str]:
    """Add indentation to the given lines"""
    if not indent:
        return lines
    return [indent * PROTO_FILE_INDENT + line if line else line for line in lines]


def _comment_lines(description: Optional[str]) -> List[str]:
    """One comment line per line of the description, without re-wrapping"""
    if not description:
        return []
    return [
        f"{PROTO_FILE_COMMENT} {line}" if line else PROTO_FILE_COMMENT
        for line in description.split("\n")
    ]


def _message_definition_to_file(message: MessageDefinition) -> List[str]:
    """Make the string representation of a message"""
    lines = _comment_lines(message.description)
    lines.append(f"message {message.name} {{")
    for field in message.fields:
        lines.extend(_field_definition_to_file(field, indent=1))
    lines.append("}")
    return lines


def _field_definition_to_file(field: FieldDefinition, indent: int = 0) -> List[str]:
    """Get the string version of a field and its comment"""
    lines = _comment_lines(field.description)
    lines.append(f"{field.type} {field.name} = {field.number};")
    return _indent_lines(indent, lines)


def _enum_definition_to_file(enum: EnumDefinition) -> List[str]:
    """Make the string representation of an enum"""
    lines = _comment_lines(enum.description)
    lines.append(f"enum {enum.name} {{")
    for value_name, value_number in enum.values:
        lines.append(f"{PROTO_FILE_INDENT}{value_name} = {value_number};")
    lines.append("}")
    return lines
