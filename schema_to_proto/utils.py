"""
Common utilities for naming proto definitions and registering generated files
"""

# Standard
from typing import Dict, List, Tuple
import re

# Third Party
from google.protobuf import descriptor_pb2
import google.protobuf.descriptor_pool

# First Party
import alog

log = alog.use_channel("S2PUTL")

## Globals #####################################################################

# Separators that split a schema name into the segments of a message name
_MESSAGE_NAME_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")
_INVALID_FIELD_CHARS = re.compile(r"[^a-z0-9]")
_INVALID_ENUM_VALUE_CHARS = re.compile(r"[^A-Z0-9]")
_LEADING_DIGITS = re.compile(r"^[0-9]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Used when a field or message name consists only of digits
FIELD_NAME_PLACEHOLDER = "field"


## Naming ######################################################################


def to_message_name(name: str) -> str:
    """Convert a schema property or definition name to a PascalCase message
    name.

    The name is split on every run of non-alphanumeric characters, each
    non-empty segment is lowercased and then capitalized, and the segments are
    joined with no separator. For example, "user_profile", "user-profile" and
    "user@profile" all become "UserProfile" while "userProfile" becomes
    "Userprofile". As with field names, a leading run of digits is moved to the
    end (e.g. "1st_place" -> "StPlace1").
    """
    message_name = "".join(
        segment[0].upper() + segment[1:]
        for segment in (
            part.lower() for part in _MESSAGE_NAME_SEPARATORS.split(name) if part
        )
    )
    message_name = _move_leading_digits(message_name)
    return message_name[:1].upper() + message_name[1:]


def sanitize_field_name(name: str) -> str:
    """Convert a schema property name to a valid proto field identifier

    Proto field names may not start with a digit, so a leading run of digits is
    moved to the end of the name (e.g. "123user" -> "user123"). If only digits
    remain, the placeholder "field" is put in front of them.
    """
    return _move_leading_digits(_INVALID_FIELD_CHARS.sub("_", name.lower()))


def to_enum_value_name(enum_name: str, value: str) -> str:
    """Build the package-unique name for one enum value, prefixed with the
    UPPER_SNAKE form of the enum name (e.g. ("OrderStatus", "in-progress") ->
    "ORDER_STATUS_IN_PROGRESS")
    """
    prefix = _CAMEL_BOUNDARY.sub("_", enum_name).upper()
    return f"{prefix}_{_INVALID_ENUM_VALUE_CHARS.sub('_', value.upper())}"


## Descriptor Pools ############################################################


def safe_add_fd_to_pool(
    fd_proto: descriptor_pb2.FileDescriptorProto,
    descriptor_pool: google.protobuf.descriptor_pool.DescriptorPool,
):
    """Safely add a new file descriptor to a descriptor pool. If a file with the
    same name already exists, the two are compared and the add is skipped when
    they define the same package, messages and enums. If they differ, a
    TypeError is raised.
    """
    try:
        existing_fd = descriptor_pool.FindFileByName(fd_proto.name)
        existing_proto = descriptor_pb2.FileDescriptorProto()
        existing_fd.CopyToProto(existing_proto)
        if not _are_same_file_descriptors(fd_proto, existing_proto):
            raise TypeError(
                f"Cannot add new file {fd_proto.name} to descriptor pool, file already exists with different content"
            )
        log.debug2("File %s already present in pool", fd_proto.name)
    except KeyError:
        try:
            descriptor_pool.AddSerializedFile(fd_proto.SerializeToString())
        except TypeError as err:
            # Usually a duplicate symbol defined by a file with another name
            raise TypeError(
                f"Failed to add {fd_proto.name} to descriptor pool with error: [{err}]"
            ) from err


## Implementation Details ######################################################


def _are_same_file_descriptors(
    d1: descriptor_pb2.FileDescriptorProto, d2: descriptor_pb2.FileDescriptorProto
) -> bool:
    """Two generated files are the same if they share a package and define the
    same messages (field names, numbers, labels and types) and enums
    """
    return (
        d1.package == d2.package
        and list(d1.dependency) == list(d2.dependency)
        and _definition_signatures(d1) == _definition_signatures(d2)
    )


def _definition_signatures(
    fd_proto: descriptor_pb2.FileDescriptorProto,
) -> Tuple[Dict[str, List[tuple]], Dict[str, List[tuple]]]:
    messages = {
        msg.name: sorted(
            # Type names may or may not carry the leading "." depending on
            # whether they came from a pool or were written by hand
            (
                field.name,
                field.number,
                field.label,
                field.type,
                field.type_name.lstrip("."),
            )
            for field in msg.field
        )
        for msg in fd_proto.message_type
    }
    enums = {
        enum.name: [(val.name, val.number) for val in enum.value]
        for enum in fd_proto.enum_type
    }
    return messages, enums


def _move_leading_digits(name: str) -> str:
    match = _LEADING_DIGITS.match(name)
    if not match:
        return name
    digits = match.group(0)
    return (name[len(digits) :] or FIELD_NAME_PLACEHOLDER) + digits
