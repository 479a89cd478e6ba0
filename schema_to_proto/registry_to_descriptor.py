"""
This module compiles a MessageRegistry into a protobuf FileDescriptor so that
the generated definitions can be checked by the protobuf runtime and used to
create message classes without running protoc.
"""

# Standard
from typing import Optional

# Third Party
from google.protobuf import descriptor as _descriptor
from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool as _descriptor_pool

# First Party
import alog

# Local
from .json_schema_to_proto import (
    ConverterOptions,
    SchemaInput,
    convert,
    make_options,
    parse_schema,
)
from .registry import (
    EnumDefinition,
    FieldDefinition,
    MessageDefinition,
    MessageRegistry,
)
from .utils import safe_add_fd_to_pool

log = alog.use_channel("S2PDSC")

## Globals #####################################################################

_NON_SCALAR_TYPES = {
    _descriptor.FieldDescriptor.TYPE_MESSAGE,
    _descriptor.FieldDescriptor.TYPE_ENUM,
    _descriptor.FieldDescriptor.TYPE_GROUP,
}

# Mapping from proto scalar keywords (e.g. "int32") to descriptor type values
PROTO_SCALAR_TYPES = {
    type_name[5:].lower(): type_val
    for type_name, type_val in vars(_descriptor.FieldDescriptor).items()
    if type_name.startswith("TYPE_") and type_val not in _NON_SCALAR_TYPES
}


## Interface ###################################################################


def registry_to_descriptor(
    registry: MessageRegistry,
    package: str,
    *,
    file_name: Optional[str] = None,
    descriptor_pool: Optional[_descriptor_pool.DescriptorPool] = None,
) -> _descriptor.FileDescriptor:
    """Add the registry's definitions to a descriptor pool as one proto file

    Args:
        registry:  MessageRegistry
            The collected message and enum definitions
        package:  str
            The proto package for the definitions

    Kwargs:
        file_name:  Optional[str]
            Name of the file in the pool. Defaults to "<package>.proto".
        descriptor_pool:  Optional[descriptor_pool.DescriptorPool]
            The pool to add the file to. Defaults to the global pool.

    Returns:
        file_descriptor:  descriptor.FileDescriptor
            The descriptor for the new (or identical existing) file

    Raises:
        ValueError: A field refers to a type that is neither a proto scalar
            nor a registered definition
        TypeError: The pool already holds conflicting definitions
    """
    if descriptor_pool is None:
        log.debug2("Using default descriptor pool")
        descriptor_pool = _descriptor_pool.Default()
    file_name = file_name or f"{package}.proto"

    message_protos = []
    enum_protos = []
    for definition in registry:
        if isinstance(definition, EnumDefinition):
            enum_protos.append(_enum_definition_to_proto(definition))
        else:
            message_protos.append(
                _message_definition_to_proto(definition, registry, package)
            )

    log.debug("Creating FileDescriptorProto %s", file_name)
    fd_proto = descriptor_pb2.FileDescriptorProto(
        name=file_name,
        package=package,
        syntax="proto3",
        message_type=message_protos,
        enum_type=enum_protos,
    )
    log.debug4("Full FileDescriptorProto:\n%s", fd_proto)
    safe_add_fd_to_pool(fd_proto, descriptor_pool)
    return descriptor_pool.FindFileByName(file_name)


def json_schema_to_descriptor(
    schema_text: SchemaInput,
    options: Optional[ConverterOptions] = None,
    *,
    file_name: Optional[str] = None,
    descriptor_pool: Optional[_descriptor_pool.DescriptorPool] = None,
    **kwargs,
) -> _descriptor.FileDescriptor:
    """Convert a JSON Schema document directly into a FileDescriptor. Extra
    keyword arguments override fields of the options.
    """
    options = make_options(options, **kwargs)
    registry = convert(parse_schema(schema_text), options)
    return registry_to_descriptor(
        registry,
        options.package_name,
        file_name=file_name,
        descriptor_pool=descriptor_pool,
    )


## Impl ########################################################################


def _enum_definition_to_proto(
    enum: EnumDefinition,
) -> descriptor_pb2.EnumDescriptorProto:
    return descriptor_pb2.EnumDescriptorProto(
        name=enum.name,
        value=[
            descriptor_pb2.EnumValueDescriptorProto(name=value_name, number=number)
            for value_name, number in enum.values
        ],
    )


def _message_definition_to_proto(
    message: MessageDefinition,
    registry: MessageRegistry,
    package: str,
) -> descriptor_pb2.DescriptorProto:
    return descriptor_pb2.DescriptorProto(
        name=message.name,
        field=[
            _field_definition_to_proto(field, message, registry, package)
            for field in message.fields
        ],
    )


def _field_definition_to_proto(
    field: FieldDefinition,
    message: MessageDefinition,
    registry: MessageRegistry,
    package: str,
) -> descriptor_pb2.FieldDescriptorProto:
    field_kwargs = {
        "name": field.name,
        "number": field.number,
        "label": _descriptor.FieldDescriptor.LABEL_OPTIONAL,
    }
    if field.is_repeated:
        field_kwargs["label"] = _descriptor.FieldDescriptor.LABEL_REPEATED

    type_str = field.element_type
    if type_str in PROTO_SCALAR_TYPES:
        field_kwargs["type"] = PROTO_SCALAR_TYPES[type_str]
    else:
        referenced = registry.get(type_str)
        if referenced is None:
            raise ValueError(
                f"Invalid type specifier {type_str} for field {message.name}.{field.name}"
            )
        if isinstance(referenced, EnumDefinition):
            field_kwargs["type"] = _descriptor.FieldDescriptor.TYPE_ENUM
        else:
            field_kwargs["type"] = _descriptor.FieldDescriptor.TYPE_MESSAGE
        field_kwargs["type_name"] = (
            f".{package}.{type_str}" if package else f".{type_str}"
        )
    return descriptor_pb2.FieldDescriptorProto(**field_kwargs)
