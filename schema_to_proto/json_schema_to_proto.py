# Standard
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Set, Union
import json

# First Party
import alog

# Local
from .errors import (
    CyclicDefinitionError,
    InvalidInputError,
    MalformedSchemaError,
    SchemaTooDeepError,
)
from .registry import (
    REPEATED_PREFIX,
    ROOT_MESSAGE_NAME,
    EnumDefinition,
    FieldDefinition,
    MessageDefinition,
    MessageRegistry,
)
from .registry_to_file import registry_to_file
from .schema_node import SchemaNode
from .utils import sanitize_field_name, to_enum_value_name, to_message_name

log = alog.use_channel("S2PCV")


## Globals #####################################################################

DEFAULT_TYPE_MAPPINGS = {
    "string": "string",
    "integer": "int32",
    "number": "double",
    "boolean": "bool",
    "array": "repeated",
    "object": "message",
}

# Type used for anything the mapping table does not know
FALLBACK_PROTO_TYPE = "string"

# Formats that are always represented as a string
STRING_FORMATS = {"date-time"}

DEFAULT_PACKAGE_NAME = "schema"

DEFAULT_MAX_DEPTH = 64

DEFINITIONS_REF_PREFIX = "#/definitions/"

# Suffix appended to an array field's name to name its item schema
ARRAY_ITEM_SUFFIX = "Item"

# Field holding the inner values of a message that wraps a nested array
NESTED_ARRAY_FIELD_NAME = "items"

# Raw inputs accepted by the public functions
SchemaInput = Union[str, bytes, bytearray]


@dataclass
class ConverterOptions:
    """Caller-supplied settings for one conversion

    Attributes:
        package_name:  str
            The proto package written to the output file
        type_mappings:  Dict[str, str]
            Mapping from JSON Schema `type` to proto scalar type. A caller
            mapping replaces the default table entirely; types missing from it
            map to "string".
        emit_enums:  bool
            If set, nodes with a string `enum` become proto enums instead of
            plain strings
        allow_recursive_refs:  bool
            If set, a `$ref` back to a definition that is still being resolved
            becomes a self-referencing message field instead of an error
        max_depth:  int
            Maximum schema nesting depth before the conversion is aborted
    """

    package_name: str = DEFAULT_PACKAGE_NAME
    type_mappings: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_TYPE_MAPPINGS)
    )
    emit_enums: bool = False
    allow_recursive_refs: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH


## Interface ###################################################################


def json_schema_to_proto(
    schema_text: SchemaInput,
    options: Optional[ConverterOptions] = None,
    **kwargs,
) -> str:
    """Convert a JSON Schema document into the content of a proto3 file.

    Example:

    ```
    proto_text = json_schema_to_proto(
        '{"properties": {"name": {"type": "string"}}}',
        package_name="people",
    )
    ```

    Args:
        schema_text:  Union[str, bytes, bytearray]
            The JSON Schema document text

    Kwargs:
        options:  Optional[ConverterOptions]
            The settings for this conversion. Any other keyword arguments are
            treated as ConverterOptions fields and override these.

    Returns:
        proto_file_content:  str
            The serialized .proto file content

    Raises:
        InvalidInputError: The text is not a JSON object
        MalformedSchemaError: An array schema has no valid `items`
        SchemaTooDeepError: The schema nests deeper than `max_depth`
        CyclicDefinitionError: A `$ref` cycle was found and
            `allow_recursive_refs` is not set
    """
    options = make_options(options, **kwargs)
    registry = convert(parse_schema(schema_text), options)
    return registry_to_file(registry, options.package_name)


def parse_schema(schema_text: SchemaInput) -> Dict[str, Any]:
    """Parse the schema document, which must be a JSON object"""
    try:
        schema = json.loads(schema_text)
    except RecursionError as err:
        raise SchemaTooDeepError(
            "JSON schema is nested too deeply to be parsed"
        ) from err
    except (TypeError, ValueError) as err:
        raise InvalidInputError(f"failed to parse JSON schema: {err}") from err
    if not isinstance(schema, dict):
        raise InvalidInputError(
            f"JSON schema must be an object, got {type(schema).__name__}"
        )
    return schema


def convert(
    schema: Union[Dict[str, Any], SchemaNode],
    options: Optional[ConverterOptions] = None,
) -> MessageRegistry:
    """Collect all proto definitions of an already parsed schema

    The top-level `properties` are collected as the Root message and every
    entry of `definitions` as a message named after its key.
    """
    if not isinstance(schema, SchemaNode):
        schema = SchemaNode(schema)
    if not schema.is_mapping:
        raise InvalidInputError(f"JSON schema must be an object: {schema.raw}")
    return JSONSchemaConverter(schema, options or ConverterOptions()).convert()


def resolve_type(
    field_name: str,
    node: Union[Dict[str, Any], SchemaNode],
    registry: MessageRegistry,
    options: Optional[ConverterOptions] = None,
) -> str:
    """Resolve the proto type of a single schema node, adding any messages it
    defines to the given registry. An empty string means the node produces no
    field.
    """
    if not isinstance(node, SchemaNode):
        node = SchemaNode(node)
    converter = JSONSchemaConverter(
        SchemaNode({}), options or ConverterOptions(), registry=registry
    )
    return converter.resolve(field_name, node)


def get_proto_type(
    json_type: str,
    fmt: str = "",
    type_mappings: Optional[Dict[str, str]] = None,
) -> str:
    """Map a scalar JSON Schema type to its proto type. The date-time format
    is always a string, whatever the mapping says.
    """
    if fmt in STRING_FORMATS:
        return FALLBACK_PROTO_TYPE
    if type_mappings is None:
        type_mappings = DEFAULT_TYPE_MAPPINGS
    return type_mappings.get(json_type, FALLBACK_PROTO_TYPE)


def make_options(
    options: Optional[ConverterOptions] = None, **kwargs
) -> ConverterOptions:
    """Combine an options record with keyword overrides"""
    if options is None:
        return ConverterOptions(**kwargs)
    if kwargs:
        return replace(options, **kwargs)
    return options


## Impl ########################################################################


class JSONSchemaConverter:
    """Recursive walker that resolves schema nodes to proto types and collects
    the messages they define in a registry it owns for one conversion.
    """

    def __init__(
        self,
        schema: SchemaNode,
        options: ConverterOptions,
        *,
        registry: Optional[MessageRegistry] = None,
    ):
        self.schema = schema
        self.options = options
        self.registry = registry if registry is not None else MessageRegistry()
        self._definitions = schema.definitions or {}

        # Names of messages whose fields are being resolved right now. A nested
        # object with one of these names refers to the outer message.
        self._pending: Set[str] = set()

        # Definition keys currently being resolved through `$ref`
        self._ref_stack: List[str] = []

    def convert(self) -> MessageRegistry:
        """Walk the root properties and the definitions of the schema"""
        try:
            if self.schema.has("properties"):
                log.debug("Converting root properties")
                self._build_message(ROOT_MESSAGE_NAME, self.schema, depth=0)
            for definition_name, _ in self.schema.sorted_definitions():
                log.debug("Converting definition %s", definition_name)
                self._convert_definition(definition_name, depth=0)
        except RecursionError as err:
            raise self._too_deep_error() from err
        return self.registry

    def resolve(self, field_name: str, node: SchemaNode) -> str:
        try:
            return self._convert(field_name, node, depth=0)
        except RecursionError as err:
            raise self._too_deep_error(field_name) from err

    ## Implementation Details ##################################################

    def _convert(self, name: str, node: SchemaNode, depth: int) -> str:
        """This is the core recursive function. It returns the proto type for
        the node, or an empty string if the node cannot produce a field.
        """
        if depth > self.options.max_depth:
            raise SchemaTooDeepError(
                f"schema for {name} is nested deeper than {self.options.max_depth} levels"
            )
        if not node.is_mapping:
            log.warning("Skipping %s with invalid property format <%s>", name, node.raw)
            return ""

        ref = node.ref
        if ref is not None:
            log.debug2("Handling $ref %s for %s", ref, name)
            return self._convert_ref(name, ref, depth)

        node_type = node.type
        if node_type == "array":
            log.debug2("Handling array %s", name)
            return self._convert_array(name, node, depth)
        if node_type == "object":
            log.debug2("Handling object %s", name)
            return self._convert_object(name, node, depth)
        if self.options.emit_enums and node.enum and node_type in (None, "string"):
            log.debug2("Handling enum %s", name)
            return self._convert_enum(name, node)

        proto_type = get_proto_type(
            node_type or "", node.format or "", self.options.type_mappings
        )
        log.debug3("Resolved %s of type %s to %s", name, node_type, proto_type)
        return proto_type

    def _convert_array(self, name: str, node: SchemaNode, depth: int) -> str:
        items = node.items
        if items is None:
            raise MalformedSchemaError(f"invalid array items format for {name}")
        item_name = name + ARRAY_ITEM_SUFFIX
        item_type = self._convert(item_name, items, depth + 1)
        if not item_type:
            return ""

        # Arrays of arrays are held by a wrapper message named after the item
        if item_type.startswith(REPEATED_PREFIX):
            item_type = self._wrap_nested_array(item_name, item_type, items)
        return REPEATED_PREFIX + item_type

    def _wrap_nested_array(
        self, item_name: str, inner_type: str, items: SchemaNode
    ) -> str:
        message_name = to_message_name(item_name)
        log.debug3("Wrapping nested array %s in %s", item_name, message_name)
        if not self._is_known(message_name):
            self.registry.insert(
                MessageDefinition(
                    name=message_name,
                    fields=[
                        FieldDefinition(
                            name=NESTED_ARRAY_FIELD_NAME, type=inner_type, number=1
                        )
                    ],
                    description=items.description,
                )
            )
        return message_name

    def _convert_object(self, name: str, node: SchemaNode, depth: int) -> str:
        message_name = to_message_name(name)
        if not message_name:
            log.warning("Skipping object %s whose name has no message name", name)
            return ""
        return self._build_message(message_name, node, depth)

    def _build_message(self, message_name: str, node: SchemaNode, depth: int) -> str:
        """Register a message for the node's properties. The first occurrence of
        a message name wins; later occurrences only refer to it.
        """
        if self._is_known(message_name):
            log.debug2("Reusing message %s", message_name)
            return message_name

        self._pending.add(message_name)
        fields = []
        for prop_name, prop_node in node.sorted_properties():
            field_name = sanitize_field_name(prop_name)
            if not field_name:
                log.warning(
                    "Skipping property <%s> of %s with no field name",
                    prop_name,
                    message_name,
                )
                continue
            field_type = self._convert(prop_name, prop_node, depth + 1)
            if not field_type:
                log.warning(
                    "Skipping property %s of %s with no type", prop_name, message_name
                )
                continue
            field_def = FieldDefinition(
                name=field_name,
                type=field_type,
                number=len(fields) + 1,
                description=prop_node.description,
            )
            log.debug3(
                "Handling field [%s.%s] (%d)",
                message_name,
                field_def.name,
                field_def.number,
            )
            fields.append(field_def)
        self._pending.discard(message_name)

        self.registry.insert(
            MessageDefinition(
                name=message_name, fields=fields, description=node.description
            )
        )
        return message_name

    def _convert_enum(self, name: str, node: SchemaNode) -> str:
        enum_name = to_message_name(name)
        if not enum_name:
            log.warning("Skipping enum %s whose name has no enum name", name)
            return ""
        if self._is_known(enum_name):
            return enum_name

        values = []
        for raw_value in node.enum:
            value_name = to_enum_value_name(enum_name, raw_value)
            if any(value_name == existing for existing, _ in values):
                log.warning(
                    "Dropping enum value %s of %s that duplicates %s",
                    raw_value,
                    enum_name,
                    value_name,
                )
                continue
            values.append((value_name, len(values)))
        self.registry.insert(
            EnumDefinition(name=enum_name, values=values, description=node.description)
        )
        return enum_name

    def _convert_ref(self, name: str, ref: str, depth: int) -> str:
        if not ref.startswith(DEFINITIONS_REF_PREFIX):
            log.warning("Unsupported $ref <%s> for %s, using string", ref, name)
            return FALLBACK_PROTO_TYPE
        definition_name = ref[len(DEFINITIONS_REF_PREFIX) :]
        if definition_name not in self._definitions:
            log.warning("Unknown definition <%s> for %s, using string", ref, name)
            return FALLBACK_PROTO_TYPE

        if definition_name in self._ref_stack:
            cycle = self._ref_stack[self._ref_stack.index(definition_name) :]
            chain = " -> ".join(cycle + [definition_name])
            definition = SchemaNode(self._definitions[definition_name])
            if not (
                self.options.allow_recursive_refs
                and self._is_message_definition(definition)
            ):
                raise CyclicDefinitionError(
                    f"cyclic definition reference at {name}: {chain}"
                )
            log.debug2("Recursive reference %s", chain)
            return to_message_name(definition_name)

        return self._convert_definition(definition_name, depth + 1)

    def _convert_definition(self, definition_name: str, depth: int) -> str:
        """Resolve one entry of the top-level `definitions` under its own key"""
        node = SchemaNode(self._definitions[definition_name])
        self._ref_stack.append(definition_name)
        if self._is_message_definition(node):
            message_name = to_message_name(definition_name)
            if message_name:
                result = self._build_message(message_name, node, depth)
            else:
                log.warning(
                    "Skipping definition %s with no message name", definition_name
                )
                result = ""
        else:
            result = self._convert(definition_name, node, depth)
        self._ref_stack.pop()
        return result

    def _too_deep_error(self, name: str = ROOT_MESSAGE_NAME) -> SchemaTooDeepError:
        # The interpreter stack ran out before max_depth was reached
        return SchemaTooDeepError(
            f"schema for {name} is nested too deeply to convert with max_depth "
            f"{self.options.max_depth}"
        )

    def _is_known(self, name: str) -> bool:
        return self.registry.exists(name) or name in self._pending

    @staticmethod
    def _is_message_definition(node: SchemaNode) -> bool:
        """Definitions are messages when they are objects or, lacking a type,
        declare properties
        """
        node_type = node.type
        return node_type == "object" or (
            node_type is None and node.properties is not None
        )
