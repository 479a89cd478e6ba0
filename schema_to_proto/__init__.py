"""
This library holds utilities for converting JSON Schema to Protobuf.

References:
* https://json-schema.org/
* https://developers.google.com/protocol-buffers

Example:

```
import schema_to_proto

proto_text = schema_to_proto.json_schema_to_proto(
    '''{
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "tags": {"type": "array", "items": {"type": "string"}}
        }
    }''',
    package_name="foobar",
)

def write_foo_proto(filename: str):
    \"\"\"Write out the .proto file to the given filename\"\"\"
    with open(filename, "w") as handle:
        handle.write(proto_text)
```
"""

# Local
from .errors import (
    CyclicDefinitionError,
    InvalidInputError,
    MalformedSchemaError,
    SchemaConversionError,
    SchemaTooDeepError,
)
from .json_schema_to_proto import (
    DEFAULT_TYPE_MAPPINGS,
    ConverterOptions,
    convert,
    get_proto_type,
    json_schema_to_proto,
    resolve_type,
)
from .registry import (
    EnumDefinition,
    FieldDefinition,
    MessageDefinition,
    MessageRegistry,
)
from .registry_to_descriptor import json_schema_to_descriptor, registry_to_descriptor
from .registry_to_file import registry_to_file
from .utils import sanitize_field_name, to_message_name
