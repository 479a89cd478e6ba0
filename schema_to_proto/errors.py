"""
Exception types raised while converting a JSON Schema to proto3. All of them
derive from ValueError so callers that already guard schema conversion with
`except ValueError` keep working.
"""


class SchemaConversionError(ValueError):
    """Base class for all fatal conversion failures"""


class InvalidInputError(SchemaConversionError):
    """The input text is not well-formed JSON or is not a JSON object"""


class MalformedSchemaError(SchemaConversionError):
    """A structural requirement of the schema is violated (e.g. an array node
    without a valid `items` schema)
    """


class SchemaTooDeepError(SchemaConversionError):
    """The schema nests deeper than the configured maximum depth"""


class CyclicDefinitionError(SchemaConversionError):
    """A chain of `$ref`s leads back to a definition that is still being
    resolved
    """
