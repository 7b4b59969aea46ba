"""Intermediate representation for restql schemas and operations.

Schemas come out of the SDL parser, operations out of the operation
parser. Both are plain dataclasses so the engine can walk them without
caring which parser built them.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

SCALAR_TYPES = ("Boolean", "String", "Int")

_TYPE_DECORATIONS = re.compile(r"[\[\]!]")


class HttpMethod(str, Enum):
    """HTTP verbs an endpoint can be declared for."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    def __str__(self) -> str:
        return self.value


def base_type_name(type_name: str) -> str:
    """Strip list brackets and the non-null marker: '[User]!' -> 'User'."""
    return _TYPE_DECORATIONS.sub("", type_name)


# =============================================================================
# Schema
# =============================================================================


@dataclass
class Endpoint:
    """A REST endpoint. `path` may hold `{name}` placeholders."""
    method: str
    path: str


@dataclass
class SchemaField:
    """A field of a resource or value type.

    `type` is the raw SDL token, e.g. 'String', '[Hobby]' or 'Int!'.
    `source` is the `@from` path into the raw payload.
    """
    type: str
    is_nullable: bool = True
    source: str | None = None
    transform: str | None = None
    is_resource: bool = False

    @property
    def base_type(self) -> str:
        return base_type_name(self.type)

    @property
    def is_list(self) -> bool:
        return "[" in self.type


@dataclass
class ValueType:
    """A nested structure without endpoints (e.g. Address)."""
    name: str
    fields: dict[str, SchemaField] = field(default_factory=dict)
    transform: str | None = None


@dataclass
class SchemaResource(ValueType):
    """A type with at least one REST endpoint."""
    endpoints: dict[str, Endpoint] = field(default_factory=dict)
    data_path: str | None = None

    def get_endpoint(self, method: HttpMethod | str) -> Endpoint | None:
        return self.endpoints.get(str(method))


@dataclass
class Schema:
    """Resources keyed by lower-cased name, value types by original name."""
    resources: dict[str, SchemaResource] = field(default_factory=dict)
    types: dict[str, ValueType] = field(default_factory=dict)

    def get_resource(self, name: str) -> SchemaResource | None:
        """Look up a resource; resource names are case-insensitive."""
        return self.resources.get(name.lower())

    def get_type(self, name: str) -> ValueType | None:
        """Look up a value type; value type names are case-sensitive."""
        return self.types.get(name)

    def is_resource_type(self, type_name: str) -> bool:
        return base_type_name(type_name).lower() in self.resources


# =============================================================================
# Operations
# =============================================================================


@dataclass
class VariableDefinition:
    """A declared operation variable, e.g. `$id: String!`."""
    type: str
    is_required: bool = False


@dataclass
class FieldSelection:
    """A requested field.

    A leaf (`fields is None`) means "include the scalar as-is"; otherwise
    `fields` holds the nested selection.
    """
    args: dict[str, str] = field(default_factory=dict)
    fields: dict[str, "FieldSelection"] | None = None

    @property
    def is_leaf(self) -> bool:
        return self.fields is None


@dataclass
class ParsedQuery:
    """A top-level selection: `user(id: $id) { ... }`."""
    query_name: str
    args: dict[str, str] = field(default_factory=dict)
    fields: dict[str, FieldSelection] = field(default_factory=dict)


@dataclass
class ParsedOperation:
    """A parsed query or mutation string."""
    operation_type: str  # 'query' or 'mutation'
    operation_name: str
    variables: dict[str, VariableDefinition] = field(default_factory=dict)
    queries: list[ParsedQuery] = field(default_factory=list)

    @property
    def required_variables(self) -> list[str]:
        return [name for name, var in self.variables.items() if var.is_required]
