"""Structural checks run on a parsed schema before an engine uses it."""

import logging
from collections.abc import Mapping
from typing import Any

from .errors import SchemaError
from .ir import SCALAR_TYPES, HttpMethod, Schema, SchemaField, ValueType, base_type_name


class SchemaValidator:
    """Validates a Schema against itself and a transformer registry.

    Any violation raises SchemaError immediately.
    """

    def __init__(self, transformers: Mapping[str, Any] | None = None, logger: logging.Logger | None = None):
        self.transformers = transformers if transformers is not None else {}
        self.schema = Schema()
        self._logger = logger or logging.getLogger(__name__)

    def validate_schema(self, schema: Schema):
        self.schema = schema
        self._logger.debug("Starting schema validation")

        for name, resource in schema.resources.items():
            self._validate_endpoints(name, resource)
            self._validate_owner(name, resource)

        for name, value_type in schema.types.items():
            if name.lower() in schema.resources:
                raise SchemaError(f"Type {name} is declared both as a resource and as a value type")
            self._validate_owner(name, value_type)

        self._logger.debug("Schema validation completed successfully")

    def _validate_endpoints(self, name: str, resource):
        if not isinstance(resource.endpoints, dict) or not resource.endpoints:
            raise SchemaError(f"Resource {name} must declare at least one endpoint")
        for method, endpoint in resource.endpoints.items():
            if method not in HttpMethod.__members__:
                raise SchemaError(f"Invalid HTTP method {method} for resource {name}")
            if not isinstance(endpoint.path, str):
                raise SchemaError(f"Path for {method} endpoint of resource {name} must be a string")

    def _validate_owner(self, name: str, owner: ValueType):
        if not isinstance(owner.fields, dict):
            raise SchemaError(f"Fields for resource {name} must be a mapping")
        for field_name, schema_field in owner.fields.items():
            self._validate_field(name, field_name, schema_field)
        if owner.transform:
            self._validate_transform(owner.transform, f"resource {name}")

    def _validate_field(self, owner: str, field_name: str, schema_field: SchemaField):
        where = f"field {field_name} of resource {owner}"
        if not isinstance(schema_field.type, str):
            raise SchemaError(f"Type of {where} must be a string")
        if not isinstance(schema_field.is_nullable, bool):
            raise SchemaError(f"is_nullable property of {where} must be a boolean")
        if schema_field.source is not None and not isinstance(schema_field.source, str):
            raise SchemaError(f"From property of {where} must be a string")

        self._validate_field_type(schema_field.type, where)

        if schema_field.transform:
            self._validate_transform(schema_field.transform, where)

    def _validate_field_type(self, type_name: str, where: str):
        base = base_type_name(type_name)
        known = (
            base in SCALAR_TYPES
            or base.lower() in self.schema.resources
            or base in self.schema.types
        )
        if not known:
            raise SchemaError(f"Invalid type: {type_name} for {where}")

        if type_name.count("[") != type_name.count("]"):
            raise SchemaError(f"Invalid array type: {type_name} for {where}")

        bang = type_name.find("!")
        if bang != -1 and (bang != len(type_name) - 1 or bang < type_name.rfind("]")):
            raise SchemaError(f"Invalid nullability placement in type: {type_name} for {where}")

    def _validate_transform(self, transform: str, where: str):
        if not callable(self.transformers.get(transform)):
            raise SchemaError(f"Transform {transform} for {where} must be a registered function")
