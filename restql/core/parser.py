"""Parser for the restql schema definition language (SDL).

A character-level scanner, not token based. Example:

    type User {
      id: String @from("user_id") @transform("formatId")
      address: Address @from("location")
      hobbies: [Hobby]
      @endpoint(GET, "/users/{id}", "data.user")
    }

Types with at least one `@endpoint` become resources, keyed by lower-cased
name; all others become value types, keyed by their name as written.
"""

import logging
from pathlib import Path

from .errors import SchemaError
from .ir import Endpoint, Schema, SchemaField, SchemaResource, ValueType

CONTEXT_RADIUS = 20

FIELD_DIRECTIVES = ("from", "transform")
TYPE_DIRECTIVES = ("transform", "endpoint")


def _is_name_char(char: str) -> bool:
    return char == "_" or (char.isascii() and char.isalnum())


class SchemaParser:
    """Parses an SDL string into a Schema."""

    def __init__(self, text: str, logger: logging.Logger | None = None):
        self.text = text
        self.pos = 0
        self.schema = Schema()
        self._current: SchemaResource | None = None
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_file(cls, path: str | Path, logger: logging.Logger | None = None) -> "SchemaParser":
        """Create a parser for an SDL file on disk."""
        return cls(Path(path).read_text(encoding="utf-8"), logger=logger)

    def parse_sdl(self) -> Schema:
        """Parse the whole input and return the schema."""
        try:
            while True:
                self._skip_whitespace()
                if self.pos >= len(self.text):
                    break
                if self.text.startswith("type", self.pos):
                    self._parse_type()
                else:
                    self._fail(f"Unexpected character at position {self.pos}: {self.text[self.pos]}")
        except SchemaError as e:
            self._logger.error("Error parsing SDL at position %d: %s", self.pos, e.message)
            raise

        self._mark_resource_fields()
        self._logger.debug(
            "Parsed SDL: %d resource(s), %d value type(s)",
            len(self.schema.resources),
            len(self.schema.types),
        )
        return self.schema

    # =========================================================================
    # Types
    # =========================================================================

    def _parse_type(self):
        self._expect("type")
        type_name = self._parse_identifier()
        self._expect("{")

        self._current = SchemaResource(name=type_name)
        self._parse_type_body()
        self._expect("}")

        current = self._current
        self._current = None
        if current.endpoints:
            self.schema.resources[type_name.lower()] = current
            self._logger.debug("Registered resource %s", type_name)
        else:
            self.schema.types[type_name] = ValueType(
                name=type_name,
                fields=current.fields,
                transform=current.transform,
            )
            self._logger.debug("Registered value type %s", type_name)

    def _parse_type_body(self):
        while True:
            self._skip_whitespace()
            char = self._peek()
            if char == "}" or char == "":
                return
            if char == "@":
                name, value = self._parse_directive(TYPE_DIRECTIVES)
                if name == "transform":
                    self._current.transform = value
            else:
                self._parse_field()

    # =========================================================================
    # Fields
    # =========================================================================

    def _parse_field(self):
        field_name = self._parse_identifier()
        self._expect(":")
        field_type, is_nullable = self._parse_field_type()
        schema_field = SchemaField(type=field_type, is_nullable=is_nullable)

        # Field directives have to start on the declaring line; a directive
        # on its own line belongs to the enclosing type.
        self._skip_inline_whitespace()
        while self._peek() == "@":
            name, value = self._parse_directive(FIELD_DIRECTIVES + ("endpoint",))
            if name == "from":
                schema_field.source = value
            elif name == "transform":
                schema_field.transform = value
            self._skip_inline_whitespace()

        self._current.fields[field_name] = schema_field

    def _parse_field_type(self) -> tuple[str, bool]:
        self._skip_whitespace()
        field_type = ""
        while self._peek() == "[":
            self.pos += 1
            field_type += "["
            self._skip_whitespace()

        field_type += self._parse_identifier()

        self._skip_inline_whitespace()
        while self._peek() == "]":
            self.pos += 1
            field_type += "]"
            self._skip_inline_whitespace()

        is_nullable = True
        if self._peek() == "!":
            self.pos += 1
            field_type += "!"
            is_nullable = False
        return field_type, is_nullable

    # =========================================================================
    # Directives
    # =========================================================================

    def _parse_directive(self, allowed: tuple[str, ...]) -> tuple[str, str | None]:
        start = self.pos
        self._expect("@")
        name = self._parse_identifier()
        if name not in FIELD_DIRECTIVES + TYPE_DIRECTIVES:
            self.pos = start
            self._fail(f"Unknown directive: @{name}")
        if name not in allowed:
            self.pos = start
            self._fail(f"Directive @{name} is not allowed here")

        self._expect("(")
        if name == "endpoint":
            self._parse_endpoint_arguments()
            self._expect(")")
            return name, None

        value = self._parse_string()
        self._expect(")")
        return name, value

    def _parse_endpoint_arguments(self):
        method = self._parse_identifier()
        self._expect(",")
        path = self._parse_string()
        self._expect(",")
        data_path = self._parse_string()
        self._current.endpoints[method] = Endpoint(method=method, path=path)
        self._current.data_path = data_path

    # =========================================================================
    # Lexical helpers
    # =========================================================================

    def _parse_identifier(self) -> str:
        self._skip_whitespace()
        start = self.pos
        while self.pos < len(self.text) and _is_name_char(self.text[self.pos]):
            self.pos += 1
        if start == self.pos:
            self._fail(f"Expected identifier at position {self.pos}")
        return self.text[start:self.pos]

    def _parse_string(self) -> str:
        self._expect('"')
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] != '"':
            if self.text[self.pos] == "\\":
                self.pos += 1
            self.pos += 1
        if self.pos >= len(self.text):
            self.pos = start - 1
            self._fail(f"Unterminated string starting at position {self.pos}")
        value = self.text[start:self.pos]
        self.pos += 1
        return value

    def _expect(self, literal: str):
        self._skip_whitespace()
        if not self.text.startswith(literal, self.pos):
            found = self.text[self.pos:self.pos + len(literal)] or "end of input"
            self._fail(f'Expected "{literal}" but found "{found}" at position {self.pos}')
        self.pos += len(literal)

    def _skip_whitespace(self):
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _skip_inline_whitespace(self):
        while self.pos < len(self.text) and self.text[self.pos] in " \t\r":
            self.pos += 1

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _error_context(self) -> str:
        start = max(0, self.pos - CONTEXT_RADIUS)
        end = min(len(self.text), self.pos + CONTEXT_RADIUS)
        return f"...{self.text[start:self.pos]}[HERE>{self.text[self.pos:end]}..."

    def _fail(self, message: str):
        context = self._error_context()
        raise SchemaError(f"{message}. Context: {context}", context=context, position=self.pos)

    def _mark_resource_fields(self):
        owners = list(self.schema.resources.values()) + list(self.schema.types.values())
        for owner in owners:
            for schema_field in owner.fields.values():
                schema_field.is_resource = self.schema.is_resource_type(schema_field.type)


def parse_sdl(text: str, logger: logging.Logger | None = None) -> Schema:
    """Parse an SDL string into a Schema."""
    return SchemaParser(text, logger=logger).parse_sdl()
