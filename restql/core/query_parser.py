"""Recursive-descent parser for restql query and mutation strings.

Grammar:

    operation  := ('query' | 'mutation') NAME variables? '{' selection* '}'
    variables  := '(' (VAR ':' TYPE '!'? ','?)* ')'
    selection  := NAME arguments? '{' field* '}'
    field      := NAME arguments? ('{' field* '}')? ','?
    arguments  := '(' (NAME ':' (STRING | IDENTIFIER) ','?)* ')'
"""

import logging

from .errors import (
    ParseError,
    UnexpectedEndOfInputError,
    UnsupportedOperationError,
)
from .ir import FieldSelection, ParsedOperation, ParsedQuery, VariableDefinition
from .tokenizer import Token, Tokenizer, TokenType

OPERATION_TYPES = ("query", "mutation")


class OperationParser:
    """Parses an operation string into a ParsedOperation.

    Parsing is all-or-nothing: the first unexpected token raises.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._tokenizer = Tokenizer()
        self._tokens: list[Token] = []
        self._pos = 0
        self._logger = logger or logging.getLogger(__name__)

    def parse(self, text: str) -> ParsedOperation:
        self._tokens = self._tokenizer.tokenize(text)
        self._pos = 0

        operation_type = self._parse_operation_type()
        operation_name = self._consume(TokenType.IDENTIFIER).value
        variables = self._parse_variables()
        queries = self._parse_queries()
        self._consume(TokenType.EOF)

        operation = ParsedOperation(
            operation_type=operation_type,
            operation_name=operation_name,
            variables=variables,
            queries=queries,
        )
        self._logger.debug(
            "Parsed %s %s with %d selection(s)", operation_type, operation_name, len(queries)
        )
        return operation

    def _parse_operation_type(self) -> str:
        token = self._consume(TokenType.IDENTIFIER)
        operation_type = token.value.lower()
        if operation_type not in OPERATION_TYPES:
            raise UnsupportedOperationError(f"Invalid operation type: {token.value}")
        return operation_type

    def _parse_variables(self) -> dict[str, VariableDefinition]:
        variables: dict[str, VariableDefinition] = {}
        if self._peek().type != TokenType.LEFT_PAREN:
            return variables

        self._consume(TokenType.LEFT_PAREN)
        while self._peek().type != TokenType.RIGHT_PAREN:
            name = self._consume(TokenType.IDENTIFIER).value
            self._consume(TokenType.COLON)
            var_type = self._consume(TokenType.IDENTIFIER).value
            is_required = self._peek().type == TokenType.EXCLAMATION
            if is_required:
                self._consume(TokenType.EXCLAMATION)
                var_type += "!"
            variables[name.lstrip("$")] = VariableDefinition(type=var_type, is_required=is_required)
            self._skip_comma()
        self._consume(TokenType.RIGHT_PAREN)
        return variables

    def _parse_queries(self) -> list[ParsedQuery]:
        queries: list[ParsedQuery] = []
        self._consume(TokenType.LEFT_BRACE)
        while self._peek().type != TokenType.RIGHT_BRACE:
            queries.append(self._parse_query())
            self._skip_comma()
        self._consume(TokenType.RIGHT_BRACE)
        return queries

    def _parse_query(self) -> ParsedQuery:
        name = self._consume(TokenType.IDENTIFIER).value
        args = self._parse_arguments() if self._peek().type == TokenType.LEFT_PAREN else {}
        fields = self._parse_fields()
        return ParsedQuery(query_name=name, args=args, fields=fields)

    def _parse_fields(self) -> dict[str, FieldSelection]:
        fields: dict[str, FieldSelection] = {}
        self._consume(TokenType.LEFT_BRACE)
        while self._peek().type != TokenType.RIGHT_BRACE:
            name = self._consume(TokenType.IDENTIFIER).value
            args = self._parse_arguments() if self._peek().type == TokenType.LEFT_PAREN else {}
            if self._peek().type == TokenType.LEFT_BRACE:
                fields[name] = FieldSelection(args=args, fields=self._parse_fields())
            else:
                fields[name] = FieldSelection(args=args)
            self._skip_comma()
        self._consume(TokenType.RIGHT_BRACE)
        return fields

    def _parse_arguments(self) -> dict[str, str]:
        args: dict[str, str] = {}
        self._consume(TokenType.LEFT_PAREN)
        while self._peek().type != TokenType.RIGHT_PAREN:
            name = self._consume(TokenType.IDENTIFIER).value
            self._consume(TokenType.COLON)
            args[name] = self._parse_value()
            self._skip_comma()
        self._consume(TokenType.RIGHT_PAREN)
        return args

    def _parse_value(self) -> str:
        token = self._consume(TokenType.IDENTIFIER, TokenType.STRING)
        if token.type == TokenType.STRING:
            return token.value[1:-1]
        # `$name` references are kept verbatim and resolved at execution time
        return token.value

    def _skip_comma(self):
        if self._peek().type == TokenType.COMMA:
            self._consume(TokenType.COMMA)

    def _consume(self, *expected: TokenType) -> Token:
        token = self._peek()
        if token.type not in expected:
            wanted = " or ".join(t.value for t in expected)
            if token.type == TokenType.EOF:
                raise UnexpectedEndOfInputError(
                    f"Unexpected end of input at position {token.pos}. Expected: {wanted}",
                    position=token.pos,
                )
            raise ParseError(
                f"Unexpected token: {token.value} ({token.type.value}) at position {token.pos}. "
                f"Expected: {wanted}",
                position=token.pos,
            )
        self._pos += 1
        return token

    def _peek(self) -> Token:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        end = self._tokens[-1].pos if self._tokens else 0
        return Token(TokenType.EOF, "", end)
