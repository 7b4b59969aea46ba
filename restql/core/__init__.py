"""Core modules for querying REST APIs with restql."""

import logging

from .batch import BatchManager, LoopScheduler, Scheduler
from .cache import CacheEntry, CacheManager
from .coercion import SCALAR_COERCERS, ScalarCoercer, coerce_value
from .config import RestQLOptions
from .engine import RestQL, ResolvedField, cherry_pick, split_mutation_name
from .errors import (
    BatchCancelledError,
    ConfigurationError,
    MissingEndpointError,
    MissingVariableError,
    NetworkError,
    ParseError,
    RestQLError,
    SchemaError,
    UnexpectedEndOfInputError,
    UnknownResourceError,
    UnsupportedOperationError,
    ValidationError,
)
from .executor import RestExecutor
from .ir import (
    Endpoint,
    FieldSelection,
    HttpMethod,
    ParsedOperation,
    ParsedQuery,
    Schema,
    SchemaField,
    SchemaResource,
    ValueType,
    VariableDefinition,
)
from .parser import SchemaParser, parse_sdl
from .paths import get_path
from .query_parser import OperationParser
from .tokenizer import Token, Tokenizer, TokenType
from .transformers import Transformer, TransformerRegistry
from .transport import HttpxTransport, Transport
from .validator import SchemaValidator

logging.getLogger("restql").addHandler(logging.NullHandler())

__all__ = [
    # Engine
    "RestQL",
    "RestQLOptions",
    "ResolvedField",
    "cherry_pick",
    "split_mutation_name",
    # Errors
    "RestQLError",
    "NetworkError",
    "ValidationError",
    "ParseError",
    "UnexpectedEndOfInputError",
    "UnsupportedOperationError",
    "MissingVariableError",
    "SchemaError",
    "ConfigurationError",
    "UnknownResourceError",
    "MissingEndpointError",
    "BatchCancelledError",
    # IR types
    "Endpoint",
    "FieldSelection",
    "HttpMethod",
    "ParsedOperation",
    "ParsedQuery",
    "Schema",
    "SchemaField",
    "SchemaResource",
    "ValueType",
    "VariableDefinition",
    # Parsers
    "SchemaParser",
    "parse_sdl",
    "OperationParser",
    "Token",
    "Tokenizer",
    "TokenType",
    "SchemaValidator",
    # Runtime
    "BatchManager",
    "LoopScheduler",
    "Scheduler",
    "CacheEntry",
    "CacheManager",
    "RestExecutor",
    "HttpxTransport",
    "Transport",
    "Transformer",
    "TransformerRegistry",
    "ScalarCoercer",
    "SCALAR_COERCERS",
    "coerce_value",
    "get_path",
]
