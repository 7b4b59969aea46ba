"""The restql engine.

Owns the schema, cache, batcher and executor, and turns operation strings
into shaped result trees.

Example:
    restql = RestQL(SDL, {"default": "https://api.example.com"})
    result = await restql.execute(
        "query GetUser($id: String!) { user(id: $id) { id name } }",
        {"id": "42"},
    )
"""

import asyncio
import functools
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .batch import BatchManager, Scheduler
from .cache import CacheManager
from .coercion import coerce_value
from .config import RestQLOptions
from .errors import (
    MissingEndpointError,
    MissingVariableError,
    RestQLError,
    UnknownResourceError,
    UnsupportedOperationError,
    ValidationError,
)
from .executor import RestExecutor
from .ir import (
    FieldSelection,
    HttpMethod,
    ParsedOperation,
    ParsedQuery,
    SchemaResource,
    ValueType,
)
from .parser import SchemaParser
from .paths import get_path
from .query_parser import OperationParser
from .transformers import TransformerRegistry, Transformer
from .transport import HttpxTransport, Transport
from .validator import SchemaValidator
from .variables import resolve_arguments

MUTATION_METHODS = {
    "create": HttpMethod.POST,
    "update": HttpMethod.PUT,
    "patch": HttpMethod.PATCH,
    "delete": HttpMethod.DELETE,
}

EVENT_TYPES = ("query", "mutation")

Subscriber = Callable[[Any], Any]


@dataclass
class ResolvedField:
    """Shaped data for one resource fetch plus the untouched response."""
    shaped_data: Any
    raw_response: Any


def split_mutation_name(name: str) -> tuple[str, str]:
    """Split 'createUser' into ('create', 'User')."""
    lowered = name.lower()
    for operation in MUTATION_METHODS:
        if lowered.startswith(operation):
            return operation, name[len(operation):]
    raise UnsupportedOperationError(f"Unknown mutation type: {name}")


def cherry_pick(data: Any, fields: Mapping[str, FieldSelection]) -> Any:
    """Keep only the explicitly requested fields of `data`, recursively."""
    if isinstance(data, list):
        return [cherry_pick(item, fields) for item in data]
    if not isinstance(data, dict):
        return data

    picked = {}
    for name, selection in fields.items():
        value = data.get(name)
        if not selection.is_leaf and isinstance(value, (dict, list)):
            value = cherry_pick(value, selection.fields)
        picked[name] = value
    return picked


class RestQL:
    """Executes restql queries and mutations against REST endpoints.

    Examples:
        restql = RestQL(sdl, {"default": "https://api.example.com"})

        # Options as a mapping or a RestQLOptions instance
        restql = RestQL(sdl, base_urls, {"cache_timeout": 60, "headers": {"X-Key": "k"}})

        # Transforms referenced by @transform directives
        restql = RestQL(sdl, base_urls, transformers={"fullName": full_name})
    """

    def __init__(
        self,
        sdl: str,
        base_urls: Mapping[str, str],
        options: RestQLOptions | Mapping[str, Any] | None = None,
        transformers: Mapping[str, Transformer] | None = None,
        *,
        transport: Transport | None = None,
        scheduler: Scheduler | None = None,
        logger: logging.Logger | None = None,
    ):
        """Parse and validate the schema and set up the components.

        Args:
            sdl: Schema definition string
            base_urls: Base URL per endpoint path; must contain 'default'
                unless every path is listed
            options: Engine options
            transformers: Functions referenced by @transform directives
            transport: Request sender (defaults to HttpxTransport)
            scheduler: Timer source for batch flushing
            logger: Logger for every component

        Raises:
            SchemaError: If the SDL is invalid or references unknown
                types or transforms
        """
        if isinstance(options, RestQLOptions):
            self.options = options
        else:
            self.options = RestQLOptions.model_validate(dict(options or {}))
        self._logger = logger or logging.getLogger(__name__)

        if isinstance(transformers, TransformerRegistry):
            self.transformers = transformers
        else:
            self.transformers = TransformerRegistry(transformers)

        try:
            self.schema = SchemaParser(sdl, logger=logger).parse_sdl()
            SchemaValidator(self.transformers, logger=logger).validate_schema(self.schema)
        except RestQLError as e:
            self._logger.error("Error parsing or validating schema: %s", e)
            raise

        self._parser = OperationParser(logger=logger)
        self.cache = CacheManager(self.options.cache_timeout, logger=logger)
        self._batcher = BatchManager(
            self.options.batch_interval,
            self.options.max_batch_size,
            scheduler=scheduler,
            logger=logger,
        )
        self._executor = RestExecutor(
            base_urls,
            self.options.headers,
            transport or HttpxTransport(timeout=self.options.timeout),
            max_retries=self.options.max_retries,
            retry_delay=self.options.retry_delay,
            logger=logger,
        )
        self._subscribers: dict[str, list[Subscriber]] = {event: [] for event in EVENT_TYPES}

    async def __aenter__(self) -> "RestQL":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        """Close the underlying transport."""
        await self._executor.close()

    @property
    def batcher(self) -> BatchManager:
        return self._batcher

    # =========================================================================
    # Public API
    # =========================================================================

    async def execute(
        self,
        operation: str,
        variables: Mapping[str, Any] | None = None,
        use_cache: bool = True,
    ) -> Any:
        """Execute a query or mutation string.

        Args:
            operation: The operation string
            variables: Variable values; a missing key means not supplied, None is
                sent as null
            use_cache: Serve and store query results through the cache

        Returns:
            For queries, a dict keyed by query name. For mutations, a list
            of cherry-picked results in declaration order.

        Raises:
            ValidationError: If the operation is malformed or a required
                variable is missing
            ConfigurationError: If the operation does not match the schema
            NetworkError: If a REST call fails
        """
        parsed = self._parser.parse(operation)
        defined = dict(variables or {})
        self._validate_variables(parsed, defined)

        if parsed.operation_type == "query":
            result = await self._execute_query(parsed, defined, use_cache)
        elif parsed.operation_type == "mutation":
            result = await self._execute_mutation(parsed, defined)
        else:
            raise UnsupportedOperationError(f"Unsupported operation type: {parsed.operation_type}")

        self._notify(parsed.operation_type, result)
        return result

    def subscribe(self, event_type: str, subscriber: Subscriber) -> Callable[[], None]:
        """Call `subscriber` with every successful result of `event_type`.

        Returns a function that removes the subscription.
        """
        if event_type not in self._subscribers:
            raise ValueError(f"Unknown event type: {event_type}")
        self._subscribers[event_type].append(subscriber)
        return functools.partial(self.unsubscribe, event_type, subscriber)

    def unsubscribe(self, event_type: str, subscriber: Subscriber):
        subscribers = self._subscribers.get(event_type, [])
        if subscriber in subscribers:
            subscribers.remove(subscriber)

    def invalidate_cache(self, key: str):
        self.cache.invalidate(key)

    def clear_cache(self):
        self.cache.clear()

    def cache_key(
        self,
        query_name: str,
        args: Mapping[str, Any],
        variables: Mapping[str, Any],
    ) -> str:
        """Build the cache key for a top-level query.

        Raises:
            MissingVariableError: If an argument references an unsupplied variable
        """
        resolved = resolve_arguments(args, variables, strict=True)
        return f"{query_name}:{json.dumps(resolved, separators=(',', ':'), default=str)}"

    # =========================================================================
    # Queries
    # =========================================================================

    def _validate_variables(self, parsed: ParsedOperation, provided: Mapping[str, Any]):
        for name in parsed.required_variables:
            if name not in provided:
                raise MissingVariableError(f"Required variable {name} is not provided", variable=name)

    async def _execute_query(
        self,
        parsed: ParsedOperation,
        variables: dict[str, Any],
        use_cache: bool,
    ) -> dict[str, Any]:
        # Every lookup happens before anything is queued, so a bad selection
        # never leaves sibling requests running unobserved.
        planned = []
        for query in parsed.queries:
            resource = self.schema.get_resource(query.query_name)
            if resource is None:
                raise UnknownResourceError(query.query_name)
            cache_key = self.cache_key(query.query_name, query.args, variables)
            planned.append((query, resource, cache_key))

        results: dict[str, Any] = {}
        pending: list[tuple[str, asyncio.Future]] = []
        for query, resource, cache_key in planned:
            if use_cache and self.cache.has(cache_key):
                results[query.query_name] = self.cache.get(cache_key).shaped_data
                continue

            # Reserve the slot so results keep declaration order
            results[query.query_name] = None
            future = self._batcher.add(
                query.query_name,
                functools.partial(
                    self._run_query, query, resource, variables, cache_key if use_cache else None
                ),
            )
            pending.append((query.query_name, future))

        resolved = await self._gather(future for _, future in pending)
        for (name, _), field in zip(pending, resolved):
            results[name] = field.shaped_data
        return results

    @staticmethod
    async def _gather(futures) -> list[Any]:
        """Wait for every future, then raise the first failure in order."""
        outcomes = await asyncio.gather(*futures, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return outcomes

    async def _run_query(
        self,
        query: ParsedQuery,
        resource: SchemaResource,
        variables: dict[str, Any],
        cache_key: str | None,
    ) -> ResolvedField:
        resolved = await self.resolve_field(
            query.query_name, query.fields, query.args, variables, resource
        )
        if cache_key is not None:
            self.cache.set(cache_key, resolved)
        return resolved

    async def resolve_field(
        self,
        field_name: str,
        fields: Mapping[str, FieldSelection],
        args: Mapping[str, Any],
        variables: Mapping[str, Any],
        resource: SchemaResource,
    ) -> ResolvedField:
        """Fetch one resource with GET and shape it against `fields`.

        Argument references to unsupplied variables are dropped here.

        Raises:
            MissingEndpointError: If the resource has no GET endpoint
        """
        if resource.get_endpoint(HttpMethod.GET) is None:
            raise MissingEndpointError(field_name, HttpMethod.GET)

        resolved_args = resolve_arguments(args, variables)
        query = ParsedQuery(query_name=field_name, args=dict(args), fields=dict(fields))
        raw = await self._executor.execute(
            query, resource, variables, HttpMethod.GET, args=resolved_args
        )
        data = get_path(raw, resource.data_path)
        shaped = await self.shape_data(data, fields, resource, variables, {field_name: raw})
        return ResolvedField(shaped_data=shaped, raw_response=raw)

    # =========================================================================
    # Shaping
    # =========================================================================

    async def shape_data(
        self,
        data: Any,
        fields: Mapping[str, FieldSelection],
        owner: ValueType,
        variables: Mapping[str, Any],
        raw_responses: dict[str, Any] | None = None,
    ) -> Any:
        """Reshape raw payload `data` into the requested `fields`.

        Lists are shaped item by item. A type-level transform replaces the
        shaped object with its own result.
        """
        if raw_responses is None:
            raw_responses = {}
        if isinstance(data, list):
            return [
                await self.shape_data(item, fields, owner, variables, raw_responses)
                for item in data
            ]

        shaped: dict[str, Any] = {}
        for name, selection in fields.items():
            schema_field = owner.fields.get(name)
            if schema_field is None:
                self._logger.warning(
                    'Field "%s" not found in schema for %s. Skipping.', name, owner.name
                )
                continue

            raw_value = get_path(data, schema_field.source or name)
            try:
                value = coerce_value(raw_value, schema_field)
            except ValidationError as e:
                if not schema_field.is_nullable:
                    raise ValidationError(f"Field {owner.name}.{name}: {e.message}") from e
                self._logger.warning("Validation error for field %s: %s", name, e.message)
                shaped[name] = None
                continue

            if schema_field.is_resource:
                if not selection.is_leaf:
                    value = await self._resolve_nested_resource(
                        name, selection, schema_field.base_type, variables
                    )
            elif not selection.is_leaf:
                value_type = self.schema.get_type(schema_field.base_type)
                if value_type is None:
                    self._logger.warning("Schema not found for nested type: %s", schema_field.base_type)
                elif value is not None:
                    value = await self.shape_data(
                        value, selection.fields, value_type, variables, raw_responses
                    )

            if schema_field.transform:
                transformed = await self.transformers.apply(
                    schema_field.transform, data, {name: value}, raw_responses
                )
                value = transformed.get(name) if isinstance(transformed, Mapping) else None

            shaped[name] = value

        if owner.transform:
            return await self.transformers.apply(owner.transform, data, shaped, raw_responses)
        return shaped

    async def _resolve_nested_resource(
        self,
        field_name: str,
        selection: FieldSelection,
        type_name: str,
        variables: Mapping[str, Any],
    ) -> Any:
        resource = self.schema.get_resource(type_name)
        try:
            resolved = await self.resolve_field(
                field_name, selection.fields, selection.args, variables, resource
            )
        except Exception as e:
            self._logger.warning("Nested resource %s failed, using null: %r", field_name, e)
            return None
        return resolved.shaped_data

    # =========================================================================
    # Mutations
    # =========================================================================

    async def _execute_mutation(
        self,
        parsed: ParsedOperation,
        variables: dict[str, Any],
    ) -> list[Any]:
        planned = [self._plan_mutation(mutation) for mutation in parsed.queries]
        futures = [
            self._batcher.add(
                mutation.query_name,
                functools.partial(
                    self._run_mutation, mutation, resource_name, resource, method, variables
                ),
            )
            for mutation, resource_name, resource, method in planned
        ]
        return await self._gather(futures)

    def _plan_mutation(
        self, mutation: ParsedQuery
    ) -> tuple[ParsedQuery, str, SchemaResource, HttpMethod]:
        operation, resource_name = split_mutation_name(mutation.query_name)
        resource = self.schema.get_resource(resource_name)
        if resource is None:
            raise UnknownResourceError(resource_name)

        method = MUTATION_METHODS[operation]
        if resource.get_endpoint(method) is None:
            raise MissingEndpointError(resource_name, method)
        return mutation, resource_name, resource, method

    async def _run_mutation(
        self,
        mutation: ParsedQuery,
        resource_name: str,
        resource: SchemaResource,
        method: HttpMethod,
        variables: dict[str, Any],
    ) -> Any:
        raw = await self._executor.execute(mutation, resource, variables, method)
        data = get_path(raw, resource.data_path)
        shaped = await self.shape_data(
            data, mutation.fields, resource, variables, {mutation.query_name: raw}
        )

        dropped = self.cache.invalidate_prefix(f"{resource_name}:", ignore_case=True)
        if dropped:
            self._logger.debug("Mutation %s invalidated %d cached result(s)", mutation.query_name, dropped)
        return cherry_pick(shaped, mutation.fields)

    def _notify(self, event_type: str, result: Any):
        for subscriber in list(self._subscribers.get(event_type, [])):
            subscriber(result)
