"""Executes resolved restql selections as REST calls.

Handles URL construction, argument placement, retries and response
decoding.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from urllib.parse import quote, urlencode

from .errors import ConfigurationError, MissingEndpointError, NetworkError
from .ir import HttpMethod, ParsedQuery, SchemaResource
from .transport import HttpxTransport, Transport
from .variables import resolve_arguments

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RestExecutor:
    """Turns one selection plus its resource schema into a REST request.

    Examples:
        executor = RestExecutor({"default": "https://api.example.com"})
        data = await executor.execute(query, schema.get_resource("user"), {}, HttpMethod.GET)
    """

    def __init__(
        self,
        base_urls: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
        transport: Transport | None = None,
        *,
        max_retries: int = 0,
        retry_delay: float = 0.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ):
        """Initialize the executor.

        Args:
            base_urls: Base URL per endpoint path, with a 'default' fallback
            headers: Static headers sent with every request
            transport: Request sender (defaults to HttpxTransport)
            max_retries: Retries for connection failures and 5xx responses
            retry_delay: Base delay in seconds, doubled on every retry
            sleep: Coroutine used to wait between retries
        """
        self.base_urls = dict(base_urls)
        self.headers = dict(headers or {})
        self.transport = transport or HttpxTransport()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)

    async def execute(
        self,
        query: ParsedQuery,
        resource: SchemaResource,
        variables: Mapping[str, Any],
        method: HttpMethod,
        args: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send the request for `query` and return the decoded JSON body.

        `args` are already-resolved arguments; when omitted, `query.args`
        are resolved against `variables`, dropping unsupplied references.
        None arguments are left out of GET query strings and sent as JSON
        null in request bodies.

        Raises:
            MissingEndpointError: If the resource has no endpoint for `method`
            ConfigurationError: If no base URL matches the endpoint path
            NetworkError: If the request fails after all retries
        """
        endpoint = resource.get_endpoint(method)
        if endpoint is None:
            raise MissingEndpointError(query.query_name, method)

        if args is None:
            args = resolve_arguments(query.args, variables)
        url = self.build_url(endpoint.path, {**variables, **args})

        body = None
        if method == HttpMethod.GET:
            url = self._append_query_string(url, args)
        elif args:
            body = args

        headers = {**self.headers, "Content-Type": "application/json"}
        self._logger.debug("Sending %s request to %s", method, url)
        return await self._send(str(method), url, headers, body)

    def build_url(self, path: str, values: Mapping[str, Any]) -> str:
        """Join the base URL for `path` with it and fill `{name}` placeholders."""
        base_url = self.base_urls.get(path) or self.base_urls.get("default")
        if not base_url:
            raise ConfigurationError(f"No base URL found for path: {path} and no default URL provided")

        if base_url.endswith("/") or path.startswith("/"):
            url = base_url + path
        else:
            url = f"{base_url}/{path}"

        def substitute(match: re.Match) -> str:
            value = values.get(match.group(1))
            return "" if value is None else quote(_stringify(value), safe="")

        url = _PLACEHOLDER.sub(substitute, url)
        return url.rstrip("/")

    def _append_query_string(self, url: str, args: Mapping[str, Any]) -> str:
        query_string = urlencode(
            {name: _stringify(value) for name, value in args.items() if value is not None}
        )
        return f"{url}?{query_string}" if query_string else url

    async def _send(self, method: str, url: str, headers: dict[str, str], body: Any) -> Any:
        attempt = 0
        while True:
            try:
                return await self.transport.request(method, url, headers, body)
            except NetworkError as e:
                if not e.is_retryable or attempt >= self.max_retries:
                    self._logger.error("%s %s failed: %s", method, url, e.message)
                    raise
                delay = self.retry_delay * (2 ** attempt)
                attempt += 1
                self._logger.warning(
                    "%s %s failed (%s), retry %d/%d in %.2fs",
                    method, url, e.message, attempt, self.max_retries, delay,
                )
                await self._sleep(delay)

    async def close(self):
        """Close the underlying transport if it supports closing."""
        aclose = getattr(self.transport, "aclose", None)
        if aclose is not None:
            await aclose()
