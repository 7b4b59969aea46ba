#!/usr/bin/env python3
"""Demonstration of restql against a mocked REST API.

This script shows how to:
1. Describe REST resources with SDL
2. Run a query with a nested resource and a transform
3. Run a mutation and watch the cache get invalidated

Note: This demo doesn't make real API calls - requests are answered by
an httpx.MockTransport.
"""

import asyncio
import json

import httpx

from restql.core import HttpxTransport, RestQL

SDL = """
type User {
  id: String @from("user_id")
  name: String @transform("titleCase")
  address: Address
  @endpoint(GET, "/users/{id}", "data")
  @endpoint(POST, "/users", "data")
}

type Address {
  city: String
  country: String
  @endpoint(GET, "/users/{id}/address", "")
}
"""

USERS = {"1": {"user_id": 1, "name": "ada lovelace"}}


def handler(request: httpx.Request) -> httpx.Response:
    print(f"   -> {request.method} {request.url}")
    path = request.url.path
    if request.method == "GET" and path == "/users/1":
        return httpx.Response(200, json={"data": USERS["1"]})
    if request.method == "GET" and path == "/users/1/address":
        return httpx.Response(200, json={"city": "London", "country": "UK"})
    if request.method == "POST" and path == "/users":
        body = json.loads(request.content)
        return httpx.Response(201, json={"data": {"user_id": 2, **body}})
    return httpx.Response(404)


def title_case(raw, shaped, raw_responses):
    return {"name": shaped["name"].title()}


async def main():
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    print("=== restql Demo ===\n")
    async with client, RestQL(
        SDL,
        {"default": "https://api.example.com"},
        {"cache_timeout": 60},
        {"titleCase": title_case},
        transport=HttpxTransport(client),
    ) as restql:
        restql.subscribe("mutation", lambda result: print(f"   mutation event: {result}"))

        query = """
            query GetUser($id: String!) {
              user(id: $id) { id name address { city } }
            }
        """

        print("1. Query (fetches user, then address):")
        result = await restql.execute(query, {"id": "1"})
        print(json.dumps(result, indent=2))

        print("\n2. Same query again (served from cache, no requests):")
        await restql.execute(query, {"id": "1"})
        print(f"   cached entries: {restql.cache.keys()}")

        print("\n3. Mutation (invalidates cached users):")
        result = await restql.execute(
            "mutation AddUser($name: String!) { createUser(name: $name) { id name } }",
            {"name": "grace hopper"},
        )
        print(json.dumps(result, indent=2))
        print(f"   cached entries: {restql.cache.keys()}")


if __name__ == "__main__":
    asyncio.run(main())
