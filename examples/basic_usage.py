"""
Example: Basic usage of exact_sdk
=================================

This example shows how to query an entity endpoint with the fluent
query builder, with token refresh and rate-limit notifications.
"""

import asyncio
import logging

from exact_sdk import ConnectionContext, Field, Operator, RequestExecutor
from exact_sdk.odata import EntityEndpoint


async def get_token() -> str:
    # Replace with your OAuth token store
    return "<access token>"


async def refresh(attempt: int) -> bool:
    """Refresh the token; give up after two attempts."""
    if attempt >= 2:
        return False
    # call your OAuth refresh flow here
    return True


def on_delay(milliseconds: float) -> None:
    print(f"Rate limit reached, waiting {milliseconds / 1000:.1f}s")


async def example_basic_query():
    """Query accounts through ConnectionContext."""
    # Reads EXACT_BASE_URL / EXACT_DIVISION from the environment when set
    async with ConnectionContext(
        token_provider=get_token,
        refresh_policy=refresh,
        delay_observer=on_delay,
    ) as conn:
        division = await conn.initialize()
        print("Division:", division)

        accounts = await (
            conn.query("crm/Accounts")
            .where(Field("Name").tolower().startswith("acme"), True)
            .and_("Blocked", False)
            .select("ID", "Code", "Name")
            .order_by("Name")
            .top(50)
            .get()
        )
        print(f"Found {len(accounts)} accounts, next page: {accounts.skip_token}")

        total = await conn.query("crm/Accounts").where("Status", "C", Operator.EQ).count()
        print("Customers:", total)
        print("Minutely calls left:", conn.rate_limits.minutely.remaining)


async def example_executor():
    """Using RequestExecutor and EntityEndpoint directly."""
    executor = RequestExecutor(get_token, refresh_policy=refresh)
    try:
        endpoint = EntityEndpoint(
            executor, "https://start.exactonline.nl/api/v1/123456/logistics/Items"
        )
        items = await endpoint.query().select("ID", "Code", "Description").get_all(max_pages=3)
        print(f"Found {len(items)} items")
    finally:
        executor.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    # Uncomment the example you want to run
    # asyncio.run(example_basic_query())
    # asyncio.run(example_executor())

    print("Set up your environment variables and uncomment an example to run.")
    print("Optional: EXACT_BASE_URL, EXACT_ACCESS_TOKEN, EXACT_DIVISION")
