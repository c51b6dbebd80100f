"""Demonstrates cost tracking, caller budgets and error handling."""

import asyncio

from openrouter_gateway import (
    CompletionOptions,
    GatewayClient,
    GatewayError,
    RateLimitError,
    load_config,
)


async def main() -> None:
    """Run several calls for one caller until the budget runs out."""
    config = load_config(
        caller_rate_limit=3,  # three calls per caller per window
        cost_warn_usd=0.01,  # warning at $0.01
    )
    async with GatewayClient(config) as gateway:
        print(f"Estimated cost of 1k/500 tokens: ${gateway.estimate_cost(1_000, 500):.6f}")

        for i in range(5):
            try:
                result = await gateway.chat_completion(
                    CompletionOptions(
                        system_message="Answer in one sentence.",
                        user_message=f"Give me cooking tip number {i + 1}.",
                        max_tokens=64,
                        caller_id="demo-user",
                    )
                )
                print(
                    f"Call {i}: ${result.estimated_cost_usd:.6f} | "
                    f"Cumulative: ${gateway.total_cost_usd:.6f}"
                )
            except RateLimitError as exc:
                print(f"Caller budget exhausted, retry in {exc.retry_after}s")
                break
            except GatewayError as exc:
                print(f"Call {i} failed: {exc.to_public_dict()}")

        print(f"\nFinal summary: {gateway.usage_summary()}")


if __name__ == "__main__":
    asyncio.run(main())
