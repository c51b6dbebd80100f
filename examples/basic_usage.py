"""Basic usage of openrouter-gateway."""

import asyncio

from pydantic import BaseModel

from openrouter_gateway import CompletionOptions, GatewayClient, ResponseFormat


class Recipe(BaseModel):
    """A single suggested dish."""

    name: str
    ingredients: list[str]
    minutes: int


async def main() -> None:
    """Demonstrate a plain and a structured completion."""
    # GatewayClient reads OPENROUTER_* env vars automatically
    async with GatewayClient() as gateway:
        result = await gateway.chat_completion(
            CompletionOptions(
                system_message="You are a helpful chef.",
                user_message="What can I cook with eggs and spinach?",
                caller_id="demo-user",
            )
        )
        print(f"Answer: {result.content}")
        print(f"Tokens: {result.usage.total_tokens}")
        print(f"Cost: ${result.estimated_cost_usd:.6f}")
        print(f"Latency: {result.latency_ms:.0f}ms")

        structured = await gateway.chat_completion(
            CompletionOptions(
                system_message="You are a helpful chef. Reply in JSON.",
                user_message="Suggest one dish using eggs and spinach.",
                response_format=ResponseFormat.from_model(Recipe, strict=False),
            )
        )
        recipe = structured.content
        print(f"{recipe.name} ({recipe.minutes} min): {', '.join(recipe.ingredients)}")


if __name__ == "__main__":
    asyncio.run(main())
