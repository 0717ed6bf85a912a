"""
run_query.py: send the example queries to a running gateway

Runs three requests against the query endpoint:
  1. Simple question with the default answer/confidence schema (all providers)
  2. Product review analysis with a custom schema (OpenAI + Anthropic)
  3. Math problem with a step-by-step schema (Gemini only)

Keys are read from OPENAI_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY and
GROK_API_KEY; providers without a key are left out of the request body so
the server falls back to its own configuration.

Usage:
    uvicorn metaquery.main:app --port 8000
    python run_query.py [base_url]
"""

import asyncio
import json
import logging
import os
import sys

import httpx

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s: %(message)s",
)
logger = logging.getLogger("run_query")

BASE = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

KEYS = {
    "openai": os.environ.get("OPENAI_API_KEY", ""),
    "anthropic": os.environ.get("ANTHROPIC_API_KEY", ""),
    "gemini": os.environ.get("GEMINI_API_KEY", ""),
    "grok": os.environ.get("GROK_API_KEY", ""),
}

REVIEW_SCHEMA = {
    "type": "object",
    "properties": {
        "sentiment": {
            "type": "string",
            "enum": ["positive", "negative", "neutral"],
            "description": "Overall sentiment",
        },
        "aspects": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "feature": {"type": "string", "description": "Product feature mentioned"},
                    "sentiment": {"type": "string", "enum": ["positive", "negative", "neutral"]},
                },
                "required": ["feature", "sentiment"],
                "additionalProperties": False,
            },
        },
        "score": {"type": "number", "description": "Rating from 1-10"},
    },
    "required": ["sentiment", "aspects", "score"],
    "additionalProperties": False,
}

MATH_SCHEMA = {
    "type": "object",
    "properties": {
        "steps": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Step-by-step solution",
        },
        "answer": {"type": "string", "description": "Final answer"},
        "unit": {"type": "string", "description": "Unit of measurement"},
    },
    "required": ["steps", "answer", "unit"],
    "additionalProperties": False,
}


def _keys_for(*providers: str) -> dict[str, str]:
    return {p: KEYS[p] for p in providers if KEYS.get(p)}


EXAMPLES = [
    (
        "Simple query with default schema",
        {
            "query": "What is the capital of France?",
            "apiKeys": _keys_for("openai", "anthropic", "gemini", "grok"),
        },
    ),
    (
        "Product review analysis with custom schema",
        {
            "query": "Analyze this product review: 'Great phone, amazing camera but battery life is disappointing.'",
            "apiKeys": _keys_for("openai", "anthropic"),
            "schema": REVIEW_SCHEMA,
        },
    ),
    (
        "Math problem with step-by-step solution",
        {
            "query": "Solve: If a train travels 120 km in 2 hours, what is its average speed?",
            "apiKeys": _keys_for("gemini"),
            "schema": MATH_SCHEMA,
        },
    ),
]


async def main():
    async with httpx.AsyncClient(base_url=BASE, timeout=180) as c:
        for i, (title, body) in enumerate(EXAMPLES, start=1):
            print("\n" + "=" * 60)
            print(f"  Test {i}: {title}")
            print("=" * 60)

            try:
                r = await c.post("/api/v1/query", json=body)
            except httpx.HTTPError as e:
                logger.error("Request failed: %s", e)
                sys.exit(1)

            data = r.json()
            if r.status_code != 200:
                print(f"  ✗ HTTP {r.status_code}: {data.get('error')}")
                continue

            print(f"  Providers queried: {data['providersQueried']}, total {data['totalLatency']} ms")
            for resp in data["responses"]:
                mark = "✓" if resp["success"] else "✗"
                detail = json.dumps(resp["data"], ensure_ascii=False) if resp["success"] else resp["error"]
                print(f"  {mark} {resp['provider']:18s} {resp['latency']:>6d} ms  {detail}")

    print("\nTests completed!")


if __name__ == "__main__":
    asyncio.run(main())
