"""LLM Meta-Query Gateway.

Sends one query to every provider with an available API key,
concurrently, and combines the results:
  - Request validation and API key resolution
  - Vendor-Specific Adapters (headers, body, response envelope)
  - Provider invoker (one call, latency, failure → outcome)
  - Response Normalizer (safe JSON parse, aggregation)
"""
