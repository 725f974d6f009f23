"""
Home repair triage services package.

Two LLM passes over a homeowner or contractor message:

- Router pass: classify domain, decision type, risk and postures into a
  strict JSON record (validated, repaired once, or replaced by a safe default)
- Answer pass: generate a markdown answer with the fixed 7-section contract

Providers are thin httpx clients for the OpenAI and Anthropic chat APIs.
"""
