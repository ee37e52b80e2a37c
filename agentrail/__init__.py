"""
agentrail - staged building blocks for LLM-backed agents.

The package is layered, leaves first:

    gateway        multi-provider chat with retry, fallback and cost estimates
    context        per-session message history with token-budget trimming
    output         JSON extraction and schema validation of untrusted model output
    tools          tool registry and the prompt-based tool-calling loop
    agent          goal-driven runs with state snapshots and memory write-back
    orchestration  multi-step workflows with audit, permissions, approval and cost
"""

__version__ = "0.1.0"
