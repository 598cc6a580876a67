"""Public testing utilities for the Tree-of-Thoughts research planner.

Provides mock LLM models for writing self-contained examples and tests
without requiring API keys.
"""

from tot_research.testing.mock_llm import MockStructuredChatModel

__all__ = ["MockStructuredChatModel"]
