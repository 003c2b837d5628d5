"""Mock Anthropic Client: simulates messages.create for semantic judge tests.

Invariants:
    - MockAnthropicClient sequences responses (one per create_message call)
    - A configured Exception instance is raised instead of returned
    - Builder helpers produce realistic Anthropic response structures

Design Decisions:
    - Flat mock classes (no inheritance): simple, explicit, easy to debug
"""


class _Block:
    """Mock content block (text, tool_use)."""

    def __init__(self, **kwargs):
        self._data = kwargs
        for k, v in kwargs.items():
            setattr(self, k, v)

    def __repr__(self):
        return f"_Block({self._data})"


class _Usage:

    def __init__(self, input_tokens=100, output_tokens=50):
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens


class _Message:
    """Mock Message returned by messages.create()."""

    def __init__(self, content, stop_reason="end_turn", input_tokens=100, output_tokens=50):
        self.content = content
        self.stop_reason = stop_reason
        self.usage = _Usage(input_tokens, output_tokens)


class MockAnthropicClient:
    """Replaces ResilientAnthropicClient. Sequences pre-configured responses."""

    def __init__(self, responses):
        self._responses = responses
        self._idx = 0
        self.calls = []

    async def create_message(self, **kwargs):
        self.calls.append(kwargs)
        if self._idx >= len(self._responses):
            raise RuntimeError(
                f"MockAnthropicClient: no response at index {self._idx} "
                f"(configured {len(self._responses)})",
            )
        response = self._responses[self._idx]
        self._idx += 1
        if isinstance(response, Exception):
            raise response
        return response


# -- Builder helpers -----------------------------------------------------------


def text_response(text, stop_reason="end_turn"):
    """Build a text-only response (no tool call)."""
    return _Message([_Block(type="text", text=text)], stop_reason)


def tool_response(name, tool_input, stop_reason="tool_use"):
    """Build a single tool_use response."""
    block = _Block(type="tool_use", id=f"toolu_{name}_test", name=name, input=tool_input)
    return _Message([block], stop_reason, 150, 80)


def verdict_response(equivalent, confidence, reasoning="test verdict"):
    return tool_response("record_verdict", {
        "equivalent": equivalent,
        "confidence": confidence,
        "reasoning": reasoning,
    })
