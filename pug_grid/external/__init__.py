"""External movement policies.

Backends that source decisions from outside the engine (language models,
generated code, embedded interpreters) and the protocol that keeps their
answers within the rules. See :mod:`pug_grid.external.backends`.
"""

from .backends import (
    CompiledFunctionBackend,
    PolicyBackend,
    ReplacementGridBackend,
    ScriptBackend,
    StructuredOffsetsBackend,
    TextDirectionBackend,
)
from .protocol import PolicyRequest, build_request, coerce_offset

__all__ = [
    "CompiledFunctionBackend",
    "PolicyBackend",
    "PolicyRequest",
    "ReplacementGridBackend",
    "ScriptBackend",
    "StructuredOffsetsBackend",
    "TextDirectionBackend",
    "build_request",
    "coerce_offset",
]
