"""Language-model generated enemy behaviour.

Turns a natural-language description ("a ghost called Boo that circles the
player") into a :class:`pug_grid.external.backends.CompiledFunctionBackend`:
the model writes the body of ``decide(context)``, the answer is cleaned of
markdown, checked for truncation and compiled.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from pug_grid.external.backends import CompleteFn
from pug_grid.external.prompts import CODE_GENERATOR_SYSTEM_PROMPT
from pug_grid.external.protocol import strip_code_fences
from pug_grid.external.sandbox import compile_decide_function

logger = logging.getLogger(__name__)

DEFAULT_ENEMY_NAME = "CustomEnemy"

_NAME_RE = re.compile(r"(?:called|named)\s+(\w+)", re.IGNORECASE)

# Signs of an answer cut off mid-statement.
_INCOMPLETE_PATTERNS = [
    re.compile(r"return\s*\{[^}]*$"),
    re.compile(r"=\s*$"),
    re.compile(r"\(\s*$"),
    re.compile(r"[{\[:]\s*$"),
]


@dataclass(frozen=True)
class GeneratedBehavior:
    enemy_name: str
    move_code: str


def extract_enemy_name(prompt: str) -> str:
    """Return the word after "called"/"named", else ``DEFAULT_ENEMY_NAME``."""
    match = _NAME_RE.search(prompt)
    return match.group(1) if match else DEFAULT_ENEMY_NAME


def looks_incomplete(code: str) -> bool:
    stripped = code.strip()
    return any(pattern.search(stripped) for pattern in _INCOMPLETE_PATTERNS)


def validation_error(code: str) -> Optional[str]:
    """Return why ``code`` cannot be used, or ``None`` if it compiles."""
    if looks_incomplete(code):
        return "code appears to be truncated"
    try:
        compile_decide_function(code)
    except (SyntaxError, ValueError) as exc:
        return str(exc)
    return None


async def generate_enemy_behavior(
    prompt: str, complete: CompleteFn
) -> GeneratedBehavior:
    """Ask the model for a ``decide(context)`` body matching ``prompt``."""
    enemy_name = extract_enemy_name(prompt)
    user_prompt = (
        f"{prompt}\n\nGenerate the decide(context) function body for this enemy. "
        "Return only the function body, no function declaration, no markdown."
    )
    raw = await complete(CODE_GENERATOR_SYSTEM_PROMPT, user_prompt)
    move_code = strip_code_fences(raw)
    logger.debug("Generated move code for %s:\n%s", enemy_name, move_code)
    return GeneratedBehavior(enemy_name=enemy_name, move_code=move_code)
