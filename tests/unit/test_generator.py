import pytest

from pug_grid.external.generator import (
    DEFAULT_ENEMY_NAME,
    extract_enemy_name,
    generate_enemy_behavior,
    looks_incomplete,
    validation_error,
)
from pug_grid.external.prompts import CODE_GENERATOR_SYSTEM_PROMPT
from tests.test_utils import FakeComplete, run


@pytest.mark.parametrize(
    "prompt, expected",
    [
        ("A spider called Bob that chases the pug", "Bob"),
        ("a ghost NAMED boo", "boo"),
        ("a fast beetle", DEFAULT_ENEMY_NAME),
    ],
)
def test_extract_enemy_name(prompt, expected) -> None:
    assert extract_enemy_name(prompt) == expected


@pytest.mark.parametrize(
    "code, incomplete",
    [
        ('return {"x": 1,', True),
        ("x =", True),
        ("if x > 1:", True),
        ("return max(", True),
        ("return context.my_position", False),
        ('return {"x": 1, "y": 2}', False),
    ],
)
def test_looks_incomplete(code, incomplete) -> None:
    assert looks_incomplete(code) is incomplete


def test_validation_error() -> None:
    assert validation_error("return context.my_position") is None
    assert validation_error("x =") == "code appears to be truncated"
    assert validation_error("return context.__dict__") is not None
    assert validation_error("return )") is not None


def test_generate_enemy_behavior_strips_fences() -> None:
    complete = FakeComplete("```python\nreturn context.my_position\n```")
    behavior = run(generate_enemy_behavior("a rock named Rocky", complete))
    assert behavior.enemy_name == "Rocky"
    assert behavior.move_code == "return context.my_position"
    system_prompt, user_prompt = complete.calls[0]
    assert system_prompt == CODE_GENERATOR_SYSTEM_PROMPT
    assert user_prompt.startswith("a rock named Rocky")
