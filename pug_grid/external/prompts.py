"""Prompt templates for language-model policy backends.

Prompt quality is not a goal here; the templates only need to state the
response shape each backend knows how to parse.
"""

from pug_grid.external.protocol import PolicyRequest

NAVIGATOR_SYSTEM_PROMPT = (
    "You are a navigator and must return a single direction: up, down, left, "
    "right, up-left, up-right, down-left, down-right, or stay."
)

OFFSETS_SYSTEM_PROMPT = (
    "You control the enemies of a grid game. Reply with JSON only, of the form "
    '{"moves": [{"id": <enemy id>, "dx": <-1|0|1>, "dy": <-1|0|1>}, ...]} '
    "with one entry per enemy, in the order given."
)

GRID_SYSTEM_PROMPT = (
    "You control the enemies of a grid game. Reply with the full grid after "
    "the enemies move, one row per line, using the same characters as the "
    "input. Every enemy moves at most one cell. Walls (#) never move."
)

CODE_GENERATOR_SYSTEM_PROMPT = """You are a code generator for a grid-based game. Generate the body of a Python function `decide(context)` for an enemy described by the user.

GAME CONTEXT:
- Enemies move once per turn, after the player ("player").
- Positions are dicts {"x": column, "y": row}; (0, 0) is the top-left cell.

CONTEXT OBJECT:
- context.entities: list of {"id", "type", "name", "position": {"x", "y"}}
- context.my_position: {"x", "y"} of this enemy
- context.player: {"x", "y"} of the player, or None
- context.width, context.height: grid size
- context.is_valid(x, y): True if the cell exists, is not a wall and is empty

REQUIREMENTS:
1. Return a dict {"x": ..., "y": ...} at most one cell away from context.my_position.
2. Use context.is_valid(x, y) before moving; if blocked, return context.my_position.
3. Prefer vertical movement over horizontal when the diagonal is blocked.

EXAMPLE (seek the player):
player = context.player
if player is None:
    return context.my_position
me = context.my_position
dx = (player["x"] > me["x"]) - (player["x"] < me["x"])
dy = (player["y"] > me["y"]) - (player["y"] < me["y"])
if dx and dy and context.is_valid(me["x"] + dx, me["y"] + dy):
    return {"x": me["x"] + dx, "y": me["y"] + dy}
if dy and context.is_valid(me["x"], me["y"] + dy):
    return {"x": me["x"], "y": me["y"] + dy}
if dx and context.is_valid(me["x"] + dx, me["y"]):
    return {"x": me["x"] + dx, "y": me["y"]}
return me

Generate ONLY the function body. Keep it concise. No function declaration, no markdown."""


def describe_entities(request: PolicyRequest) -> str:
    lines = []
    for info in request.entities:
        marker = " (you)" if info.id == request.entity_id else ""
        lines.append(
            f"- {info.name or info.kind} id={info.id} at ({info.x}, {info.y}), "
            f"relative ({info.dx}, {info.dy}){marker}"
        )
    return "\n".join(lines)


def navigator_prompt(request: PolicyRequest) -> str:
    """User prompt for a single-direction answer."""
    goal = request.goal or "Move sensibly."
    return (
        f"{goal}\n"
        f"You are at ({request.position[0]}, {request.position[1]}) on a "
        f"{request.width}x{request.height} grid (P = player, S/F/E = enemies, "
        f"# = wall):\n{request.text_grid}\n"
        f"Entities:\n{describe_entities(request)}\n"
        "Which direction do you move?"
    )


def offsets_prompt(request: PolicyRequest) -> str:
    """User prompt for a batched relative-offsets answer."""
    order = ", ".join(str(eid) for eid in request.enemy_ids)
    return (
        f"{request.goal}\n"
        f"Grid ({request.width}x{request.height}):\n{request.text_grid}\n"
        f"Entities:\n{describe_entities(request)}\n"
        f"Enemy order: {order}"
    )


def grid_prompt(request: PolicyRequest) -> str:
    """User prompt for a replacement-grid answer."""
    return f"{request.goal}\nCurrent grid:\n{request.text_grid}"
