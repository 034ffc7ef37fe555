"""Game configuration.

``GameConfig`` is a frozen dataclass so a running session can share it freely.
:meth:`GameConfig.from_env` applies ``PUG_*`` environment overrides on top of
the defaults.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

ENV_PREFIX = "PUG_"


@dataclass(frozen=True)
class GameConfig:
    """Tunables for a game session.

    Attributes:
        width: Grid width in tiles.
        height: Grid height in tiles.
        seed: Level seed; ``None`` draws one at random.
        obstacle_count: Random walls placed besides the fixed cluster.
        min_spawn_distance: Minimum Chebyshev distance between the player and
            a randomly placed enemy.
        external_timeout: Seconds to wait for each external decision.
        history_limit: Maximum undo depth (``None`` = unbounded).
        log_limit: Lines kept in the game log.
        model_name: Chat model used by language-model backends.
        openai_api_key: API key; falls back to ``OPENAI_API_KEY``.
        log_level: Root log level for :func:`pug_grid.logging_config.configure_logging`.
    """

    width: int = 10
    height: int = 10
    seed: Optional[int] = None
    obstacle_count: int = 5
    min_spawn_distance: int = 4
    external_timeout: float = 5.0
    history_limit: Optional[int] = None
    log_limit: int = 100
    model_name: str = "gpt-4o-mini"
    openai_api_key: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid grid size {self.width}x{self.height}")
        if self.obstacle_count < 0:
            raise ValueError("obstacle_count must be >= 0")
        if self.external_timeout <= 0:
            raise ValueError("external_timeout must be positive")
        if self.log_limit <= 0:
            raise ValueError("log_limit must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GameConfig":
        """Build a config from ``PUG_<FIELD>`` variables (e.g. ``PUG_SEED``)."""
        env = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            overrides[f.name] = _convert(f.name, raw)
        if "openai_api_key" not in overrides and env.get("OPENAI_API_KEY"):
            overrides["openai_api_key"] = env["OPENAI_API_KEY"]
        return cls(**overrides)


_INT_FIELDS = {
    "width",
    "height",
    "seed",
    "obstacle_count",
    "min_spawn_distance",
    "history_limit",
    "log_limit",
}


def _convert(name: str, raw: str) -> Any:
    try:
        if name in _INT_FIELDS:
            return int(raw)
        if name == "external_timeout":
            return float(raw)
    except ValueError as exc:
        raise ValueError(
            f"Invalid value {raw!r} for {ENV_PREFIX}{name.upper()}"
        ) from exc
    return raw
