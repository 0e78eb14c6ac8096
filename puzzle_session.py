"""Player-facing session state for the potion puzzles.

The engine modules stay pure; everything that changes while a player works
through a puzzle (deduction marks, the brew log, submissions) lives on a
``PuzzleSession`` owned by the caller. Starting a new game replaces the
``GeneratedGame`` wholesale. Only the ``{seed, daily, mode}`` triple is ever
written to disk because the puzzle content can always be regenerated from it.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from potion_api import (
    MIN_COMBO,
    PAIRS,
    BrewResult,
    OutcomeEstimate,
    blank_marks,
    brew,
    elements_from_marks,
    estimate_outcome,
    find_exact_solution,
    mark_cycle,
    next_mark,
    same_set,
)
from potion_generator import GenConfig, GeneratedGame, generate_game

logger = logging.getLogger(__name__)

MODE_TARGET_ORDER = "target-order"
MODE_PROFILE_HUNT = "profile-hunt"
MODE_FULL_MAPPING = "full-mapping"
MODES = (MODE_TARGET_ORDER, MODE_PROFILE_HUNT, MODE_FULL_MAPPING)
DEFAULT_MODE = MODE_TARGET_ORDER

SESSION_INGREDIENTS = 8
SESSION_MAX_COMBO = 4


def validate_mode(mode: str) -> str:
    if mode not in MODES:
        raise ValueError(f"Unknown mode {mode!r}; expected one of {', '.join(MODES)}")
    return mode


@dataclass(frozen=True)
class SavedState:
    """The only state that is persisted between sessions."""

    seed: str
    daily: bool = False
    mode: str = DEFAULT_MODE

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SavedState":
        seed = raw.get("seed")
        if not isinstance(seed, str) or not seed:
            raise ValueError("Saved state must contain a non-empty 'seed' string")
        mode = validate_mode(str(raw.get("mode", DEFAULT_MODE)))
        return cls(seed=seed, daily=bool(raw.get("daily", False)), mode=mode)


def save_state(path: str, state: SavedState) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(state.as_dict(), handle)


def load_state(path: str) -> Optional[SavedState]:
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as handle:
        raw = json.load(handle)
    if not isinstance(raw, Mapping):
        raise ValueError(f"Saved state in {path} is not a JSON object")
    return SavedState.from_dict(raw)


@dataclass(frozen=True)
class BrewLogEntry:
    ids: Tuple[str, ...]
    result: BrewResult


def session_config(seed: Optional[str] = None, daily: bool = False) -> GenConfig:
    return GenConfig(
        seed=seed,
        daily=daily,
        max_combo=SESSION_MAX_COMBO,
        min_ingredients=SESSION_INGREDIENTS,
        max_ingredients=SESSION_INGREDIENTS,
    )


class PuzzleSession:
    """Track marks, brews and submissions for one generated game."""

    def __init__(self, game: GeneratedGame, mode: str = DEFAULT_MODE, daily: bool = False) -> None:
        self.mode = validate_mode(mode)
        self.daily = daily
        self._reset(game)

    @classmethod
    def new_game(
        cls,
        seed: Optional[str] = None,
        daily: bool = False,
        mode: str = DEFAULT_MODE,
        config: Optional[GenConfig] = None,
        today: Optional[date] = None,
    ) -> "PuzzleSession":
        validate_mode(mode)
        cfg = replace(config, seed=seed, daily=daily) if config else session_config(seed, daily)
        return cls(generate_game(cfg, today=today), mode=mode, daily=daily)

    @classmethod
    def from_saved_state(cls, state: SavedState, today: Optional[date] = None) -> "PuzzleSession":
        # The stored seed already names the day, so regenerate from it directly.
        session = cls.new_game(seed=state.seed, daily=False, mode=state.mode, today=today)
        session.daily = state.daily
        return session

    def restart(
        self,
        seed: Optional[str] = None,
        daily: bool = False,
        mode: Optional[str] = None,
        today: Optional[date] = None,
    ) -> None:
        """Replace the current game and clear all progress."""

        next_mode = validate_mode(mode) if mode is not None else self.mode
        cfg = replace(self.game.config, seed=seed, daily=daily)
        game = generate_game(cfg, today=today)
        self.mode = next_mode
        self.daily = daily
        self._reset(game)

    def _reset(self, game: GeneratedGame) -> None:
        self.game = game
        self.marks: Dict[str, Dict[str, str]] = {
            ingredient.id: blank_marks() for ingredient in game.ingredients
        }
        self.brew_log: List[BrewLogEntry] = []
        self.potions_brewed = 0
        self.null_count = 0
        self.is_won = False
        self.submit_failures = 0
        self.last_submit_ok = False

    # --- Deduction grid -----------------------------------------------------
    def _require_ingredient(self, ingredient_id: str) -> None:
        if ingredient_id not in self.marks:
            raise ValueError(f"Unknown ingredient id {ingredient_id!r}")

    def _require_pair(self, pair_index: int) -> None:
        if not 0 <= pair_index < len(PAIRS):
            raise ValueError(f"Pair index {pair_index} is out of range")

    def get_mark(self, ingredient_id: str, pair_index: int) -> str:
        self._require_ingredient(ingredient_id)
        self._require_pair(pair_index)
        return self.marks[ingredient_id][str(pair_index)]

    def toggle_mark(self, ingredient_id: str, pair_index: int) -> str:
        current = self.get_mark(ingredient_id, pair_index)
        updated = next_mark(current, pair_index)
        self.marks[ingredient_id][str(pair_index)] = updated
        return updated

    def set_mark(self, ingredient_id: str, pair_index: int, mark: str) -> None:
        self._require_ingredient(ingredient_id)
        self._require_pair(pair_index)
        if mark not in mark_cycle(pair_index):
            raise ValueError(f"{mark!r} is not a valid mark for pair {PAIRS[pair_index]}")
        self.marks[ingredient_id][str(pair_index)] = mark

    def guess_for(self, ingredient_id: str) -> Optional[Tuple[str, ...]]:
        self._require_ingredient(ingredient_id)
        return elements_from_marks(self.marks[ingredient_id])

    # --- Brewing ------------------------------------------------------------
    def _validate_selection(self, ids: Sequence[str]) -> None:
        if len(ids) < MIN_COMBO:
            raise ValueError(f"Select at least {MIN_COMBO} ingredients to brew.")
        if len(ids) > self.game.max_combo:
            raise ValueError(f"You can brew at most {self.game.max_combo} ingredients at once.")
        if len(set(ids)) != len(ids):
            raise ValueError("Selections contain duplicates.")
        for ingredient_id in ids:
            self._require_ingredient(ingredient_id)

    def brew_selection(self, ids: Sequence[str]) -> BrewResult:
        self._validate_selection(ids)
        picked = [self.game.ingredient_by_id(ingredient_id) for ingredient_id in ids]
        result = brew([ingredient for ingredient in picked if ingredient is not None])

        if self.mode == MODE_TARGET_ORDER and not result.is_null:
            if same_set(result.effects, self.game.specific_potion):
                self.is_won = True

        self.brew_log.append(BrewLogEntry(ids=tuple(ids), result=result))
        self.potions_brewed += 1
        if result.is_null:
            self.null_count += 1
        logger.debug("Brewed %s -> %s", list(ids), result.describe())
        return result

    def expected_outcome(self, ids: Sequence[str]) -> Optional[OutcomeEstimate]:
        return estimate_outcome(ids, self.marks)

    # --- Submissions --------------------------------------------------------
    def submit_grid(self) -> bool:
        """Check the deduction grid against the truth for grid-based modes."""

        if self.mode == MODE_FULL_MAPPING:
            ok = all(
                same_set(self.guess_for(ingredient.id), ingredient.elements)
                for ingredient in self.game.ingredients
            )
        elif self.mode == MODE_PROFILE_HUNT:
            target = self.game.profile_hunt_target
            candidates = [
                ingredient
                for ingredient in self.game.ingredients
                if same_set(self.guess_for(ingredient.id), target.elements)
            ]
            ok = len(candidates) == 1 and candidates[0].id == target.id
        else:
            raise ValueError("Target order puzzles are solved by brewing, not by submitting the grid.")

        self.last_submit_ok = ok
        if ok:
            self.is_won = True
        else:
            self.submit_failures += 1
        return ok

    # --- Helpers ------------------------------------------------------------
    def debug_solution(self) -> Optional[List[str]]:
        return find_exact_solution(
            self.game.ingredients, self.game.specific_potion, self.game.max_combo
        )

    def saved_state(self) -> SavedState:
        return SavedState(seed=self.game.seed, daily=self.daily, mode=self.mode)


__all__ = [
    "BrewLogEntry",
    "MODES",
    "MODE_FULL_MAPPING",
    "MODE_PROFILE_HUNT",
    "MODE_TARGET_ORDER",
    "PuzzleSession",
    "SavedState",
    "load_state",
    "save_state",
    "session_config",
]
