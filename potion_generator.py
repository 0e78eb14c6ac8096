"""Seeded puzzle generation for the potion deduction game."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Set, Tuple

from potion_api import (
    ALL_ELEMENTS,
    ELEMENTS_PER_INGREDIENT,
    MAX_COMBO,
    MIN_COMBO,
    OPPONENT,
    Ingredient,
    brew,
    can_add_element,
    has_basic_potion_for,
    iter_subsets,
    sort_elements,
)
from seed_utils import (
    Mulberry32,
    RandomSource,
    choose,
    generator_for_seed,
    resolve_seed,
    salted_seed,
    shuffle,
)

logger = logging.getLogger(__name__)

MIN_INGREDIENTS = 4
# 32 distinct triples exist; the cap leaves room for coverage additions.
MAX_INGREDIENT_LIMIT = 16
DEFAULT_MIN_INGREDIENTS = 8
DEFAULT_MAX_INGREDIENTS = 14

MAX_TARGET_ATTEMPTS = 12
HARD_TARGET_SIZE = 3

NAME_PREFIXES = (
    "Ar", "Bel", "Cyn", "Dra", "Eld", "Fae", "Gry", "Hex", "Iri", "Jyn", "Kal", "Lum", "Myr",
    "Nyx", "Ori", "Py", "Qua", "Ryn", "Syl", "Tor", "Umb", "Vex", "Wyr", "Xil", "Yor", "Zin",
)
NAME_VOWELS = ("a", "e", "i", "o", "u", "ae", "ia", "oi", "ou", "au")
NAME_SUFFIXES = (
    "leaf", "bloom", "root", "dust", "stone", "ash", "scale", "petal", "moss", "thorn",
    "ember", "dew", "horn", "fang", "bark", "spore", "bud", "pith", "sepal", "gale",
    "flare", "tide", "glow", "shade", "howl", "hush",
)


class GenConfigError(ValueError):
    """Raised when a generation request is malformed."""


@dataclass(frozen=True)
class GenConfig:
    seed: Optional[str] = None
    daily: bool = False
    max_combo: int = MAX_COMBO
    min_ingredients: int = DEFAULT_MIN_INGREDIENTS
    max_ingredients: int = DEFAULT_MAX_INGREDIENTS

    def validate(self) -> None:
        for name in ("max_combo", "min_ingredients", "max_ingredients"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise GenConfigError(f"{name} must be an integer, got {value!r}")
        if not MIN_COMBO <= self.max_combo <= MAX_COMBO:
            raise GenConfigError(
                f"max_combo must be between {MIN_COMBO} and {MAX_COMBO}, got {self.max_combo}"
            )
        if self.min_ingredients < MIN_INGREDIENTS:
            raise GenConfigError(f"min_ingredients must be at least {MIN_INGREDIENTS}")
        if self.max_ingredients < self.min_ingredients:
            raise GenConfigError("max_ingredients cannot be lower than min_ingredients")
        if self.max_ingredients > MAX_INGREDIENT_LIMIT:
            raise GenConfigError(f"max_ingredients cannot exceed {MAX_INGREDIENT_LIMIT}")


@dataclass(frozen=True)
class IngredientProfile:
    id: str
    elements: Tuple[str, ...]


@dataclass(frozen=True)
class ComboOutcome:
    """One brewable subset: the ingredient ids and the effects they produce."""

    ids: Tuple[str, ...]
    effects: Tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.ids)


@dataclass(frozen=True)
class GeneratedGame:
    seed: str
    variant_seed: str
    config: GenConfig
    ingredients: Tuple[Ingredient, ...]
    profile_hunt_target: Ingredient
    full_mapping_profiles: Tuple[IngredientProfile, ...]
    specific_potion: Tuple[str, ...]
    min_size_for_target: int
    attempts: int = 1
    coverage_added: int = 0
    distinct_outcomes: int = 0

    @property
    def target_order(self) -> Tuple[str, ...]:
        return self.specific_potion

    @property
    def max_combo(self) -> int:
        return self.config.max_combo

    def ingredient_by_id(self, ingredient_id: str) -> Optional[Ingredient]:
        for ingredient in self.ingredients:
            if ingredient.id == ingredient_id:
                return ingredient
        return None


# --- Ingredient generation ---------------------------------------------------


def make_ingredient_name(index: int) -> str:
    prefix = NAME_PREFIXES[index % len(NAME_PREFIXES)]
    vowel = NAME_VOWELS[index % len(NAME_VOWELS)]
    suffix = NAME_SUFFIXES[index % len(NAME_SUFFIXES)]
    return f"{prefix}{vowel} {suffix}"


def random_ingredient(rng: RandomSource) -> List[str]:
    """Draw three mutually compatible elements."""

    elements: List[str] = []
    for candidate in shuffle(ALL_ELEMENTS, rng):
        if can_add_element(elements, candidate):
            elements.append(candidate)
            if len(elements) == ELEMENTS_PER_INGREDIENT:
                break

    while len(elements) < ELEMENTS_PER_INGREDIENT:
        candidate = choose(ALL_ELEMENTS, rng)
        if can_add_element(elements, candidate):
            elements.append(candidate)
    return elements


def triple_key(elements: Sequence[str]) -> Tuple[str, ...]:
    return sort_elements(elements)


def deduplicate_compositions(compositions: List[List[str]], rng: RandomSource) -> int:
    """Rewrite repeated element triples in place until every triple is unique.

    Returns the number of slot replacements performed.
    """

    seen: Set[Tuple[str, ...]] = set()
    replacements = 0
    for elements in compositions:
        key = triple_key(elements)
        while key in seen:
            slot = int(rng() * ELEMENTS_PER_INGREDIENT)
            pool = shuffle(
                [
                    element
                    for element in ALL_ELEMENTS
                    if element not in elements
                    and all(OPPONENT[present] != element for present in elements)
                ],
                rng,
            )
            if pool:
                elements[slot] = pool[0]
                replacements += 1
            key = triple_key(elements)
        seen.add(key)
    return replacements


def _build_ingredients(compositions: Sequence[Sequence[str]]) -> List[Ingredient]:
    return [
        Ingredient(id=str(index), name=make_ingredient_name(index), elements=tuple(elements))
        for index, elements in enumerate(compositions)
    ]


def synthesize_covering_composition(
    element: str, taken: Set[Tuple[str, ...]], rng: RandomSource
) -> List[str]:
    """Return ``element`` plus two compatible partners, avoiding ``taken`` triples when possible."""

    partners = shuffle(
        [other for other in ALL_ELEMENTS if other != element and other != OPPONENT[element]],
        rng,
    )
    fallback: Optional[List[str]] = None
    for first, second in combinations(partners, 2):
        candidate = [element]
        if not can_add_element(candidate, first):
            continue
        candidate.append(first)
        if not can_add_element(candidate, second):
            continue
        candidate.append(second)
        if triple_key(candidate) not in taken:
            return candidate
        if fallback is None:
            fallback = candidate
    if fallback is None:
        raise RuntimeError(f"No compatible partners available for {element}")
    return fallback


def ensure_coverage(
    compositions: List[List[str]], max_combo: int, rng: RandomSource
) -> int:
    """Append ingredients until every element can be brewed.

    Each element must appear in the effects of some 2..max_combo subset. A
    synthesized ingredient always carries the missing element, so two additions
    are enough in the worst case. Returns the number of ingredients appended.
    """

    added = 0
    for element in ALL_ELEMENTS:
        while not has_basic_potion_for(element, _build_ingredients(compositions), max_combo):
            taken = {triple_key(elements) for elements in compositions}
            composition = synthesize_covering_composition(element, taken, rng)
            logger.debug("Adding %s to cover %s", composition, element)
            compositions.append(composition)
            added += 1
    return added


# --- Outcome enumeration and target selection --------------------------------


def enumerate_outcomes(ingredients: Sequence[Ingredient], max_combo: int) -> List[ComboOutcome]:
    """List every non-null brew over subsets of size 2..max_combo in index order."""

    outcomes: List[ComboOutcome] = []
    for subset in iter_subsets(len(ingredients), max_combo):
        picked = [ingredients[index] for index in subset]
        result = brew(picked)
        if result.is_null:
            continue
        outcomes.append(
            ComboOutcome(ids=tuple(ingredient.id for ingredient in picked), effects=result.effects)
        )
    return outcomes


def unique_outcomes(outcomes: Sequence[ComboOutcome]) -> List[ComboOutcome]:
    """Keep the smallest, first-seen representative for each distinct effect set."""

    by_effects: Dict[frozenset, ComboOutcome] = {}
    for outcome in outcomes:
        key = frozenset(outcome.effects)
        current = by_effects.get(key)
        if current is None or outcome.size < current.size:
            by_effects[key] = outcome
    return list(by_effects.values())


def select_target(outcomes: Sequence[ComboOutcome], rng: RandomSource) -> ComboOutcome:
    if not outcomes:
        raise RuntimeError("No brewable outcome is available to use as a target")
    hard = [outcome for outcome in outcomes if outcome.size >= HARD_TARGET_SIZE]
    pool = hard or list(outcomes)
    return choose(pool, rng)


# --- Game assembly -----------------------------------------------------------


def build_game(config: GenConfig, base_seed: str, variant_seed: str, attempt: int = 1) -> GeneratedGame:
    """Run one full generation pass from ``variant_seed``."""

    rng: Mulberry32 = generator_for_seed(variant_seed)
    span = config.max_ingredients - config.min_ingredients + 1
    target_count = int(config.min_ingredients + rng() * span)

    compositions = [random_ingredient(rng) for _ in range(target_count)]
    replacements = deduplicate_compositions(compositions, rng)
    coverage_added = ensure_coverage(compositions, config.max_combo, rng)
    ingredients = _build_ingredients(compositions)

    profile_hunt_target = choose(ingredients, rng)
    full_mapping_profiles = tuple(
        IngredientProfile(id=ingredient.id, elements=ingredient.elements)
        for ingredient in ingredients
    )

    distinct = unique_outcomes(enumerate_outcomes(ingredients, config.max_combo))
    target = select_target(distinct, rng)
    logger.debug(
        "Seed %r: %d ingredients (%d dedup swaps, %d coverage), %d outcomes, target %s needs %d",
        variant_seed,
        len(ingredients),
        replacements,
        coverage_added,
        len(distinct),
        target.effects,
        target.size,
    )

    return GeneratedGame(
        seed=base_seed,
        variant_seed=variant_seed,
        config=config,
        ingredients=tuple(ingredients),
        profile_hunt_target=profile_hunt_target,
        full_mapping_profiles=full_mapping_profiles,
        specific_potion=target.effects,
        min_size_for_target=target.size,
        attempts=attempt,
        coverage_added=coverage_added,
        distinct_outcomes=len(distinct),
    )


def generate_game(config: Optional[GenConfig] = None, today: Optional[date] = None) -> GeneratedGame:
    """Generate a complete puzzle from ``config``.

    The same seed and bounds always give the same game. Targets that need at
    least three ingredients are preferred: up to ``MAX_TARGET_ATTEMPTS`` salted
    seeds (``seed``, ``seed#1``, ...) are tried and the first hard target wins.
    When none qualifies the last build is kept with its two-ingredient target.
    """

    cfg = config or GenConfig()
    cfg.validate()
    base_seed = resolve_seed(cfg.seed, daily=cfg.daily, today=today)
    cfg = replace(cfg, seed=base_seed)

    built = build_game(cfg, base_seed, base_seed)
    for attempt in range(1, MAX_TARGET_ATTEMPTS):
        if built.min_size_for_target >= HARD_TARGET_SIZE:
            break
        built = build_game(cfg, base_seed, salted_seed(base_seed, attempt), attempt + 1)

    if built.min_size_for_target < HARD_TARGET_SIZE:
        logger.info(
            "No target needing %d+ ingredients after %d attempts for seed %r; keeping %s",
            HARD_TARGET_SIZE,
            MAX_TARGET_ATTEMPTS,
            base_seed,
            built.variant_seed,
        )
    else:
        logger.info(
            "Generated game %r (variant %r) with %d ingredients, target %s",
            base_seed,
            built.variant_seed,
            len(built.ingredients),
            " + ".join(built.specific_potion),
        )
    return built


__all__ = [
    "ComboOutcome",
    "GenConfig",
    "GenConfigError",
    "GeneratedGame",
    "HARD_TARGET_SIZE",
    "IngredientProfile",
    "MAX_INGREDIENT_LIMIT",
    "MAX_TARGET_ATTEMPTS",
    "build_game",
    "deduplicate_compositions",
    "ensure_coverage",
    "enumerate_outcomes",
    "generate_game",
    "make_ingredient_name",
    "random_ingredient",
    "select_target",
    "synthesize_covering_composition",
    "unique_outcomes",
]
