"""Core brewing rules for the potion deduction puzzles.

Eight elements live in four opposing pairs. Every ingredient carries exactly
three elements, never two from the same pair. Brewing tallies the elements of
the chosen ingredients and an element triggers when it outnumbers its opponent
by at least two. The helpers here are pure: they never mutate the ingredients
or marks they are given.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

RULES_VERSION = "1.0.0"

ELEMENTS_PER_INGREDIENT = 3
TRIGGER_MARGIN = 2
MIN_COMBO = 2
MAX_COMBO = 4

ALL_ELEMENTS: Tuple[str, ...] = (
    "Sun",
    "Moon",
    "Air",
    "Earth",
    "Water",
    "Fire",
    "Plant",
    "Animal",
)

PAIRS: Tuple[Tuple[str, str], ...] = (
    ("Sun", "Moon"),
    ("Air", "Earth"),
    ("Water", "Fire"),
    ("Plant", "Animal"),
)

OPPONENT: Mapping[str, str] = {
    **{left: right for left, right in PAIRS},
    **{right: left for left, right in PAIRS},
}

ORDER_INDEX: Mapping[str, int] = {element: index for index, element in enumerate(ALL_ELEMENTS)}

MARK_UNKNOWN = "Unknown"
MARK_NONE = "None"
MARK_NOT_LEFT = "NotLeft"
MARK_NOT_RIGHT = "NotRight"


def sort_elements(elements: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted(elements, key=lambda element: ORDER_INDEX[element]))


def can_add_element(current: Sequence[str], element: str) -> bool:
    """Return True when ``element`` is neither present nor opposed in ``current``."""

    if element in current:
        return False
    return all(OPPONENT[existing] != element for existing in current)


def is_valid_composition(elements: Sequence[str]) -> bool:
    if len(elements) != ELEMENTS_PER_INGREDIENT:
        return False
    accepted: List[str] = []
    for element in elements:
        if element not in ORDER_INDEX or not can_add_element(accepted, element):
            return False
        accepted.append(element)
    return True


def same_set(first: Optional[Sequence[str]], second: Optional[Sequence[str]]) -> bool:
    if first is None or second is None:
        return False
    if len(first) != len(second):
        return False
    return set(first) == set(second)


@dataclass(frozen=True)
class Ingredient:
    id: str
    name: str
    elements: Tuple[str, ...]

    def __post_init__(self) -> None:
        elements = tuple(self.elements)
        if not is_valid_composition(elements):
            raise ValueError(
                f"Ingredient {self.id!r} needs three distinct non-opposing elements, got {elements}"
            )
        object.__setattr__(self, "elements", elements)

    @property
    def profile(self) -> Tuple[str, ...]:
        """Elements in canonical display order."""

        return sort_elements(self.elements)


@dataclass(frozen=True)
class BrewResult:
    effects: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_null(self) -> bool:
        return not self.effects

    def describe(self) -> str:
        if self.is_null:
            return "Null potion"
        return " + ".join(self.effects)


def element_counts(compositions: Iterable[Sequence[str]]) -> Counter[str]:
    counts: Counter[str] = Counter({element: 0 for element in ALL_ELEMENTS})
    for elements in compositions:
        counts.update(elements)
    return counts


def brew_compositions(compositions: Iterable[Sequence[str]]) -> BrewResult:
    """Brew raw element groups; see :func:`brew`."""

    counts = element_counts(compositions)
    effects = [
        element
        for element in ALL_ELEMENTS
        if counts[element] - counts[OPPONENT[element]] >= TRIGGER_MARGIN
    ]
    return BrewResult(effects=sort_elements(effects))


def brew(ingredients: Sequence[Ingredient]) -> BrewResult:
    """Combine ``ingredients`` into a potion.

    An element triggers when its total count exceeds its opponent's by at least
    ``TRIGGER_MARGIN``. Because the margin is two, an element and its opponent
    can never trigger together. The effects come back in canonical order and
    an empty result is a null potion.
    """

    return brew_compositions(ingredient.elements for ingredient in ingredients)


def iter_subsets(count: int, max_combo: int, min_combo: int = MIN_COMBO):
    """Yield index tuples by increasing size, then lexicographic index order."""

    for size in range(min_combo, min(max_combo, count) + 1):
        yield from combinations(range(count), size)


def has_basic_potion_for(
    target: str, ingredients: Sequence[Ingredient], max_combo: int
) -> bool:
    """Return True if some 2..max_combo subset brews a potion containing ``target``."""

    for subset in iter_subsets(len(ingredients), max_combo):
        result = brew([ingredients[index] for index in subset])
        if target in result.effects:
            return True
    return False


def find_exact_solution(
    ingredients: Sequence[Ingredient],
    target_effects: Sequence[str],
    max_combo: int,
) -> Optional[List[str]]:
    """Return the ids of the smallest, earliest subset brewing exactly ``target_effects``.

    Subsets are tried by increasing size and, within a size, in index order.
    The match must be exact: a superset of the target does not count. ``None``
    means no subset of up to ``max_combo`` ingredients produces the target.
    """

    target = sort_elements(target_effects)
    if not target:
        return None
    for subset in iter_subsets(len(ingredients), max_combo):
        picked = [ingredients[index] for index in subset]
        result = brew(picked)
        if result.effects == target:
            return [ingredient.id for ingredient in picked]
    return None


# --- Deduction marks --------------------------------------------------------


def mark_cycle(pair_index: int) -> Tuple[str, ...]:
    left, right = PAIRS[pair_index]
    return (MARK_UNKNOWN, left, right, MARK_NONE, MARK_NOT_LEFT, MARK_NOT_RIGHT)


def next_mark(current: str, pair_index: int) -> str:
    cycle = mark_cycle(pair_index)
    if current not in cycle:
        raise ValueError(f"{current!r} is not a valid mark for pair {PAIRS[pair_index]}")
    return cycle[(cycle.index(current) + 1) % len(cycle)]


def blank_marks(pairs: Sequence[Tuple[str, str]] = PAIRS) -> Dict[str, str]:
    return {str(index): MARK_UNKNOWN for index in range(len(pairs))}


def marks_for_elements(
    elements: Sequence[str], pairs: Sequence[Tuple[str, str]] = PAIRS
) -> Dict[str, str]:
    """Return the fully solved marks describing ``elements``."""

    marks: Dict[str, str] = {}
    for index, (left, right) in enumerate(pairs):
        if left in elements:
            marks[str(index)] = left
        elif right in elements:
            marks[str(index)] = right
        else:
            marks[str(index)] = MARK_NONE
    return marks


def _mark_at(marks: Mapping, index: int) -> Optional[str]:
    if str(index) in marks:
        return marks[str(index)]
    return marks.get(index, MARK_UNKNOWN)


def elements_from_marks(
    marks: Mapping, pairs: Sequence[Tuple[str, str]] = PAIRS
) -> Optional[Tuple[str, ...]]:
    """Resolve one ingredient's marks to a definitive composition.

    Only explicit element marks pin an element; ``None`` and the ``Not*`` marks
    narrow the grid but do not count. The result is ``None`` unless exactly
    three elements are pinned.
    """

    chosen: List[str] = []
    for index, pair in enumerate(pairs):
        mark = _mark_at(marks, index)
        if mark in pair:
            chosen.append(mark)
    if len(chosen) != ELEMENTS_PER_INGREDIENT:
        return None
    return sort_elements(chosen)


@dataclass(frozen=True)
class OutcomeEstimate:
    effects: Tuple[str, ...]
    certain: FrozenSet[str]
    possible: FrozenSet[str] = frozenset()
    ambiguous: bool = False


def estimate_outcome(
    selected_ids: Sequence[str],
    marks_by_ingredient: Mapping[str, Mapping],
    pairs: Sequence[Tuple[str, str]] = PAIRS,
) -> Optional[OutcomeEstimate]:
    """Preview a brew from the player's marks instead of the true compositions.

    Fully resolved selections are brewed directly. Otherwise every unresolved
    ingredient may add one to any element, which gives a min/max count per
    element. An element is certain when its minimum beats its opponent's
    maximum by the trigger margin, and possible when its maximum beats the
    opponent's minimum. The preview is ambiguous when nothing is reported or
    when possible-only elements outnumber certain ones; that threshold is a
    conservative heuristic rather than a tight bound.
    """

    if len(selected_ids) < MIN_COMBO:
        return None

    resolved = [
        elements_from_marks(marks_by_ingredient.get(ingredient_id) or {}, pairs)
        for ingredient_id in selected_ids
    ]

    if all(composition is not None for composition in resolved):
        result = brew_compositions(resolved)  # type: ignore[arg-type]
        return OutcomeEstimate(
            effects=result.effects,
            certain=frozenset(result.effects),
            possible=frozenset(),
            ambiguous=False,
        )

    min_count = element_counts(composition for composition in resolved if composition)
    unresolved = sum(1 for composition in resolved if composition is None)
    max_count = Counter({element: min_count[element] + unresolved for element in ALL_ELEMENTS})

    certain = set()
    possible = set()
    for element in ALL_ELEMENTS:
        opponent = OPPONENT[element]
        if min_count[element] - max_count[opponent] >= TRIGGER_MARGIN:
            certain.add(element)
        elif max_count[element] - min_count[opponent] >= TRIGGER_MARGIN:
            possible.add(element)

    effects = sort_elements(certain | possible)
    ambiguous = not effects or len(possible) > len(certain)
    return OutcomeEstimate(
        effects=effects,
        certain=frozenset(certain),
        possible=frozenset(possible),
        ambiguous=ambiguous,
    )


__all__ = [
    "ALL_ELEMENTS",
    "BrewResult",
    "ELEMENTS_PER_INGREDIENT",
    "Ingredient",
    "MARK_NONE",
    "MARK_NOT_LEFT",
    "MARK_NOT_RIGHT",
    "MARK_UNKNOWN",
    "MAX_COMBO",
    "MIN_COMBO",
    "OPPONENT",
    "ORDER_INDEX",
    "OutcomeEstimate",
    "PAIRS",
    "RULES_VERSION",
    "blank_marks",
    "brew",
    "brew_compositions",
    "can_add_element",
    "element_counts",
    "elements_from_marks",
    "estimate_outcome",
    "find_exact_solution",
    "has_basic_potion_for",
    "is_valid_composition",
    "iter_subsets",
    "mark_cycle",
    "marks_for_elements",
    "next_mark",
    "same_set",
    "sort_elements",
]
