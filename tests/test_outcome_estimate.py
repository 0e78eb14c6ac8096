from itertools import combinations

import pytest

from potion_api import (
    MARK_NONE,
    MARK_NOT_LEFT,
    MARK_UNKNOWN,
    blank_marks,
    brew,
    elements_from_marks,
    estimate_outcome,
    marks_for_elements,
    mark_cycle,
    next_mark,
)
from potion_generator import GenConfig, generate_game


def test_elements_from_marks_needs_three_element_marks() -> None:
    marks = {"0": "Sun", "1": "Air", "2": MARK_NONE, "3": "Plant"}
    assert elements_from_marks(marks) == ("Sun", "Air", "Plant")

    partial = {"0": "Sun", "1": "Air", "2": MARK_NONE, "3": MARK_UNKNOWN}
    assert elements_from_marks(partial) is None

    assert elements_from_marks(blank_marks()) is None


def test_elements_from_marks_accepts_integer_keys() -> None:
    marks = {0: "Moon", 1: MARK_NOT_LEFT, 2: "Fire", 3: "Animal"}
    assert elements_from_marks(marks) == ("Moon", "Fire", "Animal")


def test_marks_from_another_pair_do_not_count() -> None:
    marks = {"0": "Air", "1": "Earth", "2": "Water", "3": "Plant"}
    assert elements_from_marks(marks) == ("Earth", "Water", "Plant")


def test_marks_for_elements_round_trips() -> None:
    marks = marks_for_elements(("Sun", "Water", "Animal"))
    assert marks == {"0": "Sun", "1": MARK_NONE, "2": "Water", "3": "Animal"}
    assert elements_from_marks(marks) == ("Sun", "Water", "Animal")


def test_mark_cycle_wraps_around() -> None:
    assert mark_cycle(2) == (MARK_UNKNOWN, "Water", "Fire", MARK_NONE, "NotLeft", "NotRight")
    mark = MARK_UNKNOWN
    seen = []
    for _ in range(6):
        mark = next_mark(mark, 0)
        seen.append(mark)
    assert seen == ["Sun", "Moon", MARK_NONE, "NotLeft", "NotRight", MARK_UNKNOWN]


def test_next_mark_rejects_foreign_marks() -> None:
    with pytest.raises(ValueError):
        next_mark("Water", 0)


def test_fewer_than_two_selections_give_nothing() -> None:
    marks = {"a": marks_for_elements(("Sun", "Air", "Water"))}
    assert estimate_outcome([], marks) is None
    assert estimate_outcome(["a"], marks) is None


def test_one_unknown_ingredient_is_ambiguous() -> None:
    marks = {"a": marks_for_elements(("Moon", "Air", "Water")), "b": blank_marks()}
    estimate = estimate_outcome(["a", "b"], marks)
    assert estimate is not None
    assert estimate.certain == frozenset()
    assert estimate.possible == frozenset({"Moon", "Air", "Water"})
    assert estimate.effects == ("Moon", "Air", "Water")
    assert estimate.ambiguous


def test_partial_marks_leave_water_uncertain() -> None:
    # B pins only Moon and Water, so A is the only resolved ingredient.
    marks = {
        "A": {"0": "Sun", "1": "Air", "2": "Water", "3": MARK_NONE},
        "B": {"0": "Moon", "1": MARK_NOT_LEFT, "2": "Water", "3": MARK_NONE},
        "C": blank_marks(),
    }
    estimate = estimate_outcome(["A", "B", "C"], marks)
    assert estimate is not None
    assert estimate.ambiguous is True
    assert estimate.certain == frozenset()
    assert estimate.effects == ("Sun", "Air", "Water", "Plant", "Animal")
    assert estimate.possible == frozenset(estimate.effects)


def test_certain_elements_survive_unknowns() -> None:
    marks = {
        "a": marks_for_elements(("Moon", "Air", "Water")),
        "b": marks_for_elements(("Moon", "Air", "Fire")),
        "c": marks_for_elements(("Moon", "Earth", "Plant")),
        "d": blank_marks(),
    }
    estimate = estimate_outcome(["a", "b", "c", "d"], marks)
    assert estimate is not None
    assert estimate.certain == frozenset({"Moon"})
    assert estimate.possible == frozenset({"Air", "Plant"})
    assert estimate.effects == ("Moon", "Air", "Plant")
    assert estimate.ambiguous


def test_unknown_ids_count_as_unresolved() -> None:
    marks = {"a": marks_for_elements(("Sun", "Air", "Water"))}
    estimate = estimate_outcome(["a", "missing"], marks)
    assert estimate is not None
    assert estimate.ambiguous


def test_full_knowledge_matches_real_brews() -> None:
    game = generate_game(GenConfig(seed="estimate", min_ingredients=6, max_ingredients=8))
    marks = {ingredient.id: marks_for_elements(ingredient.elements) for ingredient in game.ingredients}
    for size in range(2, game.max_combo + 1):
        for subset in combinations(game.ingredients, size):
            ids = [ingredient.id for ingredient in subset]
            estimate = estimate_outcome(ids, marks)
            assert estimate is not None
            assert estimate.effects == brew(list(subset)).effects
            assert estimate.certain == frozenset(estimate.effects)
            assert not estimate.ambiguous


def test_estimates_bound_the_truth() -> None:
    game = generate_game(GenConfig(seed="bounds", min_ingredients=6, max_ingredients=8))
    # Reveal only the even ingredients.
    marks = {
        ingredient.id: marks_for_elements(ingredient.elements) if index % 2 == 0 else blank_marks()
        for index, ingredient in enumerate(game.ingredients)
    }
    for subset in combinations(game.ingredients, 3):
        ids = [ingredient.id for ingredient in subset]
        estimate = estimate_outcome(ids, marks)
        assert estimate is not None
        actual = set(brew(list(subset)).effects)
        assert estimate.certain <= actual
        assert actual <= estimate.certain | estimate.possible
        assert set(estimate.effects) == estimate.certain | estimate.possible
