from itertools import combinations

import pytest

from potion_api import (
    ALL_ELEMENTS,
    OPPONENT,
    BrewResult,
    Ingredient,
    brew,
    brew_compositions,
    can_add_element,
    is_valid_composition,
    sort_elements,
)
from potion_generator import GenConfig, generate_game


def _ingredient(ingredient_id: str, *elements: str) -> Ingredient:
    return Ingredient(id=ingredient_id, name=f"Test {ingredient_id}", elements=elements)


def test_two_matching_elements_trigger() -> None:
    first = _ingredient("a", "Moon", "Air", "Water")
    second = _ingredient("b", "Moon", "Earth", "Plant")
    result = brew([first, second])
    assert result.effects == ("Moon",)
    assert not result.is_null


def test_opposing_element_cancels_trigger() -> None:
    first = _ingredient("a", "Moon", "Air", "Water")
    second = _ingredient("b", "Moon", "Earth", "Plant")
    third = _ingredient("c", "Sun", "Fire", "Animal")
    result = brew([first, second, third])
    assert result.effects == ()
    assert result.is_null
    assert result.describe() == "Null potion"


def test_effects_come_back_in_canonical_order() -> None:
    first = _ingredient("a", "Plant", "Fire", "Air")
    second = _ingredient("b", "Fire", "Air", "Plant")
    result = brew([first, second])
    assert result.effects == ("Air", "Fire", "Plant")
    assert result.describe() == "Air + Fire + Plant"


def test_brew_compositions_matches_brew() -> None:
    groups = [("Sun", "Earth", "Water"), ("Sun", "Earth", "Animal"), ("Sun", "Water", "Plant")]
    ingredients = [_ingredient(str(index), *group) for index, group in enumerate(groups)]
    assert brew_compositions(groups) == brew(ingredients)
    assert brew(ingredients).effects == ("Sun", "Earth", "Water")


def test_brew_result_defaults_to_null() -> None:
    assert BrewResult().is_null


@pytest.mark.parametrize(
    "elements",
    [
        ("Sun", "Moon", "Air"),
        ("Sun", "Air"),
        ("Sun", "Air", "Water", "Plant"),
        ("Sun", "Sun", "Air"),
        ("Sun", "Air", "Smoke"),
    ],
)
def test_ingredient_rejects_invalid_compositions(elements) -> None:
    with pytest.raises(ValueError):
        Ingredient(id="bad", name="Bad", elements=elements)


def test_ingredient_profile_is_sorted() -> None:
    ingredient = _ingredient("a", "Animal", "Water", "Sun")
    assert ingredient.elements == ("Animal", "Water", "Sun")
    assert ingredient.profile == ("Sun", "Water", "Animal")


def test_composition_helpers() -> None:
    assert can_add_element(["Sun"], "Air")
    assert not can_add_element(["Sun"], "Moon")
    assert not can_add_element(["Sun"], "Sun")
    assert is_valid_composition(["Fire", "Sun", "Earth"])
    assert not is_valid_composition(["Fire", "Water", "Earth"])
    assert sort_elements(["Animal", "Sun", "Fire"]) == ("Sun", "Fire", "Animal")


def test_opponents_never_trigger_together() -> None:
    game = generate_game(GenConfig(seed="no-co-trigger"))
    ingredients = game.ingredients
    for size in range(2, game.max_combo + 1):
        for subset in combinations(ingredients, size):
            effects = brew(list(subset)).effects
            for element in effects:
                assert OPPONENT[element] not in effects
            assert list(effects) == sorted(effects, key=ALL_ELEMENTS.index)
