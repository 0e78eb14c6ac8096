from potion_api import Ingredient, brew, find_exact_solution, has_basic_potion_for, iter_subsets
from potion_generator import GenConfig, generate_game


def _ingredient(ingredient_id: str, *elements: str) -> Ingredient:
    return Ingredient(id=ingredient_id, name=ingredient_id.title(), elements=elements)


def test_exact_match_ignores_supersets() -> None:
    ingredients = [
        _ingredient("a", "Sun", "Air", "Water"),
        _ingredient("b", "Sun", "Air", "Fire"),
    ]
    assert brew(ingredients).effects == ("Sun", "Air")
    assert find_exact_solution(ingredients, ["Sun"], 4) is None
    assert find_exact_solution(ingredients, ["Air", "Sun"], 4) == ["a", "b"]


def test_smallest_subset_wins() -> None:
    ingredients = [
        _ingredient("a", "Moon", "Earth", "Plant"),
        _ingredient("b", "Sun", "Air", "Water"),
        _ingredient("c", "Moon", "Earth", "Animal"),
        _ingredient("d", "Moon", "Earth", "Plant"),
    ]
    # Moon + Earth first appears with a+c; a+c+d would also be fine but is larger.
    assert find_exact_solution(ingredients, ["Moon", "Earth"], 4) == ["a", "c"]


def test_max_combo_limits_the_search() -> None:
    ingredients = [
        _ingredient("a", "Sun", "Air", "Water"),
        _ingredient("b", "Sun", "Earth", "Fire"),
        _ingredient("c", "Sun", "Air", "Plant"),
    ]
    assert find_exact_solution(ingredients, ["Sun"], 2) == ["a", "b"]
    # a + b only reaches Sun, so Sun + Air needs a and c.
    assert find_exact_solution(ingredients, ["Sun", "Air"], 2) == ["a", "c"]
    assert find_exact_solution(ingredients, ["Sun", "Air", "Water"], 3) is None


def test_empty_target_has_no_solution() -> None:
    ingredients = [_ingredient("a", "Sun", "Air", "Water"), _ingredient("b", "Moon", "Earth", "Fire")]
    assert find_exact_solution(ingredients, [], 4) is None


def test_iter_subsets_orders_by_size_then_index() -> None:
    subsets = list(iter_subsets(4, 3))
    assert subsets[0] == (0, 1)
    assert subsets[5] == (2, 3)
    assert subsets[6] == (0, 1, 2)
    assert all(len(first) <= len(second) for first, second in zip(subsets, subsets[1:]))
    assert len(subsets) == 6 + 4


def test_has_basic_potion_for() -> None:
    ingredients = [
        _ingredient("a", "Sun", "Air", "Water"),
        _ingredient("b", "Sun", "Earth", "Fire"),
    ]
    assert has_basic_potion_for("Sun", ingredients, 4)
    assert not has_basic_potion_for("Moon", ingredients, 4)


def test_generated_targets_are_solvable_within_max_combo() -> None:
    for seed in ("solve-1", "solve-2", "solve-3"):
        game = generate_game(GenConfig(seed=seed, max_combo=3, min_ingredients=6, max_ingredients=9))
        solution = find_exact_solution(game.ingredients, game.specific_potion, game.max_combo)
        assert solution is not None
        assert 2 <= len(solution) <= game.max_combo
