from __future__ import annotations

import argparse
import csv
import logging
import os
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from potion_api import ALL_ELEMENTS, MAX_COMBO, RULES_VERSION, find_exact_solution
from potion_generator import (
    DEFAULT_MAX_INGREDIENTS,
    DEFAULT_MIN_INGREDIENTS,
    GenConfig,
    GenConfigError,
    HARD_TARGET_SIZE,
    GeneratedGame,
    generate_game,
)
from seed_utils import resolve_seed

logger = logging.getLogger(__name__)

PRIMARY_SUMMARY_KEYS: Tuple[str, ...] = (
    "games",
    "seed",
    "max_combo",
    "min_ingredients",
    "max_ingredients",
)

STAT_FIELDS: Tuple[str, ...] = (
    "ingredients",
    "target_size",
    "target_effects",
    "attempts",
    "coverage_added",
    "distinct_outcomes",
)


@dataclass(frozen=True)
class GameRecord:
    """Flattened numbers describing one generated game."""

    seed: str
    variant_seed: str
    ingredients: int
    target: Tuple[str, ...]
    target_size: int
    attempts: int
    coverage_added: int
    distinct_outcomes: int

    @classmethod
    def from_game(cls, game: GeneratedGame) -> "GameRecord":
        return cls(
            seed=game.seed,
            variant_seed=game.variant_seed,
            ingredients=len(game.ingredients),
            target=game.specific_potion,
            target_size=game.min_size_for_target,
            attempts=game.attempts,
            coverage_added=game.coverage_added,
            distinct_outcomes=game.distinct_outcomes,
        )

    def value(self, field_name: str) -> int:
        if field_name == "target_effects":
            return len(self.target)
        return int(getattr(self, field_name))


def summarize_values(values: Sequence[float]) -> Tuple[float, float, float, float, float]:
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return 0.0, 0.0, 0.0, 0.0, 0.0
    mean_val = float(np.mean(arr))
    std_val = float(np.std(arr))
    p50 = float(np.percentile(arr, 50))
    p90 = float(np.percentile(arr, 90))
    p99 = float(np.percentile(arr, 99))
    return mean_val, std_val, p50, p90, p99


def game_seeds(base_seed: str, games: int) -> List[str]:
    return [f"{base_seed}-{index}" for index in range(games)]


def simulate_games(
    games: int, base_seed: str, config: GenConfig
) -> Tuple[Dict[str, object], List[GameRecord], Counter, Counter]:
    """Generate ``games`` puzzles and aggregate their statistics.

    Returns the summary mapping, one record per game, how often each element
    appears in a target and how many games needed each target size.
    """

    if games <= 0:
        raise ValueError("games must be a positive integer")
    config.validate()

    records: List[GameRecord] = []
    element_totals: Counter = Counter({element: 0 for element in ALL_ELEMENTS})
    size_totals: Counter = Counter()
    for seed in game_seeds(base_seed, games):
        game = generate_game(GenConfig(
            seed=seed,
            max_combo=config.max_combo,
            min_ingredients=config.min_ingredients,
            max_ingredients=config.max_ingredients,
        ))
        record = GameRecord.from_game(game)
        records.append(record)
        element_totals.update(record.target)
        size_totals[record.target_size] += 1

    summary: Dict[str, object] = {
        "games": games,
        "seed": base_seed,
        "max_combo": config.max_combo,
        "min_ingredients": config.min_ingredients,
        "max_ingredients": config.max_ingredients,
    }
    for field_name in STAT_FIELDS:
        mean_val, std_val, p50, p90, p99 = summarize_values(
            [record.value(field_name) for record in records]
        )
        summary[f"{field_name}_mean"] = round(mean_val, 3)
        summary[f"{field_name}_std"] = round(std_val, 3)
        summary[f"{field_name}_p50"] = p50
        summary[f"{field_name}_p90"] = p90
        summary[f"{field_name}_p99"] = p99
    hard = sum(1 for record in records if record.target_size >= HARD_TARGET_SIZE)
    summary["hard_target_rate"] = round(hard / games, 3)
    summary["games_needing_retry"] = sum(1 for record in records if record.attempts > 1)
    summary["rules_version"] = RULES_VERSION
    logger.info("Simulated %d games from base seed %r", games, base_seed)
    return summary, records, element_totals, size_totals


def iter_summary_items(summary: Dict[str, object]) -> Iterator[Tuple[str, object]]:
    """Yield summary entries in a stable order for console and reports."""

    seen: set[str] = set()
    for key in PRIMARY_SUMMARY_KEYS:
        if key in summary:
            seen.add(key)
            yield key, summary[key]
    for key, value in summary.items():
        if key in seen:
            continue
        seen.add(key)
        yield key, value


def format_summary_value(value: object) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def ensure_dir(path: str) -> None:
    if path and not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def format_report_header() -> str:
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    return f"=== Potion Puzzle Report (Rules v{RULES_VERSION}) ===\nGenerated: {timestamp}\n"


def write_report_files(
    out_dir: str,
    summary: Dict[str, object],
    records: Sequence[GameRecord],
    element_totals: Counter,
    size_totals: Counter,
) -> Dict[str, str]:
    ensure_dir(out_dir)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    base_name = f"report_games{summary.get('games')}_seed{summary.get('seed')}_{timestamp}"

    txt_path = os.path.join(out_dir, base_name + ".txt")
    with open(txt_path, "w", encoding="utf-8") as handle:
        handle.write(format_report_header())
        handle.write("\n")
        for key, value in iter_summary_items(summary):
            handle.write(f"{key}: {format_summary_value(value)}\n")
        handle.write("\nTarget Elements:\n")
        for element, count in element_totals.items():
            handle.write(f"{element},{count}\n")
        handle.write("\nTarget Sizes:\n")
        for size, count in sorted(size_totals.items()):
            handle.write(f"{size},{count}\n")

    csv_games = os.path.join(out_dir, base_name + "_games.csv")
    with open(csv_games, "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow([
            "Seed",
            "VariantSeed",
            "Ingredients",
            "Target",
            "TargetSize",
            "Attempts",
            "CoverageAdded",
            "DistinctOutcomes",
        ])
        for record in records:
            writer.writerow([
                record.seed,
                record.variant_seed,
                record.ingredients,
                " + ".join(record.target),
                record.target_size,
                record.attempts,
                record.coverage_added,
                record.distinct_outcomes,
            ])

    csv_elements = os.path.join(out_dir, base_name + "_elements.csv")
    with open(csv_elements, "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["Element", "TargetCount"])
        for element, count in element_totals.items():
            writer.writerow([element, count])

    return {
        "summary_txt": txt_path,
        "games_csv": csv_games,
        "elements_csv": csv_elements,
    }


def format_game(game: GeneratedGame) -> str:
    """Render one game with its exact solution for the console."""

    lines = [f"Seed: {game.seed} (variant {game.variant_seed}, attempt {game.attempts})"]
    for ingredient in game.ingredients:
        lines.append(f"  [{ingredient.id:>2}] {ingredient.name:<16} {', '.join(ingredient.profile)}")
    lines.append(f"Profile hunt: {game.profile_hunt_target.name} ({game.profile_hunt_target.id})")
    lines.append(f"Target potion: {' + '.join(game.specific_potion)}")
    solution = find_exact_solution(game.ingredients, game.specific_potion, game.max_combo)
    if solution is None:
        lines.append("Solution: none")
    else:
        names = [game.ingredient_by_id(ingredient_id).name for ingredient_id in solution]
        lines.append(f"Solution: {', '.join(names)} ({', '.join(solution)})")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Potion Puzzle Generation Simulator")
    parser.add_argument(
        "--games",
        type=int,
        default=100,
        help="Number of puzzles to generate (default=%(default)s)",
    )
    parser.add_argument(
        "--seed",
        type=str,
        default=None,
        help="Base seed string; game N uses '<seed>-N' (default=None=randomized)",
    )
    parser.add_argument(
        "--daily",
        action="store_true",
        help="Use today's daily seed as the base seed",
    )
    parser.add_argument(
        "--max-combo",
        type=int,
        default=MAX_COMBO,
        help="Largest brew size considered (default=%(default)s)",
    )
    parser.add_argument(
        "--min-ingredients",
        type=int,
        default=DEFAULT_MIN_INGREDIENTS,
        help="Lower bound on drawn ingredients (default=%(default)s)",
    )
    parser.add_argument(
        "--max-ingredients",
        type=int,
        default=DEFAULT_MAX_INGREDIENTS,
        help="Upper bound on drawn ingredients (default=%(default)s)",
    )
    parser.add_argument(
        "--out",
        type=str,
        default="reports",
        help="Output folder for report files (default=%(default)s)",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Print the first generated game with its solution",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default=%(default)s)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.games <= 0:
        raise SystemExit("--games must be a positive integer")

    config = GenConfig(
        max_combo=args.max_combo,
        min_ingredients=args.min_ingredients,
        max_ingredients=args.max_ingredients,
    )
    try:
        config.validate()
    except GenConfigError as exc:
        raise SystemExit(str(exc)) from exc

    base_seed = resolve_seed(args.seed, daily=args.daily)
    print(f"Using base seed: {base_seed}")

    if args.show:
        first = generate_game(GenConfig(
            seed=game_seeds(base_seed, 1)[0],
            max_combo=config.max_combo,
            min_ingredients=config.min_ingredients,
            max_ingredients=config.max_ingredients,
        ))
        print(format_game(first))
        print()

    summary, records, element_totals, size_totals = simulate_games(args.games, base_seed, config)

    print(f"=== SUMMARY (Rules v{RULES_VERSION}) ===")
    for key, value in iter_summary_items(summary):
        print(f"{key}: {format_summary_value(value)}")

    paths = write_report_files(args.out, summary, records, element_totals, size_totals)
    print("\nFiles written:")
    for label, path in paths.items():
        print(f" - {label}: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
