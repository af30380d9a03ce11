from tictactoe_arena.config import LoggingSettings
from tictactoe_arena.stats import InvalidMoveCounts, TournamentStats

INVALID_LABELS = [
    ("blank", "Blank responses"),
    ("invalid_syntax", "Invalid syntax"),
    ("outside_board", "Outside board"),
    ("occupied_cell", "Occupied cells"),
    ("negative_coordinates", "Negative coords"),
    ("api_error", "API errors"),
]


def format_invalid_counts(counts: InvalidMoveCounts) -> str:
    return " | ".join(
        f"{label}: {getattr(counts, field)}" for field, label in INVALID_LABELS
    )


def print_statistics(
    stats: TournamentStats,
    title: str = "FINAL TOURNAMENT RESULTS",
    paths: LoggingSettings | None = None,
) -> None:
    print(title)
    print("=" * 50)
    print(f"Total Matches: {stats.total_matches}")
    print(f"Completed: {stats.completed_matches}")
    print(f"Invalid: {stats.invalid_matches}")
    print()

    print("RANKINGS:")
    print("-" * 50)
    for ranking in stats.rankings:
        model = stats.get(ranking.model_id)
        print(f"{ranking.rank}. {ranking.model_id}")
        print(f"   Win Rate: {ranking.win_rate * 100:.1f}% ({ranking.total_wins} wins)")
        print(
            f"   W: {model.wins} | L: {model.losses} | "
            f"D: {model.draws} | I: {model.invalid_games}"
        )
        print()

    if stats.overall_invalid_moves.total:
        print("INVALID MOVES:")
        print("-" * 50)
        print(f"Overall: {stats.overall_invalid_moves.total}")
        print(f"   {format_invalid_counts(stats.overall_invalid_moves)}")
        for model in stats.models:
            if model.invalid_moves.total:
                print(f"{model.model_id}: {model.invalid_moves.total} invalid moves")
                print(f"   {format_invalid_counts(model.invalid_moves)}")
        print()

    print("HEAD-TO-HEAD RECORDS:")
    print("-" * 50)
    for model in stats.models:
        print(f"{model.model_id}:")
        for opponent, record in model.opponents.items():
            if record.wins + record.losses + record.draws + record.invalid == 0:
                continue
            print(
                f"  vs {opponent}: {record.wins}W-{record.losses}L-"
                f"{record.draws}D-{record.invalid}I"
            )
        print()

    if paths is not None:
        print("Detailed logs saved to:")
        print(f"   Matches: {paths.matches_dir}/")
        print(f"   Outcomes: {paths.outcomes_file}")
        print(f"   Statistics: {paths.statistics_file}")
