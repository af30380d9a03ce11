import asyncio
import logging
import os
import time

import click
import openai
from click_default_group import DefaultGroup
from tqdm.auto import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from tictactoe_arena import settings, tournament
from tictactoe_arena.completions import OpenAICompleter, get_openai_client
from tictactoe_arena.config import ArenaConfig, ConfigError, load_config, validate_config
from tictactoe_arena.display import print_statistics
from tictactoe_arena.protocol import Contestant
from tictactoe_arena.stats import compute_statistics
from tictactoe_arena.storage import TournamentLog
from tictactoe_arena.usage import UsageTracker
from tictactoe_arena.utils import async_command, readable_duration, setup_logging

LOGGER = logging.getLogger(__name__)


@click.group(cls=DefaultGroup, default="run", default_if_no_args=True)
def cli():
    pass


def build_contestants(config: ArenaConfig) -> list[Contestant]:
    contestants: list[Contestant] = []
    for model in config.models:
        tracker = UsageTracker()
        completer = OpenAICompleter(model, get_openai_client(model), tracker)
        contestants.append(
            Contestant(
                model_id=model.key,
                name=model.display_name,
                mode=model.mode,
                system_prompt=config.system_prompt_for(model),
                completer=completer,
                tracker=tracker,
            )
        )
    return contestants


def tournament_log(config: ArenaConfig) -> TournamentLog:
    return TournamentLog(
        config.logging.matches_dir,
        config.logging.outcomes_file,
        config.logging.statistics_file,
    )


async def console_pause(message: str) -> None:
    def wait() -> None:
        click.echo()
        click.prompt(
            f"{message}. Press Enter to continue",
            default="",
            show_default=False,
            prompt_suffix="...",
        )

    await asyncio.to_thread(wait)


class Progress:
    def __init__(self, bar: tqdm) -> None:
        self.bar = bar
        self.attempts = 0
        self.invalid = 0

    def match_recorded(self, sender, result, outcome, accepted):
        self.attempts += 1
        if accepted:
            self.bar.update(1)
        else:
            self.invalid += 1
        self.bar.set_postfix(attempts=self.attempts, invalid=self.invalid)


def print_usage(config: ArenaConfig, contestants: list[Contestant]) -> None:
    print("LLM Usage:")
    total_cost = 0.0
    for model, contestant in zip(config.models, contestants):
        tracker = contestant.tracker
        cost = tracker.cost(model.id)
        cost_str = "unknown cost" if cost is None else f"${cost:.3f}"
        if cost is not None:
            total_cost += cost
        print(
            f"- {contestant.model_id}: {tracker.input:,} input tokens "
            f"({tracker.cached_input:,} cached), {tracker.output:,} output "
            f"({cost_str})"
        )
    print(f"Total cost: ${total_cost:.3f}")


def load_valid_config(path: str) -> ArenaConfig:
    try:
        config = load_config(path)
        validate_config(config)
    except ConfigError as err:
        raise click.ClickException(str(err)) from err
    return config


@async_command(cli)
@click.option("-c", "--config", "config_path", default=settings.CONFIG_FILE)
@click.option("-r", "--rounds", type=int, default=None, help="Override the round count")
@click.option("-l", "--log-level", default=None)
@click.option("--no-progress", is_flag=True, help="Disable the progress bar")
async def run(
    config_path: str, rounds: int | None, log_level: str | None, no_progress: bool
) -> None:
    setup_logging(log_level)

    config = load_valid_config(config_path)
    if rounds is not None:
        config.tournament.rounds = rounds

    contestants = build_contestants(config)
    for contestant in contestants:
        LOGGER.info("Loaded %s (%s)", contestant.name, contestant.model_id)

    arena = tournament.Tournament(
        contestants, config.tournament, tournament_log(config), pause=console_pause
    )

    LOGGER.info(
        "%d round(s) per matchup, %dms timeout per move",
        config.tournament.rounds,
        config.tournament.timeout_ms,
    )

    start = time.time()
    with logging_redirect_tqdm(loggers=[logging.getLogger("tictactoe_arena")]):
        bar = tqdm(total=arena.total_matches, disable=no_progress)
        progress = Progress(bar)
        tournament.match_recorded.connect(progress.match_recorded, sender=arena)
        try:
            stats = await arena.run()
        finally:
            bar.close()
    elapsed = time.time() - start

    print()
    print_statistics(stats, paths=config.logging)
    print()
    print("Elapsed:", readable_duration(elapsed))
    print_usage(config, contestants)


@async_command(cli)
@click.option("-c", "--config", "config_path", default=settings.CONFIG_FILE)
@click.option("-l", "--log-level", default=None)
async def analyze(config_path: str, log_level: str | None) -> None:
    """
    Recompute statistics from the outcome log
    """
    setup_logging(log_level)

    try:
        config = load_config(config_path)
    except ConfigError as err:
        raise click.ClickException(str(err)) from err

    log = tournament_log(config)
    outcomes = await log.load_outcomes()
    if not outcomes:
        raise click.ClickException(f"No outcomes found in {log.outcomes_file}")

    print(f"Analyzing {len(outcomes)} matches...")
    print()

    stats = compute_statistics(outcomes)
    log.ensure_directories()
    await log.persist_statistics(stats)

    print_statistics(stats, title="TOURNAMENT RESULTS ANALYSIS")
    print(f"Statistics saved to {log.statistics_file}")


CHAT_MODEL_MARKERS = ("gpt", "chat", "turbo", "o1", "o3", "o4")


@async_command(cli, name="list-models")
@click.option("--api-key", default=None, help="Defaults to $OPENAI_API_KEY")
@click.option("--base-url", default=None)
async def list_models(api_key: str | None, base_url: str | None) -> None:
    """
    List the models available to an API key
    """
    if api_key is None:
        api_key = os.getenv(settings.DEFAULT_API_KEY_ENV)
    if (api_key or "") in settings.PLACEHOLDER_API_KEYS:
        raise click.BadParameter("provide a valid API key", param_hint="--api-key")

    client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url)
    try:
        model_ids = sorted([model.id async for model in client.models.list()])
    except openai.OpenAIError as err:
        raise click.ClickException(f"Failed to fetch models: {err}") from err

    chat_models = [
        model_id
        for model_id in model_ids
        if any(marker in model_id for marker in CHAT_MODEL_MARKERS)
    ]

    print("Chat models:")
    for model_id in chat_models:
        print(f"- {model_id}")
    print()
    print("All models:")
    for model_id in model_ids:
        print(f"- {model_id}")
    print()
    print(f"Found {len(model_ids)} models ({len(chat_models)} chat models)")


if __name__ == "__main__":
    cli()
