import asyncio
import dataclasses as dc
import itertools
import logging
import time
from typing import Awaitable, Callable

from blinker import signal

from tictactoe_arena.config import TournamentSettings
from tictactoe_arena.match import play_match
from tictactoe_arena.protocol import Contestant
from tictactoe_arena.records import TEXTUAL_INVALID_TYPES, MatchOutcome, MatchResult
from tictactoe_arena.stats import TournamentStats, compute_statistics
from tictactoe_arena.storage import TournamentLog

LOGGER = logging.getLogger(__name__)

match_started = signal("match-started")

match_recorded = signal("match-recorded")

Sleep = Callable[[float], Awaitable[None]]

Pause = Callable[[str], Awaitable[None]]


@dc.dataclass(frozen=True)
class Matchup:
    x: Contestant
    o: Contestant

    def describe(self) -> str:
        return f"{self.x.name} (X) vs {self.o.name} (O)"


def generate_matchups(contestants: list[Contestant]) -> list[Matchup]:
    """
    Every ordered pair of distinct contestants, so each pairing is played once
    with each side moving first.
    """
    return [Matchup(x, o) for x, o in itertools.permutations(contestants, 2)]


class Tournament:
    """
    Runs every matchup for the configured number of rounds, one match at a
    time, until each scheduled match produces a valid result.

    Retry policy for invalid matches:
    - model mistakes (blank, unparseable, out of range, occupied...) are retried
      immediately and never count against the retry budget
    - API errors and unexpected exceptions back off exponentially; once the
      budget is spent the tournament waits on `pause` for an operator before
      resetting the budget and trying again
    """

    def __init__(
        self,
        contestants: list[Contestant],
        settings: TournamentSettings,
        log: TournamentLog,
        *,
        sleep: Sleep = asyncio.sleep,
        pause: Pause,
    ) -> None:
        self.contestants = contestants
        self.settings = settings
        self.log = log
        self.sleep = sleep
        self.pause = pause
        self.matchups = generate_matchups(contestants)

    @property
    def total_matches(self) -> int:
        return len(self.matchups) * self.settings.rounds

    async def run(self) -> TournamentStats:
        self.log.ensure_directories()

        LOGGER.info(
            "Starting tournament: %d models, %d round(s), %d matches",
            len(self.contestants),
            self.settings.rounds,
            self.total_matches,
        )

        completed = 0
        for round_num in range(1, self.settings.rounds + 1):
            LOGGER.info("Round %d/%d", round_num, self.settings.rounds)
            for matchup in self.matchups:
                await self.play_until_accepted(matchup, round_num)
                completed += 1
                LOGGER.info("Match completed (%d/%d)", completed, self.total_matches)

        return await self.compute_statistics()

    async def compute_statistics(self) -> TournamentStats:
        # Always from the persisted log so outcomes from earlier runs count too
        outcomes = await self.log.load_outcomes()
        stats = compute_statistics(
            outcomes,
            [contestant.model_id for contestant in self.contestants],
            expected_total_matches=self.total_matches,
        )
        await self.log.persist_statistics(stats)
        return stats

    async def attempt(self, matchup: Matchup) -> MatchResult:
        match_id = self.log.new_match_id(matchup.x.model_id, matchup.o.model_id)
        match_started.send(self, matchup=matchup, match_id=match_id)
        timestamp = int(time.time() * 1000)
        try:
            return await play_match(
                matchup.x,
                matchup.o,
                match_id=match_id,
                timeout_ms=self.settings.timeout_ms,
                max_tokens=self.settings.max_tokens,
            )
        except Exception as err:
            LOGGER.exception("Unexpected error in match %s", match_id)
            return MatchResult.failed(
                match_id,
                matchup.x.model_id,
                matchup.o.model_id,
                reason=f"Unexpected error: {type(err).__name__}: {err}",
                timestamp=timestamp,
                duration_ms=int(time.time() * 1000) - timestamp,
            )

    async def record(self, result: MatchResult) -> MatchOutcome:
        match_file = await self.log.persist_match(result)
        outcome = MatchOutcome.from_result(result, match_file)
        await self.log.append_outcome(outcome)
        match_recorded.send(
            self, result=result, outcome=outcome, accepted=not result.is_invalid
        )
        return outcome

    async def play_until_accepted(
        self, matchup: Matchup, round_num: int = 1
    ) -> MatchResult:
        retries = 0
        backoff_ms = float(self.settings.backoff_base_ms)
        attempt = 0

        while True:
            attempt += 1
            result = await self.attempt(matchup)
            await self.record(result)

            if not result.is_invalid:
                return result

            if result.invalid_type in TEXTUAL_INVALID_TYPES:
                LOGGER.warning(
                    "Invalid move in %s (round %d, attempt %d): %s [%s]; retrying",
                    matchup.describe(),
                    round_num,
                    attempt,
                    result.invalid_reason,
                    result.invalid_type,
                )
                continue

            retries += 1
            LOGGER.error(
                "API failure in %s (round %d, attempt %d, retry %d/%d): %s",
                matchup.describe(),
                round_num,
                attempt,
                retries,
                self.settings.max_retries,
                result.invalid_reason,
            )

            if retries >= self.settings.max_retries:
                await self.pause(
                    f"{retries} consecutive failures for {matchup.describe()}. "
                    "Check the API and acknowledge to continue"
                )
                retries = 0
                backoff_ms = float(self.settings.backoff_base_ms)
                continue

            LOGGER.info("Retrying in %dms", backoff_ms)
            await self.sleep(backoff_ms / 1000)
            backoff_ms *= self.settings.backoff_multiplier
