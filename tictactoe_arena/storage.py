import json
import logging
import os
import re
import time

import aiofiles
import aiofiles.os

from tictactoe_arena.records import MatchOutcome, MatchResult
from tictactoe_arena.stats import TournamentStats

LOGGER = logging.getLogger(__name__)


def generate_match_id(x_model: str, o_model: str, timestamp: int) -> str:
    return f"{x_model}-vs-{o_model}-{timestamp}"


class MatchIdClock:
    """
    Millisecond timestamps for match ids that never repeat within a process,
    even when two attempts start within the same millisecond. Only called from
    the event loop thread.
    """

    def __init__(self) -> None:
        self.last = 0

    def next(self) -> int:
        now = int(time.time() * 1000)
        self.last = max(now, self.last + 1)
        return self.last


async def ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        await aiofiles.os.makedirs(parent, exist_ok=True)


async def write_atomic(path: str, content: str) -> None:
    await ensure_parent(path)
    tmp_path = f"{path}.tmp"
    async with aiofiles.open(tmp_path, mode="w") as f:
        await f.write(content)
    await aiofiles.os.replace(tmp_path, path)


class TournamentLog:
    def __init__(
        self,
        matches_dir: str,
        outcomes_file: str,
        statistics_file: str,
        clock: MatchIdClock | None = None,
    ) -> None:
        if clock is None:
            clock = MatchIdClock()
        self.matches_dir = matches_dir
        self.outcomes_file = outcomes_file
        self.statistics_file = statistics_file
        self.clock = clock

    def ensure_directories(self) -> None:
        for path in [
            self.matches_dir,
            os.path.dirname(self.outcomes_file),
            os.path.dirname(self.statistics_file),
        ]:
            if path:
                os.makedirs(path, exist_ok=True)

    def new_match_id(self, x_model: str, o_model: str) -> str:
        return generate_match_id(x_model, o_model, self.clock.next())

    def match_file(self, match_id: str) -> str:
        filename = re.sub(r"[/\\:]", "_", match_id)
        return os.path.join(self.matches_dir, f"{filename}.json")

    async def persist_match(self, result: MatchResult) -> str:
        path = self.match_file(result.match_id)
        body = json.dumps(result.model_dump(mode="json"), indent=2)
        await write_atomic(path, body)
        LOGGER.debug("Wrote match record %s", path)
        return path

    async def append_outcome(self, outcome: MatchOutcome) -> None:
        await ensure_parent(self.outcomes_file)
        async with aiofiles.open(self.outcomes_file, mode="a+") as f:
            await f.write(json.dumps(outcome.to_json()) + "\n")

    async def load_outcomes(self) -> list[MatchOutcome]:
        if not os.path.exists(self.outcomes_file):
            return []

        outcomes: list[MatchOutcome] = []
        async with aiofiles.open(self.outcomes_file) as f:
            async for line in f:
                if not line.strip():
                    continue
                outcomes.append(MatchOutcome.model_validate_json(line))

        return outcomes

    async def persist_statistics(self, stats: TournamentStats) -> None:
        body = json.dumps(stats.model_dump(mode="json"), indent=2)
        await write_atomic(self.statistics_file, body)
        LOGGER.debug("Wrote statistics to %s", self.statistics_file)
