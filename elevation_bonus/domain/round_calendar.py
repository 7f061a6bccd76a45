"""Round windows of the competition calendar.

Rounds are consecutive fixed-length windows starting at the competition start
date; every ``rounds_per_season`` rounds close a season, the last one being the
final round. ``today`` is always passed in by the caller.
"""

from datetime import date, timedelta

from elevation_bonus.models.schema_models import RoundContextSchema

DEFAULT_ROUND_DURATION_DAYS = 5
DEFAULT_ROUNDS_PER_SEASON = 5


class RoundCalendar:
    def __init__(
        self,
        start_date: date,
        round_duration_days: int = DEFAULT_ROUND_DURATION_DAYS,
        rounds_per_season: int = DEFAULT_ROUNDS_PER_SEASON,
    ):
        if round_duration_days < 1:
            raise ValueError("round_duration_days must be >= 1")
        if rounds_per_season < 1:
            raise ValueError("rounds_per_season must be >= 1")
        self.start_date = start_date
        self.round_duration_days = round_duration_days
        self.rounds_per_season = rounds_per_season

    def round_window(self, round_number: int) -> tuple[date, date]:
        """Return the first and last day of a round (1-based)."""
        if round_number < 1:
            raise ValueError("round_number must be >= 1")
        start = self.start_date + timedelta(days=(round_number - 1) * self.round_duration_days)
        return start, start + timedelta(days=self.round_duration_days - 1)

    def round_for(self, day: date) -> int:
        offset = (day - self.start_date).days
        if offset < 0:
            raise ValueError(f"{day.isoformat()} is before the competition start")
        return offset // self.round_duration_days + 1

    def day_index(self, day: date) -> int:
        """Index of ``day`` inside its round, 0 for the first day."""
        offset = (day - self.start_date).days
        if offset < 0:
            raise ValueError(f"{day.isoformat()} is before the competition start")
        return offset % self.round_duration_days

    def season_number(self, round_number: int) -> int:
        return (round_number - 1) // self.rounds_per_season + 1

    def is_final_round(self, round_number: int) -> bool:
        return round_number % self.rounds_per_season == 0

    def round_context(self, round_number: int, today: date) -> RoundContextSchema:
        """Build the flags used by the temporal bonus restrictions.

        ``is_final_day`` is true when ``today`` is the last day of ``round_number``.
        """
        _, last_day = self.round_window(round_number)
        return RoundContextSchema(
            is_final_day=today == last_day,
            is_final_round=self.is_final_round(round_number),
        )
