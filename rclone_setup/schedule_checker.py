"""Schedule inspection for the installed cron entry."""

from datetime import datetime
from typing import Optional

from croniter import croniter


class ScheduleChecker:
    """Evaluates the cron schedule the backup script is installed with."""

    @staticmethod
    def next_run_time(
        schedule: str, current_time: Optional[datetime] = None
    ) -> Optional[datetime]:
        """
        Get the next time cron will run the backup script.

        Args:
            schedule: Cron schedule string
            current_time: Current time (defaults to now)

        Returns:
            Next scheduled run time, or None if croniter cannot parse the schedule
        """
        if current_time is None:
            current_time = datetime.now()

        try:
            cron = croniter(schedule.strip(), current_time)
            return cron.get_next(datetime)
        except (ValueError, KeyError):
            # Host cron may accept extensions croniter rejects.
            return None

