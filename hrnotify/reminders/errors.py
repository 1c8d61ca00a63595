class ReminderError(Exception):
    """Base class for reminder engine errors"""


class ReminderConfigurationError(ReminderError):
    """Event or template configuration that cannot be acted on; the run or channel is skipped"""


class TemplateConfigurationError(ReminderConfigurationError):
    def __init__(self, event_type: str, channel: str, count: int):
        super().__init__(
            f"{count} active templates found for {event_type}/{channel}; expected at most one"
        )
        self.event_type = event_type
        self.channel = channel
        self.count = count


class InvalidEventConfigError(ReminderConfigurationError):
    pass


class AnchorDateError(ReminderError, ValueError):
    """A candidate's anchor date is missing or malformed; only that candidate is skipped"""
