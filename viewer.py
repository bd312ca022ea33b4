import logging

logger = logging.getLogger(__name__)


class Viewer:
    """Receiver for human-readable codec messages.

    The base implementation ignores everything; subclasses override the
    methods they care about.
    """

    def show_message(self, text: str) -> None:
        """Advisory message, e.g. that compression would enlarge the file."""

    def show_error(self, text: str) -> None:
        """Report a failure that aborted an operation."""

    def update(self, text: str) -> None:
        """Status line for the operation in progress."""


class LoggingViewer(Viewer):
    """Default viewer forwarding messages to :mod:`logging`."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def show_message(self, text: str) -> None:
        self.log.warning(text)

    def show_error(self, text: str) -> None:
        self.log.error(text)

    def update(self, text: str) -> None:
        self.log.info(text)
