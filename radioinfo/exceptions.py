"""
Error types raised by the loading pipeline.

Hard failures derive from LoadError and abort a whole refresh cycle.
Per-program image failures and unknown channel lookups are separate so
callers can absorb them without touching the refresh path.
"""


class LoadError(Exception):
    """Raised when channel or schedule data could not be loaded"""
    pass


class ConnectivityError(LoadError):
    """Raised when the API host is unreachable or a request times out"""
    pass


class ParseError(LoadError):
    """Raised when an API document is malformed"""
    pass


class ImageFetchError(Exception):
    """Raised when a program image cannot be downloaded"""
    pass


class ChannelNotFoundError(LookupError):
    """Raised when a channel id is not present in the current snapshot"""

    def __init__(self, channel_id: int):
        super().__init__(f"Channel {channel_id} not found")
        self.channel_id = channel_id
