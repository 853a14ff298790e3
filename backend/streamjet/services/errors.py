"""Domain exceptions raised by the service layer and mapped to HTTP by the routers."""


class StreamJetError(Exception):
    """Base class for StreamJet service errors."""


class NotAuthenticatedError(StreamJetError):
    """An action that needs a signed-in listener was attempted without one."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class DirectoryError(StreamJetError):
    """The station directory could not be reached or answered with an error."""


class MetadataError(StreamJetError):
    """The music metadata provider could not be reached or answered with an error."""


class PlaybackError(StreamJetError):
    """The audio output could not start or resume a stream."""


class SpotifyAuthError(StreamJetError):
    """Token exchange, refresh or proxied search against Spotify failed."""
