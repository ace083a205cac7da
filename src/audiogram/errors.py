class AudiogramError(Exception):
    """Base error for the audiogram package."""


class SourceUnavailableError(AudiogramError):
    """Raised when an audio source cannot be decoded or analysed."""


class PlaybackError(AudiogramError):
    """Raised when a source refuses to start playing."""


class CaptionError(AudiogramError):
    """Raised when a caption file is malformed or out of order."""
