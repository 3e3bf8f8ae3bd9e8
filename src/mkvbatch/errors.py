"""Custom exceptions for mkvbatch.

Matching and aggregation problems (unmatched files, stale references,
shortened track lists) are recovered locally and reported as data; only
invalid input aborts an operation with one of these.
"""


class MKVBatchError(Exception):
    """Base exception for mkvbatch."""

    pass


class InvalidPathListError(MKVBatchError):
    """A path list handed to the inspector was empty or malformed."""

    pass


class SettingsError(MKVBatchError):
    """Required mux settings are missing or inconsistent."""

    pass


class UnknownVideoError(MKVBatchError):
    """An operation referenced a video that is not in the store."""

    def __init__(self, video_id: str) -> None:
        super().__init__(f"Unknown video: {video_id}")
        self.video_id = video_id


class InspectionError(MKVBatchError):
    """Metadata inspection (ffprobe) failed."""

    pass


class ExecutionError(MKVBatchError):
    """The muxing executor could not be started."""

    pass


class UnhandledCommandError(MKVBatchError):
    """A command was dispatched with no registered handler."""

    pass
