"""Exception hierarchy for the pipeline.

Every stage raises its own class and wraps foreign exceptions with
``raise ... from``. The orchestrator turns any of these into a failed run.
"""


class RelayError(Exception):
    """Base exception for pipeline errors."""

    pass


class ConfigurationError(RelayError):
    """Missing asset or credential, or an unknown preset. Never retried."""

    pass


class FetchError(RelayError):
    """Source unavailable or returned something unusable."""

    pass


class TranscodeError(RelayError):
    """External transcoding engine failed. Output is treated as absent."""

    pass


class PublishError(RelayError):
    """Remote publishing API rejected, failed, or never became ready."""

    pass


class PublishTimeoutError(PublishError):
    """Container did not reach a terminal state within the polling budget."""

    pass


class StoreError(RelayError):
    """Datastore inconsistency, e.g. an update targeting a missing id."""

    pass
