# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/


class NasError(Exception):
    """Fatal condition reported to the operator as a single line."""


class PreconditionError(NasError):
    """Environment is not fit for the operation; nothing is changed yet."""


class ValidationError(NasError):
    pass


class StaleStateError(NasError):
    """State record exists but cannot be trusted.

    Not the same as "not installed": the record must be fixed by a human.
    """


class StepFailure(NasError):

    def __init__(self, step: str, cause: BaseException):
        super().__init__(f"{step} failed: {cause}")
        self.step = step
        self.cause = cause


class CompensationFailure(NasError):
    """Undo action failed. Logged, never raised from the unwind."""

    def __init__(self, record, cause: BaseException):
        super().__init__(f"Cannot undo {record!r}: {cause}")
        self.record = record
        self.cause = cause


class SnapshotMissing(NasError):
    """Rollback tag is absent on some of the units."""

    def __init__(self, tag: str, volumes):
        super().__init__(f"Snapshot @{tag} is missing on: {', '.join(volumes)}; nothing rolled back")
        self.tag = tag
        self.volumes = list(volumes)
