"""Errors raised by the automation engine."""


class StepExecutionError(Exception):
    """A step could not run for this contact (bad config, missing data).

    The processor stores the message verbatim on the FAILED log entry.
    """


class AutomationEnqueueError(Exception):
    """One or more matching automations could not be enqueued.

    Raised only after every matching automation has been attempted, so a
    single bad insert never blocks the others.
    """

    def __init__(self, failures, enqueued=None):
        self.failures = failures  # list of (automation_id, exception)
        self.enqueued = enqueued or []
        ids = ", ".join(str(automation_id) for automation_id, _ in failures)
        super().__init__(f"Failed to enqueue {len(failures)} automation(s): {ids}")
