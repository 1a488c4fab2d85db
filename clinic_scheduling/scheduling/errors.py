"""Errors raised by the availability data-access layer."""


class DataAccessError(Exception):
    """A schedule, exception or appointment lookup failed for a reason other than "no row".

    Wraps connectivity failures, access-control rejections and ambiguous
    results (more than one row where at most one is allowed).
    """

    def __init__(self, message: str, *, table: str | None = None):
        super().__init__(message)
        self.table = table
