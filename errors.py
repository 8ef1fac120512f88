"""Failure kinds surfaced by the fee drip pipeline.

Each error carries a short ``code`` that ends up in the JSON payload so the
dashboard can show a specific message instead of a generic failure.
"""


class DripError(Exception):
    code = "error"


class ConfigurationError(DripError):
    code = "not_configured"


class UpstreamError(DripError):
    """Chain RPC or PumpPortal returned a non-success response."""
    code = "upstream_error"


class NoHoldersError(DripError):
    code = "no_holders"


class NoEligibleHoldersError(DripError):
    code = "no_eligible_holders"


class SelectionError(DripError):
    code = "selection_error"


class DuplicateCycleError(DripError):
    code = "already_executed"

    def __init__(self, cycle_id: int):
        super().__init__(f"Cycle {cycle_id} already executed")
        self.cycle_id = cycle_id


class TransactionError(DripError):
    """Signing, submission or confirmation of a transaction failed."""
    code = "transaction_error"
