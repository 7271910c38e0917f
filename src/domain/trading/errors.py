class TradeRejectedError(Exception):
    """A trade that cannot be applied to the ledger."""
    pass


class InsufficientFundsError(TradeRejectedError):
    pass


class InsufficientSharesError(TradeRejectedError):
    pass


class LedgerWriteError(TradeRejectedError):
    """A ledger write reported failure midway through a trade."""
    pass
