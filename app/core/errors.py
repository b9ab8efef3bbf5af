class SettlementError(ValueError):
    code = "settlement_error"
    status_code = 400


class InvalidCommissionRateError(SettlementError):
    code = "invalid_commission_rate"


class InvalidCommissionError(SettlementError):
    code = "invalid_commission"


class CommissionIntegrityError(SettlementError):
    code = "commission_integrity"


class SplitPaymentError(SettlementError):
    code = "invalid_split_payment"


class InvalidPayoutAmountError(SettlementError):
    code = "invalid_payout_amount"


class PayoutNotFoundError(SettlementError):
    code = "payout_not_found"
    status_code = 404


class PayoutTransitionError(SettlementError):
    code = "invalid_payout_transition"
    status_code = 409


class PayoutThresholdNotMetError(SettlementError):
    code = "payout_threshold_not_met"


class NoPayoutsAvailableError(SettlementError):
    code = "no_payouts_available"


class DuplicatePayoutError(SettlementError):
    code = "duplicate_payout"
    status_code = 409


class SellerNotFoundError(SettlementError):
    code = "seller_not_found"
    status_code = 404


class OrderSplitError(SettlementError):
    code = "invalid_order_split"
    status_code = 409
