from app.core.errors import SettlementError
from app.schemas.common import ErrorOut


_ERROR_EXAMPLES: dict[int, tuple[str, str]] = {
    400: ("bad_request", "Bad request"),
    401: ("unauthorized", "Unauthorized"),
    403: ("forbidden", "Insufficient role for this action"),
    404: ("not_found", "Resource not found"),
    409: ("invalid_payout_transition", "Cannot transition payout from 'HOLD' to 'COMPLETED'"),
    422: ("validation_error", "Validation failed"),
    500: ("internal_error", "Internal server error"),
}


def _settlement_codes(status_code: int) -> list[str]:
    codes: set[str] = set()
    pending = list(SettlementError.__subclasses__())
    while pending:
        error_class = pending.pop()
        pending.extend(error_class.__subclasses__())
        if error_class.status_code == status_code:
            codes.add(error_class.code)
    return sorted(codes)


def error_responses(*status_codes: int) -> dict[int, dict]:
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        code, message = _ERROR_EXAMPLES.get(status_code, ("http_error", "HTTP error"))
        description = message
        settlement_codes = _settlement_codes(status_code)
        if settlement_codes:
            description = f"{message}. Settlement error codes: {', '.join(settlement_codes)}"
        responses[status_code] = {
            "model": ErrorOut,
            "description": description,
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": code,
                            "message": message,
                            "request_id": "request-id",
                            "path": "/admin/payouts/payout-id/approve",
                            "details": None,
                        }
                    }
                }
            },
        }
    return responses
