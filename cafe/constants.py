"""Cancellation reasons offered to admins when cancelling an order."""
REASON_OUT_OF_INGREDIENTS = 'Out of ingredients'
REASON_MACHINE_FAILURE = 'Machine failure'
REASON_ORDER_ERROR = 'Order error'
REASON_CUSTOMER_REQUEST = 'Customer request'
REASON_OTHER = 'Other'

CANCELLATION_REASONS = (
    REASON_OUT_OF_INGREDIENTS,
    REASON_MACHINE_FAILURE,
    REASON_ORDER_ERROR,
    REASON_CUSTOMER_REQUEST,
    REASON_OTHER,
)


def resolve_cancellation_reason(reason, custom_reason=None):
    """
    Return the text to store for a cancellation.
    'Other' requires custom_reason; free text outside the predefined set is kept as-is.
    Returns '' when nothing was given.
    """
    reason = (reason or '').strip()
    custom_reason = (custom_reason or '').strip()
    if reason == REASON_OTHER:
        return custom_reason
    if not reason:
        return custom_reason
    return reason
