"""
Error taxonomy for the order lifecycle.

Primary-path errors propagate to the caller and carry an HTTP status and a
machine code so views can report the specific failure. SideEffectFailure is
only raised and caught inside the notification fan-out.
"""


class OrderLifecycleError(Exception):
    status_code = 400
    code = 'error'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message()
        self.details = details
        super().__init__(self.message)

    def default_message(self):
        return 'Request failed'

    def to_dict(self):
        d = {'error': self.message, 'code': self.code}
        d.update({k: v for k, v in self.details.items() if v is not None})
        return d


class ValidationError(OrderLifecycleError):
    status_code = 400
    code = 'validation_error'

    def default_message(self):
        return 'Invalid input'


class InvalidTransition(OrderLifecycleError):
    status_code = 409
    code = 'invalid_transition'

    def __init__(self, current, requested, message=None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f'Invalid transition from {current} to {requested}',
            current=str(current),
            requested=str(requested),
        )


class StaleState(OrderLifecycleError):
    status_code = 409
    code = 'stale_state'

    def __init__(self, expected, actual, message=None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message or f'Order is no longer {expected} (now {actual}); reload and retry',
            expected=str(expected),
            actual=str(actual),
        )


class Forbidden(OrderLifecycleError):
    status_code = 403
    code = 'forbidden'

    def default_message(self):
        return 'Forbidden'


class NotFound(OrderLifecycleError):
    status_code = 404
    code = 'not_found'

    def default_message(self):
        return 'Not found'


class SideEffectFailure(OrderLifecycleError):
    code = 'side_effect_failure'

    def default_message(self):
        return 'Side effect failed'
