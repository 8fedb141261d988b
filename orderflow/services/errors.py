class ServiceError(Exception):
    status_code = 400
    message = 'Request failed'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class CheckoutValidationError(ServiceError):
    message = 'Invalid checkout request'


class OrderNotFound(ServiceError):
    status_code = 404
    message = 'Order not found'


class PaymentNotFound(ServiceError):
    status_code = 404
    message = 'Payment not found'


class InvalidPaymentTransition(ServiceError):
    message = 'Payment status transition is not allowed'


class PaymentConflict(ServiceError):
    status_code = 409
    message = 'Payment was updated concurrently'


class OrderCreationError(ServiceError):
    message = 'Failed to create order'


class PaymentUpdateError(ServiceError):
    message = 'Failed to update payment'


class PaymentValidationError(ServiceError):
    message = 'Invalid payment update'
