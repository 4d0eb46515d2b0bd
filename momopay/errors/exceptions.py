class AppError(Exception):
    status_code = 500
    error = "Application error"

    def __init__(self, message, status_code=None):
        super().__init__(message)
        if status_code:
            self.status_code = status_code
        self.message = message

    def to_dict(self):
        return {
            'success': False,
            'error': self.error,
            'message': self.message
        }


class ValidationError(AppError):
    status_code = 400
    error = "Validation error"


class Forbidden(AppError):
    status_code = 403
    error = "Access denied"


class PaymentNotFound(AppError):
    status_code = 404
    error = "Payment not found"


class UserNotFound(AppError):
    status_code = 404
    error = "User not found"


class PaymentInProgress(AppError):
    """A PENDING payment already exists for the same user and feature"""
    status_code = 409
    error = "Payment already in progress"

    def __init__(self, message, existing_payment_id=None):
        super().__init__(message)
        self.existing_payment_id = existing_payment_id

    def to_dict(self):
        data = super().to_dict()
        data['existing_payment_id'] = str(self.existing_payment_id) if self.existing_payment_id else None
        return data
