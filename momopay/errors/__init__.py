from momopay.errors.exceptions import (
    AppError,
    ValidationError,
    Forbidden,
    PaymentNotFound,
    UserNotFound,
    PaymentInProgress,
)

__all__= [
    'AppError',
    'ValidationError',
    'Forbidden',
    'PaymentNotFound',
    'UserNotFound',
    'PaymentInProgress',
]
