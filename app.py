import os
from momopay import create_app
from momopay.extensions import db

app = create_app(os.getenv('FLASK_ENV', 'development'))

@app.shell_context_processor
def make_shell_context():
    from momopay.models import AppUser, Payment, PaymentAuditLog
    return {
        'db': db,
        'AppUser': AppUser,
        'Payment': Payment,
        'PaymentAuditLog': PaymentAuditLog
    }

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
