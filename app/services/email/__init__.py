from app.services.email.dispatcher import EmailDispatcher, classify_email_error

__all__ = [
    "EmailDispatcher",
    "classify_email_error",
]
