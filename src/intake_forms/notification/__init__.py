from intake_forms.notification.renderer import DocumentRenderer
from intake_forms.notification.resend import ResendEmailNotifier, attachment_filename

__all__ = ["DocumentRenderer", "ResendEmailNotifier", "attachment_filename"]
