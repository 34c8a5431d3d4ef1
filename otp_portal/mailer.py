# otp_portal/mailer.py
import json
import sib_api_v3_sdk
from flask import current_app
from sib_api_v3_sdk.rest import ApiException
from otp_portal.errors import DeliveryError
from otp_portal.logging_config import setup_logging

logger = setup_logging(__name__)

DEFAULT_SENDER_NAME = 'Maharashtra Police'


# Function to load the Brevo configuration
def load_email_config():
    json_path = current_app.config['EMAIL_CONFIG_PATH']
    try:
        with open(json_path, 'r') as f:
            return json.load(f)
    except FileNotFoundError:
        logger.error(f"Email configuration file not found: {json_path}")
        return None
    except json.JSONDecodeError:
        logger.error("Error decoding the email configuration file.")
        return None


def send_email(recipient, subject, html_content):
    """Send one transactional email through Brevo.

    Raises DeliveryError on any failure; callers decide whether that matters.
    """
    email_config = load_email_config()
    if not email_config or not email_config.get('api_key'):
        raise DeliveryError('Email delivery is not configured.')

    configuration = sib_api_v3_sdk.Configuration()
    configuration.api_key['api-key'] = email_config['api_key']
    api_client = sib_api_v3_sdk.ApiClient(configuration)
    api_instance = sib_api_v3_sdk.TransactionalEmailsApi(api_client)

    send_smtp_email = sib_api_v3_sdk.SendSmtpEmail(
        to=[{"email": recipient}],
        sender={
            "name": email_config.get('sender_name', DEFAULT_SENDER_NAME),
            "email": email_config.get('sender_email')
        },
        subject=subject,
        html_content=html_content
    )

    try:
        api_response = api_instance.send_transac_email(send_smtp_email)
    except ApiException as e:
        raise DeliveryError(f"Brevo rejected the message: {e.status} {e.reason}") from e
    except Exception as e:
        raise DeliveryError(f"Failed to send email: {e}") from e

    logger.info(f"Email sent to {recipient}: {getattr(api_response, 'message_id', None)}")


def render_otp_email(otp, purpose_line, minutes):
    return (
        '<div style="font-family: Arial, sans-serif; padding: 20px; background: #f4f4f4;">'
        '<div style="max-width: 600px; margin: auto; background: #ffffff; border-radius: 10px; padding: 20px;">'
        f'<h2 style="color: #004aad;">{purpose_line}</h2>'
        '<p>Hello,</p>'
        '<p>Your one-time password is:</p>'
        f'<p style="font-size: 24px; font-weight: bold; color: #d62828;">{otp}</p>'
        f'<p>This OTP is valid for the next {minutes} minutes. Please do not share it with anyone.</p>'
        '<hr style="margin: 20px 0;" />'
        '<p style="font-size: 12px; color: #999;">If you did not request this, please ignore this email.</p>'
        f'<p style="font-size: 12px; color: #999;">{DEFAULT_SENDER_NAME}</p>'
        '</div></div>'
    )
