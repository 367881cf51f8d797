"""OTP delivery over SMS (Twilio). Delivery is best effort and never blocks a challenge."""
import logging

from marketplace.config import Settings

log = logging.getLogger("uvicorn.error")


def send_sms(settings: Settings, to_phone: str, body: str) -> bool:
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        log.info("[SMS] Twilio not configured; message to %s skipped", to_phone)
        return False
    from twilio.base.exceptions import TwilioException
    from twilio.rest import Client

    try:
        client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
        client.messages.create(body=body, from_=settings.twilio_from_phone_number, to=to_phone)
        return True
    except TwilioException as e:
        log.warning("[SMS] Twilio send to %s failed: %s", to_phone, e)
        return False


def send_otp_sms(settings: Settings, to_phone: str | None, code: str, country_code: str = "+1") -> bool:
    if not to_phone:
        return False
    if settings.debug:
        log.info("[SMS] OTP for %s is %s", to_phone, code)
    body = f"Your verification code is {code}. It expires in {settings.otp_expire_seconds} seconds."
    return send_sms(settings, f"{country_code}{to_phone}", body)
