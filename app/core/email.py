import secrets
import smtplib, string
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from app.core.config import settings
from app.core.logger import logger


def generate_otp(length: int=6) -> str:
    # leading zero would break the 6-digit int check on verification
    return secrets.choice('123456789') + ''.join(secrets.choice(string.digits) for _ in range(length - 1))



def _send(to_email: str, subject: str, body: str) -> bool:
    msg = MIMEMultipart()
    msg['From'] = settings.EMAIL_FROM
    msg['To'] = to_email
    msg['Subject'] = subject
    msg.attach(MIMEText(body, 'plain'))

    try:
        with smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT) as server:
            server.starttls()
            server.login(settings.EMAIL_USER, settings.EMAIL_PASSWORD)
            server.sendmail(settings.EMAIL_FROM, to_email, msg.as_string())
        logger.info(f'Email "{subject}" sent to {to_email}')
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.warning(f'Email send error to {to_email}: {e}')
        return False



def _code_body(username: str, reason: str, otp_code: str, minutes: int, ignore_hint: str) -> str:
    return f'''Hi {username},

{reason}

    {otp_code}

The code is valid for {minutes} minutes. {ignore_hint}

See you in Chato!
'''




def send_otp_email(to_email: str, otp_code: str, username: str) -> bool:
    body = _code_body(
        username,
        'Use the code below to activate your Chato account.',
        otp_code,
        settings.OTP_EXPIRE_MINUTES,
        'Nothing happens until it is entered, so you can ignore this mail if the sign-up was not yours.',
    )
    return _send(to_email, 'Your Chato activation code', body)




def send_password_reset_email(to_email: str, otp_code: str, username: str) -> bool:
    body = _code_body(
        username,
        'Someone asked to reset the password of your Chato account. Enter this code to continue.',
        otp_code,
        settings.RESET_OTP_EXPIRE_MINUTES,
        'Your password stays the same unless the code is used.',
    )
    return _send(to_email, 'Reset your Chato password', body)
