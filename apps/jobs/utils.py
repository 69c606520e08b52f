import logging
import re

from django.conf import settings
from django.core.mail import send_mail
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client as TwilioClient

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^\+\d{9,15}$')


def send_notification(user, subject, email_message, sms_message):
    """
    Notify a user by email and SMS.

    Delivery failures are logged and never raised; a notification must not
    undo the state change it reports.
    """
    if user.email:
        try:
            send_mail(
                subject=subject,
                message=email_message,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[user.email],
                fail_silently=False,
            )
            logger.info(f"Email notification sent to user {user.id}")
        except Exception as e:
            logger.error(f"Failed to send email to {user.email}: {str(e)}")

    if not user.phone_number or not settings.TWILIO_ACCOUNT_SID:
        return
    if not PHONE_PATTERN.match(user.phone_number):
        logger.warning(f"Invalid phone number format for user {user.id}: {user.phone_number}")
        return
    try:
        twilio_client = TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        twilio_client.messages.create(
            body=sms_message,
            from_=settings.TWILIO_PHONE_NUMBER,
            to=user.phone_number
        )
        logger.info(f"SMS notification sent to user {user.id}")
    except TwilioRestException as e:
        logger.error(f"Failed to send SMS to {user.phone_number}: {str(e)}")


def notify_offer_received(offer):
    job = offer.job
    send_notification(
        job.client,
        subject=f"New Offer for {job.title}",
        email_message=(
            f"Dear {job.client.username},\n\n"
            f"{offer.freelancer.username} has sent an offer of {offer.offered_amount} "
            f"for your job '{job.title}' (listed at {offer.original_amount}).\n"
            f"Message: {offer.message or 'No message provided.'}\n\n"
            f"Best regards,\nGigConnect Team"
        ),
        sms_message=f"New offer of {offer.offered_amount} for '{job.title}' from {offer.freelancer.username}.",
    )


def notify_offer_response(offer):
    job = offer.job
    verb = 'accepted' if offer.status == 'accepted' else 'rejected'
    send_notification(
        offer.freelancer,
        subject=f"Offer {verb.title()} for {job.title}",
        email_message=(
            f"Dear {offer.freelancer.username},\n\n"
            f"Your offer for '{job.title}' has been {verb}.\n"
            f"Message: {offer.response_message or 'No message provided.'}\n\n"
            f"Best regards,\nGigConnect Team"
        ),
        sms_message=f"Your offer for '{job.title}' was {verb}.",
    )


def notify_job_assigned(job):
    send_notification(
        job.client,
        subject=f"Job Assigned: {job.title}",
        email_message=(
            f"Dear {job.client.username},\n\n"
            f"Your job '{job.title}' has been assigned to {job.freelancer.username}.\n\n"
            f"Best regards,\nGigConnect Team"
        ),
        sms_message=f"Your job '{job.title}' was assigned to {job.freelancer.username}.",
    )


def notify_work_done(job):
    send_notification(
        job.client,
        subject=f"Work Completed: {job.title}",
        email_message=(
            f"Dear {job.client.username},\n\n"
            f"{job.freelancer.username} has marked the work on '{job.title}' as done. "
            f"Please review it and release the payment of {job.amount}.\n\n"
            f"Best regards,\nGigConnect Team"
        ),
        sms_message=f"Work on '{job.title}' is done. Please release payment.",
    )
