"""Offer negotiation.

A freelancer holds at most one live (``pending`` or ``accepted``) offer per
job; the partial unique index ``one_live_offer_per_freelancer`` backs this at
the database level. Resubmitting within the cooldown window is refused,
after it the live offer is revised in place.

``direct_apply`` offers accept themselves and assign the job at submission.
``custom_offer`` offers wait for the client, whose acceptance assigns the job
and rejects every other pending offer on it in the same transaction.
"""
import logging
import math
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError
from django.db.transaction import atomic, on_commit
from django.utils import timezone
from rest_framework import serializers

from apps.users.models import FreelancerProfile
from apps.users.roles import lock_user_role
from core.constants import LIVE_OFFER_STATUSES
from core.exceptions import (
    AlreadyResolved, CooldownActive, Forbidden, InvalidState, NotFound, VerificationRequired,
)
from .models import Job, Offer
from .state import assign_job, get_job
from .utils import notify_job_assigned, notify_offer_received, notify_offer_response

logger = logging.getLogger(__name__)

CASCADE_REJECT_MESSAGE = 'Another offer was accepted'


@dataclass
class OfferSubmission:
    offer: Offer
    created: bool


def cooldown():
    return timedelta(seconds=settings.OFFER_COOLDOWN_SECONDS)


def _cooldown_error(offer, now):
    remaining = cooldown() - (now - offer.created_at)
    seconds = max(1, math.ceil(remaining.total_seconds()))
    return CooldownActive(
        f"Please wait {seconds} seconds before sending another offer for this job.",
        remaining_time=seconds,
    )


def _require_approved(freelancer):
    profile = FreelancerProfile.objects.filter(user=freelancer).first()
    status = profile.verification_status if profile else 'pending'
    if status != 'approved':
        raise VerificationRequired(verification_status=status)


def submit_offer(job_id, freelancer, offered_amount=None, message=None, offer_type='custom_offer'):
    now = timezone.now()
    with atomic():
        lock_user_role(freelancer.id, 'freelancer')
        _require_approved(freelancer)

        job = Job.objects.select_for_update().filter(pk=job_id).first()
        if job is None:
            raise NotFound('Job not found')
        if job.status != 'open':
            raise InvalidState('Job is not open for offers', current_status=job.status)

        if offered_amount is None:
            offered_amount = job.amount
        if offered_amount <= 0:
            raise serializers.ValidationError({'offered_amount': ['Offered amount must be greater than 0']})

        existing = Offer.objects.filter(
            job=job, freelancer=freelancer, status__in=LIVE_OFFER_STATUSES
        ).first()
        if existing is not None:
            if now - existing.created_at < cooldown():
                raise _cooldown_error(existing, now)
            existing.offered_amount = offered_amount
            existing.message = message
            existing.save(update_fields=['offered_amount', 'message', 'updated_at'])
            logger.info(f"Offer {existing.id} on job {job.id} revised to {offered_amount}")
            return OfferSubmission(existing, created=False)

        self_accept = offer_type == 'direct_apply'
        try:
            with atomic():
                offer = Offer.objects.create(
                    job=job,
                    freelancer=freelancer,
                    client=job.client,
                    original_amount=job.amount,
                    offered_amount=offered_amount,
                    message=message,
                    offer_type=offer_type,
                    status='accepted' if self_accept else 'pending',
                    responded_at=now if self_accept else None,
                )
        except IntegrityError:
            # A concurrent submit for the same pair won the insert
            winner = Offer.objects.filter(
                job=job, freelancer=freelancer, status__in=LIVE_OFFER_STATUSES
            ).first()
            if winner is None:
                raise
            raise _cooldown_error(winner, timezone.now())

        if self_accept:
            assign_job(job, freelancer)

    logger.info(f"Freelancer {freelancer.id} submitted {offer_type} offer {offer.id} on job {job.id}")
    if self_accept:
        on_commit(lambda: notify_job_assigned(job))
    else:
        on_commit(lambda: notify_offer_received(offer))
    return OfferSubmission(offer, created=True)


def _get_client_offer(offer_id, client):
    offer = Offer.objects.select_related('job', 'freelancer').filter(pk=offer_id, job__client=client).first()
    if offer is None:
        raise NotFound('Offer not found')
    return offer


def respond_to_offer(offer_id, client, action, response_message=None):
    if action not in ('accept', 'reject'):
        raise serializers.ValidationError({'action': ["Action must be 'accept' or 'reject'"]})

    offer = _get_client_offer(offer_id, client)
    now = timezone.now()
    new_status = 'accepted' if action == 'accept' else 'rejected'

    with atomic():
        claimed = Offer.objects.filter(pk=offer.pk, status='pending').update(
            status=new_status,
            responded_at=now,
            response_message=response_message,
            updated_at=now,
        )
        if not claimed:
            current = Offer.objects.filter(pk=offer.pk).values_list('status', flat=True).first()
            raise AlreadyResolved(current_status=current)

        if action == 'accept':
            lock_user_role(offer.freelancer_id, 'freelancer')
            assign_job(offer.job, offer.freelancer)
            rejected = Offer.objects.filter(job_id=offer.job_id, status='pending').exclude(pk=offer.pk).update(
                status='rejected',
                responded_at=now,
                response_message=CASCADE_REJECT_MESSAGE,
                updated_at=now,
            )
            logger.info(f"Offer {offer.id} accepted; job {offer.job_id} assigned, {rejected} other offer(s) rejected")
        else:
            logger.info(f"Offer {offer.id} rejected by client {client.id}")

    offer.refresh_from_db()
    on_commit(lambda: notify_offer_response(offer))
    return offer


def withdraw_offer(offer_id, freelancer):
    offer = Offer.objects.filter(pk=offer_id).first()
    if offer is None:
        raise NotFound('Offer not found')
    if offer.freelancer_id != freelancer.id:
        raise Forbidden('You can only withdraw your own offers.')

    now = timezone.now()
    withdrawn = Offer.objects.filter(pk=offer.pk, status='pending').update(
        status='withdrawn', responded_at=now, updated_at=now
    )
    if not withdrawn:
        raise AlreadyResolved('Only pending offers can be withdrawn', current_status=offer.status)
    logger.info(f"Offer {offer.id} withdrawn by freelancer {freelancer.id}")
    offer.refresh_from_db()
    return offer


def offers_for_job(job_id, client, status=None):
    job = get_job(job_id)
    if job.client_id != client.id:
        raise Forbidden('You do not have permission to view offers for this job.')
    offers = Offer.objects.filter(job=job).select_related('freelancer')
    if status:
        offers = offers.filter(status=status)
    return offers
