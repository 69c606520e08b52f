# core/constants.py
USER_ROLE_CHOICES = (
    ('client', 'Client'),           # Posts jobs and pays for completed work
    ('freelancer', 'Freelancer'),   # Makes offers and performs work
    ('admin', 'Admin'),             # Back-office staff
)

JOB_CATEGORY_CHOICES = (
    ('delivery', 'Delivery'),
    ('cooking', 'Cooking'),
    ('plumbing', 'Plumbing'),
    ('electrical', 'Electrical'),
    ('cleaning', 'Cleaning'),
    ('care_taker', 'Care Taker'),
    ('mechanic', 'Mechanic'),
    ('tailoring', 'Tailoring'),
    ('saloon_spa', 'Saloon & Spa'),
    ('painting', 'Painting'),
    ('laundry', 'Laundry'),
    ('driver', 'Driver'),
)

GENDER_PREFERENCE_CHOICES = (
    ('any', 'Any'),
    ('male', 'Male'),
    ('female', 'Female'),
)

JOB_STATUS_CHOICES = (
    ('open', 'Open'),                                # Posted, accepting offers
    ('assigned', 'Assigned'),                        # A freelancer holds the job
    ('work_done', 'Work Done'),                      # Freelancer finished, awaiting payment
    ('waiting_for_payment', 'Waiting For Payment'),  # Gateway payment in flight
    ('completed', 'Completed'),                      # Paid and settled
    ('cancelled', 'Cancelled'),                      # Withdrawn by the client
)

# Jobs that still tie a freelancer to the client side of the marketplace
ACTIVE_FREELANCER_JOB_STATUSES = ('assigned', 'work_done', 'waiting_for_payment')

OFFER_STATUS_CHOICES = (
    ('pending', 'Pending'),      # Awaiting client response
    ('accepted', 'Accepted'),    # Client (or direct apply) accepted it
    ('rejected', 'Rejected'),    # Client rejected it, or another offer won
    ('withdrawn', 'Withdrawn'),  # Freelancer pulled it back
)

# Offers that count as the freelancer's live offer on a job
LIVE_OFFER_STATUSES = ('pending', 'accepted')

OFFER_TYPE_CHOICES = (
    ('direct_apply', 'Direct Apply'),
    ('custom_offer', 'Custom Offer'),
)

VERIFICATION_STATUS_CHOICES = (
    ('pending', 'Pending'),
    ('under_review', 'Under Review'),
    ('approved', 'Approved'),
    ('rejected', 'Rejected'),
)

TRANSACTION_TYPE_CHOICES = (
    ('payment', 'Payment'),
    ('commission', 'Commission'),
    ('refund', 'Refund'),
    ('withdrawal', 'Withdrawal'),
)

TRANSACTION_STATUS_CHOICES = (
    ('pending', 'Pending'),
    ('completed', 'Completed'),
    ('failed', 'Failed'),
    ('cancelled', 'Cancelled'),
)

PAYMENT_METHOD_CHOICES = (
    ('wallet', 'Wallet'),
    ('gateway', 'Payment Gateway'),
    ('bank_transfer', 'Bank Transfer'),
)
