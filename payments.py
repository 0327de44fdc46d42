"""
Premium packages and payment-backed subscriptions.

Payments are taken by the gateway's checkout in the browser; the server
only verifies the signature the gateway returns, computed as
HMAC-SHA256 of ``"<order_id>|<payment_id>"`` with the key secret.
"""

import hmac
import hashlib
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from database import db
from errors import ConflictError, NotFound, RankMeError, ValidationError
from models import Package, PaymentStatus, Subscription, User
from utils import ConfigHelper

logger = logging.getLogger(__name__)

DEFAULT_PACKAGES = [
    {
        'name': 'Resume Plus',
        'description': 'Premium résumé templates for a month',
        'price': 4900,
        'duration_days': 30,
        'features': ['All premium résumé templates', 'Unlimited résumé downloads for 30 days'],
    },
    {
        'name': 'Pro Monthly',
        'description': 'Everything in Resume Plus with priority visibility',
        'price': 19900,
        'duration_days': 30,
        'features': ['Unlimited résumé downloads', 'All premium templates',
                     'Highlighted profile in employer searches'],
    },
    {
        'name': 'Unlimited Yearly',
        'description': 'A full year of premium features',
        'price': 49900,
        'duration_days': 365,
        'features': ['Unlimited résumé downloads', 'All premium templates',
                     'Highlighted profile in employer searches', 'Early access to new features'],
    },
]


def seed_default_packages():
    if Package.query.count():
        return
    for data in DEFAULT_PACKAGES:
        db.session.add(Package(**data))
    db.session.commit()
    logger.info(f"Created {len(DEFAULT_PACKAGES)} default packages")


def list_packages() -> List[Package]:
    return Package.query.filter_by(is_active=True).order_by(Package.price.asc()).all()


def expected_signature(order_id: str, payment_id: str, secret: str) -> str:
    body = f"{order_id}|{payment_id}".encode('utf-8')
    return hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str,
                             secret: Optional[str] = None) -> bool:
    secret = secret if secret is not None else ConfigHelper.get_payment_config()['key_secret']
    if not secret:
        raise RankMeError("Payment gateway is not configured")
    if not order_id or not payment_id or not signature:
        return False
    return hmac.compare_digest(expected_signature(order_id, payment_id, secret), signature)


def subscribe(user: User, package_id: int, order_id: str, payment_id: str, signature: str,
              now: Optional[datetime] = None) -> Subscription:
    """Record a paid subscription and make the user premium until it ends"""
    package = db.session.get(Package, package_id)
    if package is None or not package.is_active:
        raise NotFound("Package not found")

    if not verify_payment_signature(order_id, payment_id, signature):
        logger.error(f"Invalid payment signature for user {user.id}, order {order_id}")
        raise ValidationError("Invalid payment signature")

    if Subscription.query.filter_by(payment_reference=payment_id).first():
        raise ConflictError("This payment has already been used")

    now = now or datetime.utcnow()

    # Renewals extend from the end of the current premium period
    start = user.premium_until if user.premium_until and user.premium_until > now else now
    end = start + timedelta(days=package.duration_days)

    subscription = Subscription(
        user_id=user.id,
        package_id=package.id,
        start_date=now,
        end_date=end,
        is_active=True,
        payment_status=PaymentStatus.PAID,
        payment_reference=payment_id,
    )
    db.session.add(subscription)

    user.is_premium = True
    user.premium_until = end
    db.session.commit()

    logger.info(f"User {user.id} subscribed to {package.name} until {end:%Y-%m-%d}")
    return subscription


def active_subscription(user: User, now: Optional[datetime] = None) -> Optional[Subscription]:
    now = now or datetime.utcnow()
    return (Subscription.query
            .filter(Subscription.user_id == user.id,
                    Subscription.is_active.is_(True),
                    Subscription.end_date > now)
            .order_by(Subscription.end_date.desc())
            .first())


def expire_subscriptions(now: Optional[datetime] = None) -> Dict:
    """Deactivate ended subscriptions and drop premium from users without one"""
    now = now or datetime.utcnow()

    expired = Subscription.query.filter(
        Subscription.is_active.is_(True),
        Subscription.end_date <= now,
    ).all()
    for subscription in expired:
        subscription.is_active = False

    lapsed_users = User.query.filter(
        User.is_premium.is_(True),
        User.premium_until.isnot(None),
        User.premium_until <= now,
    ).all()
    for user in lapsed_users:
        user.is_premium = False

    db.session.commit()

    if expired or lapsed_users:
        logger.info(f"Expired {len(expired)} subscriptions, {len(lapsed_users)} users lost premium")

    return {'subscriptions': len(expired), 'users': len(lapsed_users)}
