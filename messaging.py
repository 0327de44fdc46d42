import html
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, List, Optional

from database import db
from errors import NotFound, PermissionDenied, ValidationError
from models import Application, Job, Message, NewsletterSubscription, Notification, User
from utils import ConfigHelper, sanitize_input, truncate_text, validate_email

logger = logging.getLogger(__name__)

def send_email(recipients: List[str], subject: str, html_content: str) -> bool:
    """Send an HTML e-mail through the configured SMTP server"""
    config = ConfigHelper.get_email_config()

    if not config['enabled']:
        logger.debug(f"SMTP disabled, not sending '{subject}'")
        return False

    if not config['smtp_user'] or not recipients:
        logger.warning("SMTP credentials or recipients not configured")
        return False

    try:
        msg = MIMEMultipart()
        msg['From'] = config['smtp_user']
        msg['To'] = ', '.join(recipients)
        msg['Subject'] = subject
        msg.attach(MIMEText(html_content, 'html'))

        with smtplib.SMTP(config['smtp_server'], config['smtp_port']) as server:
            server.starttls()
            server.login(config['smtp_user'], config['smtp_password'])
            server.send_message(msg)

        logger.info(f"Sent '{subject}' to {len(recipients)} recipients")
        return True

    except Exception as e:
        logger.error(f"Error sending email '{subject}': {e}")
        return False

# Notifications

def notify(user_id: int, type: str, title: str, message: str,
           related_id: Optional[int] = None, related_type: Optional[str] = None) -> Notification:
    """Queue a notification for a user; committed with the caller's transaction"""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        related_id=related_id,
        related_type=related_type,
    )
    db.session.add(notification)
    return notification

def list_notifications(user: User, unread_only: bool = False, limit: int = 50) -> List[Notification]:
    query = Notification.query.filter_by(user_id=user.id)
    if unread_only:
        query = query.filter_by(is_read=False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

def mark_notification_read(user: User, notification_id: int) -> Notification:
    notification = Notification.query.filter_by(id=notification_id, user_id=user.id).first()
    if notification is None:
        raise NotFound("Notification not found")
    notification.is_read = True
    db.session.commit()
    return notification

def mark_all_notifications_read(user: User) -> int:
    count = Notification.query.filter_by(user_id=user.id, is_read=False).update({'is_read': True})
    db.session.commit()
    return count

# Messages

def conversation_id_for(user_a: int, user_b: int) -> str:
    low, high = sorted((user_a, user_b))
    return f"{low}-{high}"

def can_message(sender: User, receiver: User) -> bool:
    """Employers may only contact candidates who applied to them or are public"""
    if sender.id == receiver.id:
        return False
    if sender.is_admin or receiver.is_admin:
        return True

    if sender.is_employer and receiver.is_candidate:
        if receiver.is_profile_public:
            return True
        applied = (Application.query
                   .join(Job, Application.job_id == Job.id)
                   .filter(Job.employer_id == sender.id, Application.candidate_id == receiver.id)
                   .first())
        return applied is not None

    if sender.is_candidate and receiver.is_employer:
        return True

    # Employers talk to employers, never candidates to candidates
    return sender.is_employer and receiver.is_employer

def send_message(sender: User, receiver_id: int, subject: str, body: str) -> Message:
    receiver = db.session.get(User, receiver_id)
    if receiver is None:
        raise NotFound("Recipient not found")

    subject = sanitize_input(subject)
    body = sanitize_input(body)
    if not subject:
        raise ValidationError("Subject is required")
    if not body:
        raise ValidationError("Message cannot be empty")

    if not can_message(sender, receiver):
        raise PermissionDenied("You are not allowed to message this user")

    message = Message(
        sender_id=sender.id,
        receiver_id=receiver.id,
        conversation_id=conversation_id_for(sender.id, receiver.id),
        subject=subject[:255],
        message=body,
    )
    db.session.add(message)
    db.session.flush()

    notify(receiver.id, 'message', f"New message from {sender.display_name}",
           truncate_text(subject, 200), related_id=message.id, related_type='message')
    db.session.commit()

    logger.info(f"Message {message.id} sent from user {sender.id} to user {receiver.id}")
    return message

def list_messages(user: User, folder: str = 'inbox', limit: int = 100) -> List[Message]:
    if folder == 'sent':
        query = Message.query.filter_by(sender_id=user.id)
    else:
        query = Message.query.filter_by(receiver_id=user.id)
    return query.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit).all()

def get_conversation(user: User, other_id: int) -> List[Message]:
    return (Message.query
            .filter_by(conversation_id=conversation_id_for(user.id, other_id))
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all())

def mark_message_read(user: User, message_id: int) -> Message:
    message = Message.query.filter_by(id=message_id, receiver_id=user.id).first()
    if message is None:
        raise NotFound("Message not found")
    message.is_read = True
    db.session.commit()
    return message

def unread_counts(user: User) -> Dict:
    return {
        'messages': Message.query.filter_by(receiver_id=user.id, is_read=False).count(),
        'notifications': Notification.query.filter_by(user_id=user.id, is_read=False).count(),
    }

# Newsletter

def subscribe_newsletter(email: str) -> NewsletterSubscription:
    """Subscribe an address; subscribing again re-activates it"""
    email = (email or '').strip().lower()
    if not validate_email(email):
        raise ValidationError("Please enter a valid email address")

    subscription = NewsletterSubscription.query.filter_by(email=email).first()
    if subscription is None:
        subscription = NewsletterSubscription(email=email)
        db.session.add(subscription)
        logger.info(f"New newsletter subscriber: {email}")
    else:
        subscription.is_active = True

    db.session.commit()
    return subscription

def unsubscribe_newsletter(email: str) -> bool:
    subscription = NewsletterSubscription.query.filter_by(email=(email or '').strip().lower()).first()
    if subscription is None:
        return False
    subscription.is_active = False
    db.session.commit()
    return True

def notify_subscribers_of_job(job: Job) -> int:
    """E-mail active newsletter subscribers about a newly posted job"""
    if not job.is_active or not ConfigHelper.get_email_config()['enabled']:
        return 0

    recipients = [s.email for s in NewsletterSubscription.query.filter_by(is_active=True).all()]
    if not recipients:
        return 0

    company = job.employer.company or job.employer.display_name if job.employer else ''
    skills = html.escape(', '.join(job.required_skills or []))
    html_content = f"""
    <html>
    <body style="font-family: Arial, sans-serif;">
        <h2>New job: {html.escape(job.title)}</h2>
        <p><strong>{html.escape(company)}</strong> &middot; {html.escape(job.location)} &middot; {html.escape(job.job_type)}</p>
        <p>{html.escape(truncate_text(job.description, 400))}</p>
        {f'<p>Skills: {skills}</p>' if skills else ''}
        <p><em>You are receiving this because you subscribed to RankMe job alerts.</em></p>
    </body>
    </html>
    """

    sent = 0
    for recipient in recipients:
        if send_email([recipient], f"New job: {job.title}", html_content):
            sent += 1
    return sent
