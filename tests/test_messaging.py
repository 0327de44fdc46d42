from unittest.mock import patch

from base import ServiceTestCase, create_job, create_user
from errors import NotFound, PermissionDenied, ValidationError
from jobs import apply_to_job
from messaging import (can_message, conversation_id_for, get_conversation, list_messages,
                       list_notifications, mark_all_notifications_read, mark_message_read,
                       notify_subscribers_of_job, send_email, send_message, subscribe_newsletter,
                       unread_counts, unsubscribe_newsletter)
from models import NewsletterSubscription, Notification, UserType


class PermissionTests(ServiceTestCase):
    def setUp(self):
        super().setUp()
        self.employer_user = self.employer()
        self.private = self.candidate("private@example.com")
        self.public = self.candidate("public@example.com", is_profile_public=True)
        self.admin = create_user("admin@example.com", UserType.ADMIN)

    def test_employer_to_candidates(self):
        self.assertTrue(can_message(self.employer_user, self.public))
        self.assertFalse(can_message(self.employer_user, self.private))

        apply_to_job(self.private, create_job(self.employer_user).id)
        self.assertTrue(can_message(self.employer_user, self.private))

    def test_other_pairs(self):
        other_employer = self.employer("other@example.com")

        self.assertTrue(can_message(self.private, self.employer_user))
        self.assertTrue(can_message(self.employer_user, other_employer))
        self.assertFalse(can_message(self.private, self.public))
        self.assertFalse(can_message(self.public, self.public))
        self.assertTrue(can_message(self.private, self.admin))
        self.assertTrue(can_message(self.admin, self.private))


class MessageTests(ServiceTestCase):
    def setUp(self):
        super().setUp()
        self.sender = self.candidate()
        self.receiver = self.employer()

    def test_send_notifies_receiver(self):
        message = send_message(self.sender, self.receiver.id, "Hello", "<i>Interested</i> in the role")

        self.assertEqual(message.message, "Interested in the role")
        self.assertEqual(message.conversation_id, conversation_id_for(self.receiver.id, self.sender.id))
        notification = Notification.query.filter_by(user_id=self.receiver.id).one()
        self.assertEqual(notification.related_id, message.id)
        self.assertEqual(unread_counts(self.receiver), {"messages": 1, "notifications": 1})

    def test_validation(self):
        with self.assertRaises(ValidationError):
            send_message(self.sender, self.receiver.id, "", "Body")
        with self.assertRaises(ValidationError):
            send_message(self.sender, self.receiver.id, "Subject", "<b></b>")
        with self.assertRaises(NotFound):
            send_message(self.sender, 9999, "Subject", "Body")
        with self.assertRaises(PermissionDenied):
            send_message(self.sender, self.candidate("peer@example.com").id, "Subject", "Body")

    def test_folders_and_conversation(self):
        send_message(self.sender, self.receiver.id, "First", "One")
        reply = send_message(self.receiver, self.sender.id, "Re: First", "Two")

        self.assertEqual([m.subject for m in list_messages(self.sender, "sent")], ["First"])
        self.assertEqual([m.subject for m in list_messages(self.sender)], ["Re: First"])
        self.assertEqual([m.message for m in get_conversation(self.sender, self.receiver.id)], ["One", "Two"])

        mark_message_read(self.sender, reply.id)
        self.assertEqual(unread_counts(self.sender)["messages"], 0)
        with self.assertRaises(NotFound):
            mark_message_read(self.receiver, reply.id)

    def test_notifications(self):
        send_message(self.sender, self.receiver.id, "First", "One")
        send_message(self.sender, self.receiver.id, "Second", "Two")

        self.assertEqual(len(list_notifications(self.receiver, unread_only=True)), 2)
        self.assertEqual(mark_all_notifications_read(self.receiver), 2)
        self.assertEqual(list_notifications(self.receiver, unread_only=True), [])


class NewsletterTests(ServiceTestCase):
    def test_subscribe_is_idempotent(self):
        subscribe_newsletter("Reader@Example.com")
        subscription = subscribe_newsletter(" reader@example.com ")

        self.assertEqual(subscription.email, "reader@example.com")
        self.assertEqual(NewsletterSubscription.query.count(), 1)

    def test_resubscribe_reactivates(self):
        subscribe_newsletter("reader@example.com")
        self.assertTrue(unsubscribe_newsletter("reader@example.com"))
        self.assertFalse(NewsletterSubscription.query.one().is_active)

        subscribe_newsletter("reader@example.com")
        self.assertTrue(NewsletterSubscription.query.one().is_active)
        self.assertFalse(unsubscribe_newsletter("nobody@example.com"))

    def test_invalid_email(self):
        with self.assertRaises(ValidationError):
            subscribe_newsletter("not-an-email")

    def test_job_alerts_need_smtp(self):
        subscribe_newsletter("reader@example.com")
        job = create_job(self.employer())

        self.assertEqual(notify_subscribers_of_job(job), 0)
        self.assertFalse(send_email(["reader@example.com"], "Subject", "<p>Body</p>"))

    def test_job_alerts_sent_to_active_subscribers(self):
        subscribe_newsletter("reader@example.com")
        subscribe_newsletter("gone@example.com")
        unsubscribe_newsletter("gone@example.com")
        job = create_job(self.employer())

        with patch.dict("os.environ", {"SMTP_ENABLED": "true", "SMTP_USER": "jobs@example.com"}), \
                patch("messaging.smtplib.SMTP") as smtp:
            sent = notify_subscribers_of_job(job)

        self.assertEqual(sent, 1)
        server = smtp.return_value.__enter__.return_value
        self.assertEqual(server.send_message.call_count, 1)

    def test_job_alert_escapes_employer_text(self):
        subscribe_newsletter("reader@example.com")
        job = create_job(self.employer(), title="<b>Engineer</b>", location="<i>Remote</i>",
                         description='<a href="https://evil.example/phish">Verify your account</a> today')

        with patch.dict("os.environ", {"SMTP_ENABLED": "true"}), \
                patch("messaging.send_email", return_value=True) as send:
            notify_subscribers_of_job(job)

        body = send.call_args[0][2]
        self.assertNotIn('<a href="https://evil.example/phish">', body)
        self.assertIn("&lt;a href=&quot;https://evil.example/phish&quot;&gt;", body)
        self.assertNotIn("<b>Engineer</b>", body)
        self.assertIn("&lt;i&gt;Remote&lt;/i&gt;", body)
