import httpx
import pytest
import respx

from app.core.config import Settings
from app.models.notification import Notification
from app.services.notification_copy import NotificationCopy, copy_for
from app.services.notification_service import EmailDispatcher, NotificationDispatcher, Notifier

EMAIL_URL = "https://mail.example.com/v1/send"


def settings(**kw):
    kw.setdefault("email_api_url", EMAIL_URL)
    kw.setdefault("email_api_key", "key-123")
    return Settings(**kw)


COPY = NotificationCopy("deal_update", "Offer Accepted!", "Your offer was accepted.", "Offer Accepted!",
                        "Please proceed to payment.")


@respx.mock
def test_send_email_posts_json_with_bearer_key():
    route = respx.post(EMAIL_URL).mock(return_value=httpx.Response(202, json={"id": "msg_1"}))
    ok = EmailDispatcher(settings()).send_email(to="a@b.in", subject="Hi", body_html="<p>x</p>")
    assert ok is True
    req = route.calls.last.request
    assert req.headers["Authorization"] == "Bearer key-123"
    assert b'"to":"a@b.in"' in req.content.replace(b" ", b"")


@respx.mock
def test_send_email_failure_is_swallowed():
    respx.post(EMAIL_URL).mock(return_value=httpx.Response(500))
    assert EmailDispatcher(settings()).send_email(to="a@b.in", subject="Hi", body_html="x") is False


@respx.mock
def test_send_email_timeout_is_swallowed():
    respx.post(EMAIL_URL).mock(side_effect=httpx.ConnectTimeout("timeout"))
    assert EmailDispatcher(settings()).send_email(to="a@b.in", subject="Hi", body_html="x") is False


def test_email_disabled_without_url():
    assert EmailDispatcher(Settings(email_api_url=None)).send_email(to="a@b.in", subject="s", body_html="b") is False


@respx.mock
def test_notifier_sends_one_notification_and_one_email(db, seller):
    route = respx.post(EMAIL_URL).mock(return_value=httpx.Response(200))
    s = settings(app_base_url="https://dealroom.example.com/")
    n = Notifier(NotificationDispatcher(db), EmailDispatcher(s), s)

    n.notify(recipient=seller, transaction_id="abc", copy=COPY)

    rows = db.query(Notification).all()
    assert len(rows) == 1
    assert rows[0].recipient_email == seller.owner_email
    assert rows[0].link == "https://dealroom.example.com/DealRoom?transactionId=abc"
    assert route.call_count == 1
    body = route.calls.last.request.content.decode()
    assert "Please proceed to payment." in body


def test_notifier_skips_unresolved_recipient(db):
    n = Notifier(NotificationDispatcher(db), EmailDispatcher(Settings(email_api_url=None)))
    n.notify(recipient=None, transaction_id="abc", copy=COPY)
    assert db.query(Notification).count() == 0


def test_email_body_is_escaped(db, seller):
    n = Notifier(NotificationDispatcher(db), EmailDispatcher(Settings(email_api_url=None)))
    html = n.render_email(
        NotificationCopy("message", "t", "<script>alert(1)</script>", "s"),
        recipient_name="Sharma Motors",
        link="https://x",
    )
    assert "<script>" not in html
    assert "Sharma Motors" in html


def test_create_notification_failure_is_swallowed(db, monkeypatch):
    d = NotificationDispatcher(db)

    def boom():
        raise RuntimeError("db gone")

    monkeypatch.setattr(db, "commit", boom)
    assert d.create_notification(recipient_email="a@b.in", type="offer", title="t", message="m") is None


def test_notification_center_read_side(db):
    d = NotificationDispatcher(db)
    a = d.create_notification(recipient_email="a@b.in", type="offer", title="t1", message="m1")
    d.create_notification(recipient_email="a@b.in", type="payment", title="t2", message="m2")
    d.create_notification(recipient_email="other@b.in", type="offer", title="t3", message="m3")

    assert len(d.list_for("a@b.in")) == 2
    d.mark_read(a.id, "a@b.in")
    assert [n.title for n in d.list_for("a@b.in", unread_only=True)] == ["t2"]
    assert d.mark_all_read("a@b.in") == 1
    assert d.list_for("a@b.in", unread_only=True) == []

    from app.core.errors import NotFoundError
    with pytest.raises(NotFoundError):
        d.mark_read(a.id, "other@b.in")


def test_copy_is_role_appropriate():
    from types import SimpleNamespace

    vehicle = SimpleNamespace(year=2020, make="Honda", model="City")
    deal = SimpleNamespace(offer_amount=950_000, final_amount=950_000)
    c = copy_for("counter_offer", actor_name="Sharma Motors", vehicle=vehicle, deal=deal)
    assert "₹9.5L" in c.message and "Sharma Motors" in c.message
    assert copy_for("payment_success", actor_name="x", vehicle=vehicle, deal=deal).type == "payment"
    assert copy_for("book_transport", actor_name="x", vehicle=vehicle, deal=deal).type == "logistics"
