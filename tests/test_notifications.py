from __future__ import annotations

import json
import logging

import pytest

from apps.visit_backend import notifier
from apps.visit_backend.models import Visit
from apps.visit_backend.notifier import (
    SmtpNotificationSink,
    checkin_message,
    checkout_message,
    recipients_for_site,
)
from common_core.config import settings


@pytest.fixture()
def matrix(monkeypatch, site):
    monkeypatch.setattr(
        settings,
        "notify_matrix",
        json.dumps({site: "ops@example.com, site@example.com", "OTHER": "fallback@example.com"}),
    )
    return site


def test_recipients_for_site_with_fallback():
    raw = json.dumps({"North": "a@x.com, b@x.com ,", "OTHER": "c@x.com"})
    assert recipients_for_site("North", raw) == ["a@x.com", "b@x.com"]
    assert recipients_for_site("South", raw) == ["c@x.com"]
    assert recipients_for_site(None, raw) == []
    assert recipients_for_site("South", json.dumps({"North": "a@x.com"})) == []


def test_recipients_for_site_invalid_matrix():
    assert recipients_for_site("North", "{not json") == []
    assert recipients_for_site("North", "[1, 2]") == []


def test_checkin_and_checkout_messages():
    v = Visit(
        turbine_id="WTG-3",
        technicians=["Alice", "Bob (0611)"],
        power_plant="North",
        equipment_name="WTG-3",
        reason=None,
        maintenance_company="BladeCare",
        malfunction_type=None,
    )
    subject, body = checkin_message(v)
    assert subject == "[IN] North - WTG-3"
    assert body.splitlines() == [
        "Check-IN",
        "Site: North",
        "Equipment: WTG-3",
        "Techs: Alice, Bob (0611)",
        "Company: BladeCare",
        "Reason: -",
        "Malfunction: -",
    ]

    v.equipment_name = None
    subject, body = checkout_message(v)
    assert subject == "[OUT] North"
    assert "TurbineId: WTG-3" in body
    assert "Equipment: -" in body


def test_checkin_notifies_site_recipients(client, sink, matrix):
    r = client.post(
        "/api/visits/checkin",
        json={"technicians": ["Alice"], "powerPlant": matrix, "equipmentName": "E1"},
    )
    assert r.status_code == 201
    assert len(sink.sent) == 1
    subject, body, recipients = sink.sent[0]
    assert subject == f"[IN] {matrix} - E1"
    assert body.startswith("Check-IN\n")
    assert recipients == ["ops@example.com", "site@example.com"]


def test_checkout_notifies_site_recipients(client, sink, matrix):
    visit_id = client.post(
        "/api/visits/checkin", json={"technicians": ["Alice"], "powerPlant": matrix}
    ).json()["visit"]["id"]
    client.post("/api/visits/checkout", json={"visitId": visit_id})

    assert [s[0] for s in sink.sent] == [f"[IN] {matrix}", f"[OUT] {matrix}"]


def test_no_site_means_no_notification(client, sink, matrix):
    client.post("/api/visits/checkin", json={"technicians": ["Alice"]})
    assert sink.sent == []


def test_failed_checkout_sends_nothing(client, sink, matrix):
    r = client.post("/api/visits/checkout", json={"visitId": "does-not-exist"})
    assert r.status_code == 404
    assert sink.sent == []


def test_delivery_failure_does_not_change_response(client, failing_sink, matrix, caplog):
    with caplog.at_level(logging.WARNING, logger="windtrack.notify"):
        r = client.post("/api/visits/checkin", json={"technicians": ["Alice"], "powerPlant": matrix})
    assert r.status_code == 201
    assert any(rec.getMessage() == "notification_failed" for rec in caplog.records)

    visit_id = r.json()["visit"]["id"]
    assert client.post("/api/visits/checkout", json={"visitId": visit_id}).status_code == 200


class _FakeSMTP:
    instances: list["_FakeSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port = host, port
        self.calls: list[str] = []
        self.sent = []
        _FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        self.calls.append("ehlo")

    def has_extn(self, name):
        return name == "starttls"

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(f"login:{user}")

    def send_message(self, msg):
        self.sent.append(msg)


def test_smtp_sink_sends_with_starttls(monkeypatch):
    _FakeSMTP.instances.clear()
    monkeypatch.setattr(notifier.smtplib, "SMTP", _FakeSMTP)
    sink = SmtpNotificationSink(
        host="mail.local", port=587, secure=False, user="bot", password="pw", sender="WT <wt@x.com>"
    )
    sink.send("[IN] North", "Check-IN\n", ["a@x.com", "b@x.com"])

    smtp = _FakeSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("mail.local", 587)
    assert "starttls" in smtp.calls
    assert "login:bot" in smtp.calls
    msg = smtp.sent[0]
    assert msg["To"] == "a@x.com, b@x.com"
    assert msg["From"] == "WT <wt@x.com>"
    assert msg["Subject"] == "[IN] North"


def test_smtp_sink_implicit_tls(monkeypatch):
    _FakeSMTP.instances.clear()
    monkeypatch.setattr(notifier.smtplib, "SMTP_SSL", _FakeSMTP)
    sink = SmtpNotificationSink(host="mail.local", port=465, secure=True, user="", password="")
    sink.send("s", "b", ["a@x.com"])

    smtp = _FakeSMTP.instances[0]
    assert smtp.port == 465
    assert not any(c.startswith("login") for c in smtp.calls)
    assert len(smtp.sent) == 1


def test_smtp_sink_without_host_skips(monkeypatch):
    def _boom(*a, **kw):
        raise AssertionError("SMTP must not be used")

    monkeypatch.setattr(notifier.smtplib, "SMTP", _boom)
    SmtpNotificationSink(host="").send("s", "b", ["a@x.com"])


def test_checkout_survives_missing_notification_context(
    client, sink, matrix, monkeypatch, caplog
):
    visit_id = client.post(
        "/api/visits/checkin", json={"technicians": ["Alice"], "powerPlant": matrix}
    ).json()["visit"]["id"]

    def _gone(db, vid):
        raise RuntimeError("row vanished")

    monkeypatch.setattr("apps.visit_backend.routers.visits.get_visit", _gone)
    with caplog.at_level(logging.WARNING, logger="windtrack.api"):
        r = client.post("/api/visits/checkout", json={"visitId": visit_id})

    assert r.status_code == 200
    assert r.json()["visitId"] == visit_id
    assert any(
        rec.name == "windtrack.api"
        and rec.levelno == logging.WARNING
        and rec.getMessage() == "notification_context_failed"
        for rec in caplog.records
    )
    assert [s[0] for s in sink.sent] == [f"[IN] {matrix}"]
